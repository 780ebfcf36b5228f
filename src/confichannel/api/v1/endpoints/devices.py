"""Device registration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from confichannel.api.v1.dependencies import CurrentDeviceDep, SessionDep
from confichannel.schemas.device import DeviceCreated, DeviceStatus
from confichannel.services.devices import DeviceService

router = APIRouter(prefix="/devices", tags=["devices"])


@router.post("", response_model=DeviceCreated, status_code=status.HTTP_201_CREATED)
async def create_device(db: SessionDep) -> DeviceCreated:
    """Register a new device and return its token."""
    device, token = DeviceService(db).register_device()
    return DeviceCreated(device_id=device.id, device_token=token)


@router.get("/status", response_model=DeviceStatus)
async def device_status(device_id: CurrentDeviceDep) -> DeviceStatus:
    """Confirm the presented device token is valid."""
    return DeviceStatus()
