"""Device-related Pydantic schemas."""

from pydantic import BaseModel


class DeviceCreated(BaseModel):
    device_id: str
    device_token: str


class DeviceStatus(BaseModel):
    status: str = "OK"
