"""Tests for device registration and token handling endpoints."""

import time

from fastapi import status

from confichannel.core.security import create_device_token
from confichannel.core.settings import settings
from confichannel.models import Device


def test_register_device_returns_usable_token(client, db_session) -> None:
    response = client.post("/api/v1/devices")

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert db_session.get(Device, data["device_id"]) is not None

    status_response = client.get(
        "/api/v1/devices/status",
        headers={"Authorization": f"Bearer {data['device_token']}"},
    )
    assert status_response.status_code == status.HTTP_200_OK
    assert status_response.json() == {"status": "OK"}
    assert "X-Device-Token" not in status_response.headers


def test_status_without_token_is_unauthorized(client) -> None:
    response = client.get("/api/v1/devices/status")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["code"] == "unauthorized"


def test_status_with_garbage_token_is_unauthorized(client) -> None:
    response = client.get(
        "/api/v1/devices/status",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_token_close_to_expiry_is_replaced(client) -> None:
    # Issued long enough ago that it expires inside the refresh window
    issued_at = (
        time.time()
        - settings.device_token_expire_seconds
        + settings.device_token_refresh_seconds // 2
    )
    token = create_device_token("device-a", now=int(issued_at))

    response = client.get(
        "/api/v1/devices/status",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == status.HTTP_200_OK
    refreshed = response.headers["X-Device-Token"]
    assert refreshed and refreshed != token


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}
