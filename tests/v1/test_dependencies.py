"""Tests for request dependencies and endpoint functions called directly."""

from unittest.mock import patch

import pytest
from fastapi import Response
from fastapi.security import HTTPAuthorizationCredentials

from confichannel.api.v1.dependencies import (
    REFRESHED_TOKEN_HEADER,
    get_current_device_id,
    get_passcode,
)
from confichannel.api.v1.endpoints.devices import create_device, device_status
from confichannel.core.errors import UnauthorizedError
from confichannel.core.security import authenticate_device_token, create_device_token
from confichannel.core.settings import settings
from confichannel.main import health_check
from confichannel.models import Device


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentDeviceId:
    """Test the bearer token dependency."""

    def test_returns_device_id(self):
        response = Response()

        device_id = get_current_device_id(response, _bearer(create_device_token("device-1")))

        assert device_id == "device-1"
        assert REFRESHED_TOKEN_HEADER not in response.headers

    def test_missing_credentials(self):
        with pytest.raises(UnauthorizedError):
            get_current_device_id(Response(), None)

    def test_garbage_token(self):
        with pytest.raises(UnauthorizedError):
            get_current_device_id(Response(), _bearer("not-a-jwt"))

    def test_sets_refreshed_token_inside_refresh_window(self):
        response = Response()
        token = create_device_token("device-2")

        with patch.object(settings, "device_token_refresh_seconds", settings.device_token_expire_seconds + 60):
            device_id = get_current_device_id(response, _bearer(token))

        assert device_id == "device-2"
        refreshed = response.headers[REFRESHED_TOKEN_HEADER]
        assert authenticate_device_token(refreshed).device_id == "device-2"


def test_get_passcode_passes_header_through():
    assert get_passcode("abc") == "abc"
    assert get_passcode() is None


class TestEndpointFunctions:
    """Call endpoint coroutines without the HTTP stack."""

    @pytest.mark.asyncio
    async def test_create_device_persists_device(self, db_session):
        created = await create_device(db_session)

        assert db_session.get(Device, created.device_id) is not None
        assert authenticate_device_token(created.device_token).device_id == created.device_id

    @pytest.mark.asyncio
    async def test_device_status(self):
        result = await device_status("device-3")

        assert result.status == "OK"

    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await health_check() == {"status": "ok"}
