"""Tests for passcode hashing and device tokens."""

import base64
import re

import pytest
from jose import jwt

from confichannel.core.errors import BadInputError, UnauthorizedError
from confichannel.core.security import (
    CHANNEL_PASSCODE_LENGTH,
    authenticate_device_token,
    create_device_token,
    generate_hmac,
    passcode_matches,
    random_channel_name,
    random_passcode,
)
from confichannel.core.settings import settings


def test_generate_hmac_is_deterministic_for_a_salt() -> None:
    passcode = random_passcode()
    first = generate_hmac(passcode)
    second = generate_hmac(passcode, first.salt)

    assert first == second
    assert len(base64.b64decode(first.salt)) == 32
    assert len(base64.b64decode(first.hash)) == 32


def test_generate_hmac_rejects_invalid_base64() -> None:
    with pytest.raises(BadInputError):
        generate_hmac("not base64!")


def test_passcode_matches() -> None:
    passcode = random_passcode()
    stored = generate_hmac(passcode)

    assert passcode_matches(passcode, stored) is True
    assert passcode_matches(random_passcode(), stored) is False


def test_random_passcode_lengths() -> None:
    assert len(random_passcode()) == CHANNEL_PASSCODE_LENGTH
    assert len(random_passcode(12)) == 16


def test_random_channel_name_format() -> None:
    for _ in range(20):
        assert re.fullmatch(r"[A-Z]\d[A-Z] \d[A-Z]\d [A-Z]\d[A-Z]", random_channel_name())


class TestDeviceTokens:
    def test_fresh_token_is_not_refreshed(self) -> None:
        token = create_device_token("device-1")

        identity = authenticate_device_token(token)

        assert identity.device_id == "device-1"
        assert identity.refreshed_token is None

    def test_token_near_expiry_is_refreshed(self) -> None:
        issued_at = 1_000_000
        token = create_device_token("device-1", now=issued_at)
        later = issued_at + settings.device_token_expire_seconds - 60

        identity = authenticate_device_token(token, now=later)

        assert identity.device_id == "device-1"
        assert identity.refreshed_token is not None
        claims = jwt.decode(
            identity.refreshed_token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": False},
        )
        assert claims["sub"] == "device-1"
        assert claims["exp"] == later + settings.device_token_expire_seconds

    def test_expired_token_is_rejected(self) -> None:
        issued_at = 1_000_000
        token = create_device_token("device-1", now=issued_at)

        with pytest.raises(UnauthorizedError):
            authenticate_device_token(token, now=issued_at + settings.device_token_expire_seconds)

    def test_token_signed_with_other_key_is_rejected(self) -> None:
        forged = jwt.encode({"sub": "device-1", "exp": 2**40}, "other-key", algorithm="HS256")

        with pytest.raises(UnauthorizedError):
            authenticate_device_token(forged)

    def test_token_without_subject_is_rejected(self) -> None:
        token = jwt.encode({"exp": 2**40}, settings.secret_key, algorithm=settings.jwt_algorithm)

        with pytest.raises(UnauthorizedError):
            authenticate_device_token(token)
