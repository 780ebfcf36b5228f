"""Passcode hashing and device token utilities."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
import string
import time
from dataclasses import dataclass

from jose import JWTError, jwt

from confichannel.core.errors import BadInputError, UnauthorizedError
from confichannel.core.settings import settings

CHANNEL_PASSCODE_BYTES = 32
INVITE_PASSCODE_BYTES = 12
HMAC_SALT_BYTES = 32

# Length of a base64 encoded channel passcode
CHANNEL_PASSCODE_LENGTH = 44
INVITE_PASSCODE_LENGTH = 16


@dataclass(frozen=True)
class PasscodeHash:
    """Base64 encoded HMAC-SHA256 digest and the salt used as its key."""

    hash: str
    salt: str


def decode_base64(value: str) -> bytes:
    """Decode a standard base64 string, rejecting anything malformed.

    Raises:
        BadInputError: If the value is not valid base64
    """
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise BadInputError("Value must be valid base64") from exc


def generate_hmac(data_b64: str, salt_b64: str | None = None) -> PasscodeHash:
    """Hash base64 encoded data with HMAC-SHA256 keyed by a salt.

    Args:
        data_b64: Base64 encoded secret to hash
        salt_b64: Optional base64 encoded salt; a random 32-byte salt is
            generated when omitted

    Returns:
        The base64 encoded digest together with the salt that produced it
    """
    data = decode_base64(data_b64)
    salt = decode_base64(salt_b64) if salt_b64 is not None else secrets.token_bytes(HMAC_SALT_BYTES)
    digest = hmac.new(salt, data, hashlib.sha256).digest()
    return PasscodeHash(
        hash=base64.b64encode(digest).decode(),
        salt=base64.b64encode(salt).decode(),
    )


def passcode_matches(passcode_b64: str, expected: PasscodeHash) -> bool:
    """Return True if the passcode hashes to the expected digest."""
    candidate = generate_hmac(passcode_b64, expected.salt)
    return hmac.compare_digest(candidate.hash, expected.hash)


def random_passcode(num_bytes: int = CHANNEL_PASSCODE_BYTES) -> str:
    """Return a fresh random secret, base64 encoded."""
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode()


def random_channel_name() -> str:
    """Return a human friendly label in the form ``ADA DAD ADA``."""
    characters = []
    for index in range(9):
        alphabet = string.ascii_uppercase if index % 2 == 0 else string.digits
        characters.append(secrets.choice(alphabet))
    name = "".join(characters)
    return f"{name[0:3]} {name[3:6]} {name[6:9]}"


@dataclass(frozen=True)
class DeviceIdentity:
    """Device resolved from a token, plus a replacement token when due."""

    device_id: str
    refreshed_token: str | None = None


def create_device_token(device_id: str, now: int | None = None) -> str:
    """Issue a signed device token whose subject is the device id."""
    issued_at = int(time.time()) if now is None else now
    payload = {
        "sub": device_id,
        "iat": issued_at,
        "exp": issued_at + settings.device_token_expire_seconds,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def authenticate_device_token(token: str, now: int | None = None) -> DeviceIdentity:
    """Validate a device token and decide whether to reissue it.

    Args:
        token: Compact JWT presented by the caller
        now: Current epoch seconds, defaults to the wall clock

    Returns:
        The device identity and, when the token expires within the refresh
        window, a newly issued token

    Raises:
        UnauthorizedError: If the token is invalid, expired or has no subject
    """
    current = int(time.time()) if now is None else now
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": False},
        )
    except JWTError as err:
        raise UnauthorizedError() from err

    device_id = payload.get("sub")
    expires = payload.get("exp")
    if not isinstance(device_id, str) or not device_id or not isinstance(expires, int):
        raise UnauthorizedError()
    if expires <= current:
        raise UnauthorizedError("Device token expired")

    refreshed = None
    if expires < current + settings.device_token_refresh_seconds:
        refreshed = create_device_token(device_id, now=current)
    return DeviceIdentity(device_id=device_id, refreshed_token=refreshed)
