"""Shape validation for encrypted payloads and key material.

The server never decrypts anything. These checks only make sure that what a
client stores has the structure the other side expects, and that it fits the
caller's tier.
"""

from __future__ import annotations

import re
from typing import Any

from confichannel.core.errors import BadInputError, LimitExceededError
from confichannel.core.settings import settings
from confichannel.models import ChannelType, EncryptionMode
from confichannel.schemas.channel import EncryptedMessage

IV_LENGTH = 16
SALT_LENGTH = 24
KEY_CIPHERTEXT_LENGTH = 56
ECDH_COORDINATE_LENGTH = 64

_BASE64_SEGMENT = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_ECDH_FIELDS = frozenset({"crv", "ext", "key_ops", "kty", "x", "y"})

SYMMETRIC_MODES = frozenset({EncryptionMode.SHARED_KEY, EncryptionMode.PASSWORD})

ACCEPTED_MODES: dict[ChannelType, frozenset[EncryptionMode]] = {
    ChannelType.BIDIRECTIONAL: frozenset(
        {EncryptionMode.SHARED_KEY, EncryptionMode.PASSWORD, EncryptionMode.PUBLIC_PRIVATE_KEY}
    ),
    ChannelType.UNIDIRECTIONAL: frozenset(
        {EncryptionMode.PASSWORD, EncryptionMode.PUBLIC_PRIVATE_KEY}
    ),
}


def is_valid_ecdh_public_key(key: Any) -> bool:
    """Return True if ``key`` looks like an exported P-384 ECDH public JWK."""
    if not isinstance(key, dict):
        return False
    if set(key) != _ECDH_FIELDS:
        # Also rules out "d", which is only present on private keys
        return False
    if key["crv"] != "P-384" or key["kty"] != "EC":
        return False
    if not isinstance(key["ext"], bool):
        return False
    if key["key_ops"] != [] or not isinstance(key["key_ops"], list):
        return False
    for coordinate in ("x", "y"):
        value = key[coordinate]
        if not isinstance(value, str) or len(value) != ECDH_COORDINATE_LENGTH:
            return False
    return True


def validate_ecdh_public_key(key: Any, field_name: str = "public key") -> dict[str, Any]:
    """Return the key unchanged or raise BadInputError."""
    if not is_valid_ecdh_public_key(key):
        raise BadInputError(f"Invalid {field_name}")
    return key


def carries_ciphertext(message: EncryptedMessage | None) -> bool:
    """Return True if ``message`` holds something to store.

    A missing message and one with an empty or null ciphertext both mean
    the slot should be cleared.
    """
    return message is not None and bool(message.ciphertext)


def validate_encrypted_encrypt_key(value: Any) -> str:
    """Check an ``iv.salt.ciphertext`` key blob.

    Raises:
        BadInputError: If the blob does not have exactly three base64
            segments of lengths 16, 24 and 56
    """
    if not isinstance(value, str):
        raise BadInputError("Invalid encrypted encrypt key")
    parts = value.split(".")
    if len(parts) != 3:
        raise BadInputError("Invalid encrypted encrypt key")
    expected_lengths = (IV_LENGTH, SALT_LENGTH, KEY_CIPHERTEXT_LENGTH)
    for part, expected in zip(parts, expected_lengths):
        if len(part) != expected or not _BASE64_SEGMENT.match(part):
            raise BadInputError("Invalid encrypted encrypt key")
    return value


class PayloadValidator:
    """Per-mode message rules with tier dependent size limits."""

    def __init__(self, subscribed: bool = False) -> None:
        self.subscribed = subscribed

    @property
    def max_message_size(self) -> int:
        if self.subscribed:
            return settings.max_message_size_with_subscription
        return settings.max_message_size_without_subscription

    def check_size(self, message: EncryptedMessage) -> None:
        if len(message.ciphertext or "") <= self.max_message_size:
            return
        if self.subscribed:
            raise LimitExceededError("The size of the message is too large.")
        raise LimitExceededError("Max size of message reached. Upgrade to send larger values.")

    def validate_symmetric(self, message: EncryptedMessage) -> None:
        """Rules for the shared key and password modes."""
        if message.salt is None or len(message.salt) != SALT_LENGTH:
            raise BadInputError("Invalid salt")
        if message.iv is None or len(message.iv) != IV_LENGTH:
            raise BadInputError("Invalid iv")
        self.check_size(message)

    def validate_public_private(self, message: EncryptedMessage) -> None:
        """Rules for the public/private key mode."""
        if message.salt is not None:
            raise BadInputError("Salt is not used with public/private key encryption")
        if message.iv is None or len(message.iv) != IV_LENGTH:
            raise BadInputError("Invalid iv")
        self.check_size(message)

    def validate(
        self,
        channel_type: ChannelType,
        encryption_mode: EncryptionMode,
        message: EncryptedMessage,
        sender_public_key: dict[str, Any] | None = None,
    ) -> None:
        """Validate a message about to be stored on a channel.

        Args:
            channel_type: Directionality of the target channel
            encryption_mode: Mode the client claims it used
            message: Ciphertext with its iv and salt
            sender_public_key: Key the recipient needs to decrypt a
                public/private message on a unidirectional channel. Rejected
                for the shared key and password modes.

        Raises:
            BadInputError: If the mode is not accepted on this channel type or
                a field has the wrong shape
            LimitExceededError: If the ciphertext exceeds the tier limit
        """
        if not message.ciphertext:
            raise BadInputError("Ciphertext is required")
        if encryption_mode not in ACCEPTED_MODES[channel_type]:
            raise BadInputError("Encryption mode not supported for this channel type")

        if encryption_mode in SYMMETRIC_MODES:
            if sender_public_key is not None:
                raise BadInputError("Sender public key is only used with public/private key encryption")
            self.validate_symmetric(message)
            return

        if sender_public_key is None:
            if channel_type is ChannelType.UNIDIRECTIONAL:
                raise BadInputError("Sender public key is required")
        else:
            validate_ecdh_public_key(sender_public_key, "sender public key")
        self.validate_public_private(message)
