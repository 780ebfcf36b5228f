"""Channel model holding a single encrypted message slot."""

from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import JSON, BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from confichannel.db.session import Base


class ChannelType(str, enum.Enum):
    """Directionality of a channel."""

    BIDIRECTIONAL = "bidirectional"
    UNIDIRECTIONAL = "unidirectional"


class EncryptionMode(str, enum.Enum):
    """Tag describing how a queued message was encrypted by the client."""

    SHARED_KEY = "end-to-end-shared"
    PASSWORD = "end-to-end-password"
    PUBLIC_PRIVATE_KEY = "end-to-end-private-public"
    NONE = "none"


class Channel(Base):
    """Paired mailbox between devices.

    The server only ever stores ciphertext; ``ciphertext``, ``iv`` and
    ``salt`` are set together by a push and cleared together by a pull.
    """

    __tablename__ = "channel"
    __table_args__ = (Index("ix_channel_update_timestamp", "update_timestamp"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    channel_type: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(16), nullable=False)
    creation_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    update_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    passcode_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    passcode_hash_salt: Mapped[str] = mapped_column(String(64), nullable=False)

    encryption_mode: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ciphertext: Mapped[str | None] = mapped_column(Text, nullable=True)
    iv: Mapped[str | None] = mapped_column(String(16), nullable=True)
    salt: Mapped[str | None] = mapped_column(String(24), nullable=True)
    sender_public_key: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )

    def has_message(self) -> bool:
        """Return True if a message is waiting to be pulled."""
        return self.ciphertext is not None

    def clear_message(self) -> None:
        """Empty the message slot."""
        self.encryption_mode = EncryptionMode.NONE.value
        self.ciphertext = None
        self.iv = None
        self.salt = None
        self.sender_public_key = None
