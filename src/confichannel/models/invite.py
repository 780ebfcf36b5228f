"""Invite model used to pair a new device with a channel."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from confichannel.db.session import Base


class ChannelInvite(Base):
    """Time boxed, passcode protected grant to join a channel.

    The channel passcode and the encrypted encryption key are escrowed here
    for the joining device and never interpreted by the server.
    """

    __tablename__ = "channel_invite"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    channel_type: Mapped[str] = mapped_column(String(16), nullable=False)
    creation_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    channel_passcode: Mapped[str] = mapped_column(String(64), nullable=False)
    encrypted_encrypt_key: Mapped[str] = mapped_column(String(128), nullable=False)
    origin_public_key: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    passcode_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    passcode_hash_salt: Mapped[str] = mapped_column(String(64), nullable=False)

    invite_accepts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Set once when a bidirectional invite is claimed
    consumed_timestamp: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
