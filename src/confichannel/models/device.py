"""Device and device-to-channel permission edge models."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from confichannel.core.capabilities import Capability
from confichannel.db.session import Base


class Device(Base):
    """Registered client device identified by its token subject."""

    __tablename__ = "device"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    creation_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    update_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class DeviceChannelEdge(Base):
    """Permission relation between a device and a channel.

    The composite primary key enforces a single edge per pair. The channel
    column carries no foreign key: stale edges for an id are purged before
    the channel row is written.
    """

    __tablename__ = "device_channel"

    device_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(36), primary_key=True, index=True)
    capability_bits: Mapped[int] = mapped_column("capabilities", Integer, nullable=False)
    temp_public_key: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    creation_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    @property
    def capabilities(self) -> Capability:
        return Capability.from_bits(self.capability_bits)

    @capabilities.setter
    def capabilities(self, value: Capability) -> None:
        self.capability_bits = value.value
