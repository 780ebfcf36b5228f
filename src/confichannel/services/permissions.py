"""Device to channel permission edges."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from confichannel.core.capabilities import Capability
from confichannel.core.errors import EdgeAlreadyExistsError, ForbiddenError
from confichannel.db.time import epoch_seconds
from confichannel.models import DeviceChannelEdge


class PermissionStore:
    """Create, inspect and remove the capability edges of a channel."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_edge(self, device_id: str, channel_id: str) -> DeviceChannelEdge | None:
        return self.db.get(DeviceChannelEdge, (device_id, channel_id))

    def has_capabilities(self, device_id: str, channel_id: str, required: Capability) -> bool:
        """Return True if the device's edge grants every required capability."""
        edge = self.get_edge(device_id, channel_id)
        if edge is None:
            return False
        return required in edge.capabilities

    def authorize(self, device_id: str, channel_id: str, required: Capability) -> None:
        """Raise ForbiddenError unless the device holds ``required`` on the channel."""
        if not self.has_capabilities(device_id, channel_id, required):
            raise ForbiddenError()

    def create_edge(
        self,
        device_id: str,
        channel_id: str,
        capabilities: Capability,
        temp_public_key: dict[str, Any] | None = None,
    ) -> DeviceChannelEdge:
        """Grant a device capabilities on a channel.

        The edge is flushed but not committed; the caller owns the
        transaction.

        Raises:
            EdgeAlreadyExistsError: If the pair already has an edge
        """
        if self.get_edge(device_id, channel_id) is not None:
            raise EdgeAlreadyExistsError()
        edge = DeviceChannelEdge(
            device_id=device_id,
            channel_id=channel_id,
            capability_bits=capabilities.value,
            temp_public_key=temp_public_key,
            creation_timestamp=epoch_seconds(),
        )
        self.db.add(edge)
        try:
            with self.db.begin_nested():
                self.db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent pairing of the same device
            raise EdgeAlreadyExistsError() from exc
        return edge

    def count_devices_for_channel(self, channel_id: str) -> int:
        stmt = select(func.count()).select_from(DeviceChannelEdge).where(
            DeviceChannelEdge.channel_id == channel_id
        )
        return int(self.db.execute(stmt).scalar_one())

    def count_channels_for_device(self, device_id: str) -> int:
        stmt = select(func.count()).select_from(DeviceChannelEdge).where(
            DeviceChannelEdge.device_id == device_id
        )
        return int(self.db.execute(stmt).scalar_one())

    def remove_edge(self, device_id: str, channel_id: str) -> None:
        self.db.execute(
            delete(DeviceChannelEdge)
            .where(DeviceChannelEdge.device_id == device_id)
            .where(DeviceChannelEdge.channel_id == channel_id)
        )

    def remove_edges_for_channel(self, channel_id: str) -> None:
        self.db.execute(delete(DeviceChannelEdge).where(DeviceChannelEdge.channel_id == channel_id))

    def grant(self, capability: Capability, *, holding: Capability) -> int:
        """Add ``capability`` to every edge that already holds ``holding``.

        Returns:
            Number of edges updated
        """
        needs_grant = (DeviceChannelEdge.capability_bits.op("&")(holding.value) == holding.value) & (
            DeviceChannelEdge.capability_bits.op("&")(capability.value) == 0
        )
        edges = self.db.execute(select(DeviceChannelEdge).where(needs_grant)).scalars().all()
        for edge in edges:
            edge.capabilities = edge.capabilities | capability
        self.db.flush()
        return len(edges)

    def pop_temp_public_keys(self, channel_id: str) -> list[dict[str, Any]]:
        """Return and clear every temporary public key stored on the channel's edges."""
        edges = (
            self.db.execute(
                select(DeviceChannelEdge)
                .where(DeviceChannelEdge.channel_id == channel_id)
                .where(DeviceChannelEdge.temp_public_key.is_not(None))
                .with_for_update()
            )
            .scalars()
            .all()
        )
        keys: list[dict[str, Any]] = []
        for edge in edges:
            if edge.temp_public_key is None:
                continue
            keys.append(edge.temp_public_key)
            edge.temp_public_key = None
        return keys
