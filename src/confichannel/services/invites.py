"""Invite issuance and consumption.

An invite lets a device that has not been paired yet obtain a channel's
passcode and the escrowed key material needed to decrypt its messages.
Bidirectional invites pair exactly one extra device and are claimed once;
unidirectional invites may be accepted by many devices until they expire.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from confichannel.core.capabilities import (
    BIDIRECTIONAL_JOINER_CAPABILITIES,
    UNIDIRECTIONAL_JOINER_CAPABILITIES,
    Capability,
)
from confichannel.core.errors import (
    BadInputError,
    EdgeAlreadyExistsError,
    InternalInconsistencyError,
    LimitExceededError,
    NotFoundError,
)
from confichannel.core.security import INVITE_PASSCODE_BYTES, generate_hmac, random_passcode
from confichannel.core.settings import settings
from confichannel.db.time import epoch_seconds
from confichannel.models import Channel, ChannelInvite, ChannelType
from confichannel.schemas.invite import InviteConsumed, InviteCreated
from confichannel.services.events import EventSink, get_event_sink
from confichannel.services.passcodes import PasscodeAuthenticator
from confichannel.services.payloads import validate_ecdh_public_key, validate_encrypted_encrypt_key
from confichannel.services.permissions import PermissionStore

logger = logging.getLogger(__name__)

# A bidirectional channel holds its creator and at most one invitee
MAX_BIDIRECTIONAL_DEVICES = 2


def channel_type_of(value: str) -> ChannelType:
    """Parse a stored channel type, treating unknown values as a server fault."""
    try:
        return ChannelType(value)
    except ValueError as exc:
        raise InternalInconsistencyError(f"Unrecognised channel type {value!r}") from exc


def live_invite_filter(now: int) -> Any:
    """SQL condition selecting invites that can still be used."""
    return (ChannelInvite.expires > now) & ChannelInvite.consumed_timestamp.is_(None)


class InviteService:
    """Issue, list, delete and consume channel invites."""

    def __init__(self, db: Session, events: EventSink | None = None) -> None:
        self.db = db
        self.events = events or get_event_sink()
        self.passcodes = PasscodeAuthenticator(db)
        self.permissions = PermissionStore(db)

    def _count_live_invites(self, channel_id: str, now: int) -> int:
        stmt = (
            select(func.count())
            .select_from(ChannelInvite)
            .where(ChannelInvite.channel_id == channel_id)
            .where(live_invite_filter(now))
        )
        return int(self.db.execute(stmt).scalar_one())

    def _get_live_invite(self, invite_id: str, now: int) -> ChannelInvite:
        invite = self.db.execute(
            select(ChannelInvite)
            .where(ChannelInvite.id == invite_id)
            .where(live_invite_filter(now))
        ).scalar_one_or_none()
        if invite is None:
            raise NotFoundError("Invite not found")
        return invite

    def issue_invite(
        self,
        device_id: str,
        channel_id: str,
        passcode: Any,
        encrypted_encrypt_key: Any,
        origin_public_key: Any,
    ) -> InviteCreated:
        """Create an invite for a channel the caller may invite to.

        Raises:
            BadInputError: If the key blob or origin public key is malformed
            ForbiddenError: On passcode mismatch or missing capability
            LimitExceededError: If the channel has too many invites or devices
        """
        channel = self.passcodes.authenticate_channel(channel_id, passcode)
        self.permissions.authorize(device_id, channel_id, Capability.CREATE_INVITE)
        validate_encrypted_encrypt_key(encrypted_encrypt_key)
        if not origin_public_key:
            raise BadInputError("Origin public key is required")
        validate_ecdh_public_key(origin_public_key, "origin public key")

        now = epoch_seconds()
        channel_type = channel_type_of(channel.channel_type)
        if self._count_live_invites(channel_id, now) > settings.max_invites_per_channel:
            raise LimitExceededError("Invite limit reached for this channel")

        devices = self.permissions.count_devices_for_channel(channel_id)
        if channel_type is ChannelType.BIDIRECTIONAL:
            if devices > MAX_BIDIRECTIONAL_DEVICES - 1:
                raise LimitExceededError("The channel already has a paired device")
            ttl = settings.bidirectional_invite_ttl_seconds
        else:
            if devices > settings.max_unidirectional_devices:
                raise LimitExceededError("The channel has reached its device limit")
            ttl = settings.unidirectional_invite_ttl_seconds

        invite_passcode = random_passcode(INVITE_PASSCODE_BYTES)
        hashed = generate_hmac(invite_passcode)
        invite = ChannelInvite(
            id=str(uuid.uuid4()),
            channel_id=channel_id,
            channel_type=channel_type.value,
            creation_timestamp=now,
            expires=now + ttl,
            channel_passcode=passcode,
            encrypted_encrypt_key=encrypted_encrypt_key,
            origin_public_key=origin_public_key,
            passcode_hash=hashed.hash,
            passcode_hash_salt=hashed.salt,
            invite_accepts_count=0,
        )
        self.db.add(invite)
        self.db.commit()
        self.events.record("channel:invite:created", channel_type=channel_type.value)
        return InviteCreated(
            id=invite.id,
            channel_id=channel_id,
            channel_type=channel_type,
            creation_timestamp=invite.creation_timestamp,
            expires=invite.expires,
            passcode=invite_passcode,
        )

    def list_invites(self, device_id: str, channel_id: str, passcode: Any) -> list[ChannelInvite]:
        """Return the channel's live invites."""
        self.passcodes.authenticate_channel(channel_id, passcode)
        self.permissions.authorize(device_id, channel_id, Capability.CREATE_INVITE)
        stmt = (
            select(ChannelInvite)
            .where(ChannelInvite.channel_id == channel_id)
            .where(live_invite_filter(epoch_seconds()))
            .order_by(ChannelInvite.creation_timestamp)
        )
        return list(self.db.execute(stmt).scalars().all())

    def has_outstanding_invite(self, device_id: str, channel_id: str, passcode: Any) -> bool:
        """Return True if the channel has at least one live invite."""
        self.passcodes.authenticate_channel(channel_id, passcode)
        self.permissions.authorize(device_id, channel_id, Capability.READ_INVITE_LIST)
        return self._count_live_invites(channel_id, epoch_seconds()) > 0

    def delete_invite(self, device_id: str, channel_id: str, invite_id: str, passcode: Any) -> None:
        """Remove an invite; deleting an invite that no longer exists succeeds.

        Raises:
            BadInputError: If the invite belongs to a different channel
        """
        self.passcodes.authenticate_channel(channel_id, passcode)
        invite = self.db.get(ChannelInvite, invite_id)
        if invite is None:
            return
        if invite.channel_id != channel_id:
            raise BadInputError("Invite does not belong to this channel")
        self.permissions.authorize(device_id, channel_id, Capability.DELETE_INVITE)
        self.db.execute(delete(ChannelInvite).where(ChannelInvite.id == invite_id))
        self.db.commit()
        self.events.record("channel:invite:deleted")

    def check_invite(self, invite_id: str) -> ChannelType:
        """Return the channel type of a live invite without any authentication."""
        invite = self._get_live_invite(invite_id, epoch_seconds())
        self.events.record("channel:invite:validated", channel_type=invite.channel_type)
        return channel_type_of(invite.channel_type)

    def consume_invite(
        self,
        device_id: str,
        invite_id: str,
        passcode: Any,
        receiver_public_key: dict[str, Any] | None = None,
    ) -> InviteConsumed:
        """Pair the calling device with the invite's channel.

        Args:
            device_id: Device accepting the invite
            invite_id: Invite being accepted
            passcode: The invite's own passcode
            receiver_public_key: Joining device's public key; required for
                bidirectional invites and rejected for unidirectional ones

        Returns:
            Channel credentials and the escrowed key exchange material

        Raises:
            NotFoundError: If the invite (or its channel) does not exist, has
                expired or was already claimed
            BadInputError: If the receiver public key is missing, unexpected or
                malformed
            ForbiddenError: If the invite passcode does not match
            LimitExceededError: If the channel cannot take another device
        """
        now = epoch_seconds()
        invite = self._get_live_invite(invite_id, now)
        channel = self.db.get(Channel, invite.channel_id)
        if channel is None:
            raise NotFoundError("Invite not found")
        channel_type = channel_type_of(channel.channel_type)

        if channel_type is ChannelType.BIDIRECTIONAL:
            if receiver_public_key is None:
                raise BadInputError("Receiver public key is required")
            validate_ecdh_public_key(receiver_public_key, "receiver public key")
            self.passcodes.verify_invite(invite, passcode)
            self._consume_bidirectional(device_id, invite, receiver_public_key, now)
        else:
            if receiver_public_key is not None:
                raise BadInputError("Receiver public key is not used by unidirectional invites")
            self.passcodes.verify_invite(invite, passcode)
            self._consume_unidirectional(device_id, invite)

        self.db.commit()
        return InviteConsumed(
            channel_id=channel.id,
            channel_name=channel.name,
            channel_type=channel_type,
            channel_passcode=invite.channel_passcode,
            creation_timestamp=channel.creation_timestamp,
            update_timestamp=channel.update_timestamp,
            encrypted_encrypt_key=invite.encrypted_encrypt_key,
            origin_public_key=invite.origin_public_key,
        )

    def _consume_bidirectional(
        self,
        device_id: str,
        invite: ChannelInvite,
        receiver_public_key: dict[str, Any],
        now: int,
    ) -> None:
        channel_id = invite.channel_id
        if self.permissions.count_devices_for_channel(channel_id) > MAX_BIDIRECTIONAL_DEVICES - 1:
            raise LimitExceededError("The channel already has a paired device")

        invites = ChannelInvite.__table__
        claimed = self.db.execute(
            update(invites)
            .where(invites.c.id == invite.id)
            .where(live_invite_filter(now))
            .values(consumed_timestamp=now)
            .returning(invites.c.id)
        ).scalar_one_or_none()
        if claimed is None:
            # Another device claimed it first
            raise NotFoundError("Invite not found")

        try:
            self.permissions.create_edge(
                device_id,
                channel_id,
                BIDIRECTIONAL_JOINER_CAPABILITIES,
                temp_public_key=receiver_public_key,
            )
        except EdgeAlreadyExistsError:
            self.events.record("channel:invite:consumed-existing")
            return

        if self.permissions.count_devices_for_channel(channel_id) > MAX_BIDIRECTIONAL_DEVICES:
            # Undo both the claim and the edge
            self.db.rollback()
            raise LimitExceededError("The channel already has a paired device")
        self.events.record("channel:invite:consumed", channel_type=ChannelType.BIDIRECTIONAL.value)

    def _consume_unidirectional(self, device_id: str, invite: ChannelInvite) -> None:
        try:
            self.permissions.create_edge(
                device_id,
                invite.channel_id,
                UNIDIRECTIONAL_JOINER_CAPABILITIES,
            )
        except EdgeAlreadyExistsError:
            self.events.record("channel:invite:consumed-existing")
            return

        invites = ChannelInvite.__table__
        self.db.execute(
            update(invites)
            .where(invites.c.id == invite.id)
            .values(invite_accepts_count=invites.c.invite_accepts_count + 1)
        )
        self.db.expire(invite, ["invite_accepts_count"])
        self.events.record("channel:invite:consumed", channel_type=ChannelType.UNIDIRECTIONAL.value)
