"""Channel relay: create, push, pull and delete channels.

Every operation on an existing channel authenticates the channel passcode,
then checks the caller's capability, then validates any payload, and only
then touches the message slot.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from confichannel.core.capabilities import CREATOR_CAPABILITIES, Capability
from confichannel.core.errors import (
    BadInputError,
    ForbiddenError,
    InternalInconsistencyError,
    LimitExceededError,
)
from confichannel.core.security import generate_hmac, random_channel_name, random_passcode
from confichannel.core.settings import settings
from confichannel.db.time import epoch_seconds
from confichannel.models import Channel, ChannelInvite, ChannelType, EncryptionMode
from confichannel.schemas.channel import ChannelCreated, ChannelPulled, EncryptedMessage
from confichannel.services.events import EventSink, get_event_sink
from confichannel.services.invites import channel_type_of
from confichannel.services.passcodes import PasscodeAuthenticator
from confichannel.services.payloads import SYMMETRIC_MODES, PayloadValidator, carries_ciphertext
from confichannel.services.permissions import PermissionStore
from confichannel.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)


class ChannelRelay:
    """Single-slot message relay between the devices paired to a channel."""

    def __init__(self, db: Session, events: EventSink | None = None) -> None:
        self.db = db
        self.events = events or get_event_sink()
        self.passcodes = PasscodeAuthenticator(db)
        self.permissions = PermissionStore(db)
        self.subscriptions = SubscriptionService(db, self.events)

    def _validator_for(self, device_id: str) -> PayloadValidator:
        return PayloadValidator(subscribed=self.subscriptions.has_active_subscription(device_id))

    def _lock_channel(self, channel_id: str) -> Channel:
        """Re-read a channel row under a row lock."""
        channel = self.db.execute(
            select(Channel)
            .where(Channel.id == channel_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if channel is None:
            # Deleted between authentication and the lock
            raise ForbiddenError()
        return channel

    def create_channel(
        self,
        device_id: str,
        channel_type: ChannelType | str,
        encryption_mode: EncryptionMode | str = EncryptionMode.NONE,
        message: EncryptedMessage | None = None,
    ) -> ChannelCreated:
        """Create a channel and pair the calling device to it with full rights.

        Args:
            device_id: Creating device, granted every capability
            channel_type: ``bidirectional`` or ``unidirectional``
            encryption_mode: Mode of the initial message, ``none`` without one
            message: Optional initial message (bidirectional channels only)

        Returns:
            The new channel, including its plaintext passcode. The passcode is
            not stored and cannot be retrieved again.

        Raises:
            BadInputError: If the type, mode or message is not acceptable
            LimitExceededError: If the device already holds its tier's
                maximum number of channels
        """
        try:
            channel_type = ChannelType(channel_type)
            encryption_mode = EncryptionMode(encryption_mode)
        except ValueError as exc:
            raise BadInputError("Invalid channel type or encryption mode") from exc
        if not carries_ciphertext(message):
            message = None

        validator = self._validator_for(device_id)
        limit = (
            settings.max_channels_with_subscription
            if validator.subscribed
            else settings.max_channels_without_subscription
        )
        if self.permissions.count_channels_for_device(device_id) >= limit:
            raise LimitExceededError(f"Channel limit ({limit}) exceeded")

        if channel_type is ChannelType.BIDIRECTIONAL:
            if message is not None:
                if encryption_mode not in SYMMETRIC_MODES:
                    raise BadInputError("Invalid encryption mode for a new channel")
                validator.validate(channel_type, encryption_mode, message)
            elif encryption_mode is not EncryptionMode.NONE:
                raise BadInputError("Encryption mode must be none without a message")
        else:
            if message is not None:
                raise BadInputError("Unidirectional channels are created without a message")
            if encryption_mode is not EncryptionMode.NONE:
                raise BadInputError("Encryption mode must be none without a message")

        channel_id = str(uuid.uuid4())
        if self.db.get(Channel, channel_id) is not None:
            raise InternalInconsistencyError("Generated channel id already exists")
        # Drop anything left behind under this id by an expired channel
        self.db.execute(delete(ChannelInvite).where(ChannelInvite.channel_id == channel_id))
        self.permissions.remove_edges_for_channel(channel_id)

        passcode = random_passcode()
        hashed = generate_hmac(passcode)
        now = epoch_seconds()
        channel = Channel(
            id=channel_id,
            channel_type=channel_type.value,
            name=random_channel_name(),
            creation_timestamp=now,
            update_timestamp=now,
            passcode_hash=hashed.hash,
            passcode_hash_salt=hashed.salt,
            encryption_mode=encryption_mode.value,
        )
        if message is not None:
            channel.ciphertext = message.ciphertext
            channel.iv = message.iv
            channel.salt = message.salt
        self.db.add(channel)
        self.permissions.create_edge(device_id, channel_id, CREATOR_CAPABILITIES)
        self.db.commit()

        self.events.record("channel:created", channel_type=channel_type.value)
        logger.debug("Device %s created %s channel %s", device_id, channel_type.value, channel_id)
        return ChannelCreated(
            id=channel.id,
            name=channel.name,
            channel_type=channel_type,
            creation_timestamp=channel.creation_timestamp,
            update_timestamp=channel.update_timestamp,
            passcode=passcode,
            encryption_mode=encryption_mode,
        )

    def push(
        self,
        device_id: str,
        channel_id: str,
        passcode: Any,
        encryption_mode: EncryptionMode | str,
        message: EncryptedMessage | None = None,
        sender_public_key: dict[str, Any] | None = None,
    ) -> int:
        """Replace the channel's message, or clear it when no ciphertext is given.

        Returns:
            The channel's new update timestamp

        Raises:
            BadInputError: If the payload does not fit the mode or channel type
            ForbiddenError: On passcode mismatch or missing push capability
            LimitExceededError: If the ciphertext exceeds the tier limit
            InternalInconsistencyError: If the stored channel type is unknown
        """
        channel = self.passcodes.authenticate_channel(channel_id, passcode)
        self.permissions.authorize(device_id, channel_id, Capability.PUSH_MESSAGE)
        try:
            encryption_mode = EncryptionMode(encryption_mode)
        except ValueError as exc:
            raise BadInputError("Invalid encryption mode") from exc
        channel_type = channel_type_of(channel.channel_type)
        if not carries_ciphertext(message):
            message = None

        if message is not None:
            self._validator_for(device_id).validate(
                channel_type, encryption_mode, message, sender_public_key
            )
        else:
            if encryption_mode is not EncryptionMode.NONE:
                raise BadInputError("Encryption mode must be none without a message")
            if sender_public_key is not None:
                raise BadInputError("Sender public key requires a message")

        channel = self._lock_channel(channel_id)
        if message is None:
            channel.clear_message()
        else:
            channel.encryption_mode = encryption_mode.value
            channel.ciphertext = message.ciphertext
            channel.iv = message.iv
            channel.salt = message.salt
            channel.sender_public_key = sender_public_key
        channel.update_timestamp = epoch_seconds()
        update_timestamp = channel.update_timestamp
        self.db.commit()

        self.events.record(
            "channel:pushed",
            channel_type=channel_type.value,
            encryption_mode=encryption_mode.value,
        )
        return update_timestamp

    def pull(self, device_id: str, channel_id: str, passcode: Any) -> ChannelPulled:
        """Return the queued message and clear the slot in the same transaction."""
        self.passcodes.authenticate_channel(channel_id, passcode)
        self.permissions.authorize(device_id, channel_id, Capability.PULL_MESSAGE)

        channel = self._lock_channel(channel_id)
        channel_type = channel_type_of(channel.channel_type)
        previous_mode = EncryptionMode(channel.encryption_mode) if channel.encryption_mode else None
        previous_message = None
        if channel.has_message():
            previous_message = EncryptedMessage(
                ciphertext=channel.ciphertext,
                iv=channel.iv,
                salt=channel.salt,
            )
        previous_sender_key = channel.sender_public_key

        channel.clear_message()
        channel.update_timestamp = epoch_seconds()
        result = ChannelPulled(
            id=channel.id,
            channel_type=channel_type,
            creation_timestamp=channel.creation_timestamp,
            update_timestamp=channel.update_timestamp,
            encryption_mode=previous_mode,
            message=previous_message,
            sender_public_key=previous_sender_key,
        )
        self.db.commit()
        self.events.record("channel:pulled")
        return result

    def delete_channel(self, device_id: str, channel_id: str, passcode: Any) -> None:
        """Delete the channel, or only the caller's edge, depending on rights.

        Deleting a channel that does not exist succeeds without effect.

        Raises:
            ForbiddenError: On passcode mismatch, or if the caller may neither
                delete the channel nor remove itself from it
        """
        if self.db.get(Channel, channel_id) is None:
            return
        self.passcodes.authenticate_channel(channel_id, passcode)

        if self.permissions.has_capabilities(device_id, channel_id, Capability.DELETE_CHANNEL):
            self.db.execute(delete(ChannelInvite).where(ChannelInvite.channel_id == channel_id))
            self.permissions.remove_edges_for_channel(channel_id)
            self.db.execute(delete(Channel).where(Channel.id == channel_id))
            self.db.commit()
            self.events.record("channel:deleted")
            return

        if self.permissions.has_capabilities(device_id, channel_id, Capability.DELETE_OWN_EDGE):
            self.remove_device(channel_id, device_id)
            self.events.record("channel:device-removed")
            return

        raise ForbiddenError()

    def remove_device(self, channel_id: str, device_id: str) -> None:
        """Remove a single device's edge from a channel."""
        self.permissions.remove_edge(device_id, channel_id)
        self.db.commit()

    def pop_public_keys(self, device_id: str, channel_id: str, passcode: Any) -> list[dict[str, Any]]:
        """Return and clear the temporary public keys left by joining devices."""
        self.passcodes.authenticate_channel(channel_id, passcode)
        self.permissions.authorize(device_id, channel_id, Capability.POP_PUBLIC_KEY)
        keys = self.permissions.pop_temp_public_keys(channel_id)
        self.db.commit()
        self.events.record("channel:public-keys-popped", count=len(keys))
        return keys
