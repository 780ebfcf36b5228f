"""Channel relay endpoints for the ConfiChannel API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Response, status

from confichannel.api.v1.dependencies import (
    ERROR_EVENTS,
    CurrentDeviceDep,
    EventSinkDep,
    PasscodeDep,
    SessionDep,
)
from confichannel.schemas.channel import (
    ChannelCreate,
    ChannelCreated,
    ChannelPulled,
    ChannelPush,
    ChannelPushed,
    OutstandingInviteFlag,
    PublicKeys,
)
from confichannel.services.channels import ChannelRelay
from confichannel.services.events import record_failures
from confichannel.services.invites import InviteService

router = APIRouter(prefix="/channels", tags=["channels"])


@router.post("", response_model=ChannelCreated, status_code=status.HTTP_201_CREATED)
async def create_channel(
    payload: ChannelCreate,
    device_id: CurrentDeviceDep,
    db: SessionDep,
    events: EventSinkDep,
) -> ChannelCreated:
    """Create a channel owned by the calling device."""
    with record_failures(events, ERROR_EVENTS["create_channel"]):
        return ChannelRelay(db, events).create_channel(
            device_id,
            payload.channel_type,
            payload.encryption_mode,
            payload.message,
        )


@router.get("/{channel_id}", response_model=ChannelPulled)
async def pull_message(
    channel_id: uuid.UUID,
    response: Response,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> ChannelPulled:
    """Return the queued message and clear it from the channel."""
    response.headers["Cache-Control"] = "no-store"
    with record_failures(events, ERROR_EVENTS["pull_message"]):
        return ChannelRelay(db, events).pull(device_id, str(channel_id), passcode)


@router.post("/{channel_id}", response_model=ChannelPushed)
async def push_message(
    channel_id: uuid.UUID,
    payload: ChannelPush,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> ChannelPushed:
    """Replace the channel's message, or clear it when none is sent."""
    with record_failures(events, ERROR_EVENTS["push_message"]):
        update_timestamp = ChannelRelay(db, events).push(
            device_id,
            str(channel_id),
            passcode,
            payload.encryption_mode,
            payload.message,
            payload.sender_public_key,
        )
    return ChannelPushed(update_timestamp=update_timestamp)


@router.delete("/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_channel(
    channel_id: uuid.UUID,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> None:
    """Delete the channel, or leave it when the caller only owns its edge."""
    with record_failures(events, ERROR_EVENTS["delete_channel"]):
        ChannelRelay(db, events).delete_channel(device_id, str(channel_id), passcode)


@router.post("/{channel_id}/temp-public-keys", response_model=PublicKeys)
async def pop_public_keys(
    channel_id: uuid.UUID,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> PublicKeys:
    """Collect the public keys left by devices that joined through invites."""
    with record_failures(events, ERROR_EVENTS["pop_public_keys"]):
        keys = ChannelRelay(db, events).pop_public_keys(device_id, str(channel_id), passcode)
    return PublicKeys(public_keys=keys)


@router.get("/{channel_id}/outstanding-invite-flag", response_model=OutstandingInviteFlag)
async def outstanding_invite_flag(
    channel_id: uuid.UUID,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> OutstandingInviteFlag:
    with record_failures(events, ERROR_EVENTS["outstanding_invite_flag"]):
        flag = InviteService(db, events).has_outstanding_invite(
            device_id, str(channel_id), passcode
        )
    return OutstandingInviteFlag(has_outstanding_invite=flag)
