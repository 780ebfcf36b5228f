"""Invite endpoints for pairing devices with channels."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from confichannel.api.v1.dependencies import (
    ERROR_EVENTS,
    CurrentDeviceDep,
    EventSinkDep,
    PasscodeDep,
    SessionDep,
)
from confichannel.schemas.invite import (
    InviteCheck,
    InviteConsume,
    InviteConsumed,
    InviteCreate,
    InviteCreated,
    InviteSummary,
)
from confichannel.services.events import record_failures
from confichannel.services.invites import InviteService

router = APIRouter(prefix="/channels", tags=["invites"])


@router.post(
    "/{channel_id}/invites",
    response_model=InviteCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_invite(
    channel_id: uuid.UUID,
    payload: InviteCreate,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> InviteCreated:
    """Issue an invite carrying the escrowed channel key."""
    with record_failures(events, ERROR_EVENTS["create_invite"]):
        return InviteService(db, events).issue_invite(
            device_id,
            str(channel_id),
            passcode,
            payload.encrypted_encrypt_key,
            payload.origin_public_key,
        )


@router.get("/{channel_id}/invites", response_model=list[InviteSummary])
async def list_invites(
    channel_id: uuid.UUID,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> list[InviteSummary]:
    """List the channel's live invites."""
    with record_failures(events, ERROR_EVENTS["list_invites"]):
        invites = InviteService(db, events).list_invites(device_id, str(channel_id), passcode)
    return [InviteSummary.model_validate(invite) for invite in invites]


@router.delete(
    "/{channel_id}/invites/{invite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invite(
    channel_id: uuid.UUID,
    invite_id: uuid.UUID,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
) -> None:
    """Revoke an invite before it is used."""
    with record_failures(events, ERROR_EVENTS["delete_invite"]):
        InviteService(db, events).delete_invite(
            device_id, str(channel_id), str(invite_id), passcode
        )


@router.get("/invites/{invite_id}", response_model=InviteCheck)
async def check_invite(
    invite_id: uuid.UUID,
    device_id: CurrentDeviceDep,
    db: SessionDep,
    events: EventSinkDep,
) -> InviteCheck:
    """Tell a device that has not paired yet what kind of channel an invite opens."""
    with record_failures(events, ERROR_EVENTS["check_invite"]):
        channel_type = InviteService(db, events).check_invite(str(invite_id))
    return InviteCheck(channel_type=channel_type)


@router.post("/invites/{invite_id}", response_model=InviteConsumed)
async def consume_invite(
    invite_id: uuid.UUID,
    device_id: CurrentDeviceDep,
    passcode: PasscodeDep,
    db: SessionDep,
    events: EventSinkDep,
    payload: InviteConsume | None = None,
) -> InviteConsumed:
    """Accept an invite using the invite passcode."""
    receiver_public_key = payload.receiver_public_key if payload is not None else None
    with record_failures(events, ERROR_EVENTS["consume_invite"]):
        return InviteService(db, events).consume_invite(
            device_id, str(invite_id), passcode, receiver_public_key
        )
