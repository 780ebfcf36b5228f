"""Invite-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from confichannel.models import ChannelType


class InviteCreate(BaseModel):
    """Schema for issuing an invite to a channel."""

    encrypted_encrypt_key: StrictStr = Field(
        ..., description="Channel key wrapped for the invitee, as iv.salt.ciphertext"
    )
    origin_public_key: dict[str, Any] = Field(
        ..., description="Inviter's ECDH P-384 public key as a JSON Web Key"
    )

    model_config = ConfigDict(extra="forbid")


class InviteCreated(BaseModel):
    id: str
    channel_id: str
    channel_type: ChannelType
    creation_timestamp: int
    expires: int
    passcode: str


class InviteSummary(BaseModel):
    id: str
    channel_id: str
    channel_type: ChannelType
    creation_timestamp: int
    expires: int
    invite_accepts_count: int

    model_config = ConfigDict(from_attributes=True)


class InviteCheck(BaseModel):
    channel_type: ChannelType


class InviteConsume(BaseModel):
    """Schema for accepting an invite."""

    receiver_public_key: dict[str, Any] | None = Field(
        None, description="Joining device's public key; bidirectional invites only"
    )

    model_config = ConfigDict(extra="forbid")


class InviteConsumed(BaseModel):
    """Credentials and key exchange material handed to the joining device."""

    channel_id: str
    channel_name: str
    channel_type: ChannelType
    channel_passcode: str
    creation_timestamp: int
    update_timestamp: int
    encrypted_encrypt_key: str
    origin_public_key: dict[str, Any]
