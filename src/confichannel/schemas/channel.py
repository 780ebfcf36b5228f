"""Channel-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from confichannel.models import ChannelType, EncryptionMode


class EncryptedMessage(BaseModel):
    """Opaque ciphertext plus the parameters the client needs to decrypt it."""

    ciphertext: StrictStr | None = Field(
        None, description="Client encrypted payload; empty or null clears the slot"
    )
    iv: StrictStr | None = Field(None, description="Initialisation vector, 16 characters")
    salt: StrictStr | None = Field(
        None, description="Key derivation salt, 24 characters; absent for public/private"
    )

    model_config = ConfigDict(extra="forbid")


class ChannelCreate(BaseModel):
    """Schema for creating a new channel."""

    channel_type: ChannelType
    encryption_mode: EncryptionMode = EncryptionMode.NONE
    message: EncryptedMessage | None = None

    model_config = ConfigDict(extra="forbid")


class ChannelCreated(BaseModel):
    """Channel details returned once, including the plaintext passcode."""

    id: str
    name: str
    channel_type: ChannelType
    creation_timestamp: int
    update_timestamp: int
    passcode: str
    encryption_mode: EncryptionMode | None = None


class ChannelPush(BaseModel):
    """Schema for replacing or clearing a channel's message slot."""

    encryption_mode: EncryptionMode
    message: EncryptedMessage | None = None
    sender_public_key: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")


class ChannelPushed(BaseModel):
    update_timestamp: int


class ChannelPulled(BaseModel):
    """Message slot contents as they were before the pull cleared them."""

    id: str
    channel_type: ChannelType
    creation_timestamp: int
    update_timestamp: int
    encryption_mode: EncryptionMode | None = None
    message: EncryptedMessage | None = None
    sender_public_key: dict[str, Any] | None = None


class PublicKeys(BaseModel):
    public_keys: list[dict[str, Any]]


class OutstandingInviteFlag(BaseModel):
    has_outstanding_invite: bool
