"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .channel import (
    ChannelCreate,
    ChannelCreated,
    ChannelPulled,
    ChannelPush,
    ChannelPushed,
    EncryptedMessage,
    OutstandingInviteFlag,
    PublicKeys,
)
from .device import DeviceCreated, DeviceStatus
from .invite import (
    InviteCheck,
    InviteConsume,
    InviteConsumed,
    InviteCreate,
    InviteCreated,
    InviteSummary,
)
from .subscription import ActiveSubscription, SubscriptionCreated

__all__ = [
    "ChannelCreate", "ChannelCreated", "ChannelPulled", "ChannelPush", "ChannelPushed",
    "EncryptedMessage", "OutstandingInviteFlag", "PublicKeys",
    "DeviceCreated", "DeviceStatus",
    "InviteCheck", "InviteConsume", "InviteConsumed", "InviteCreate", "InviteCreated",
    "InviteSummary",
    "ActiveSubscription", "SubscriptionCreated",
]
