"""SQLAlchemy models for the ConfiChannel relay."""

from .channel import Channel, ChannelType, EncryptionMode
from .device import Device, DeviceChannelEdge
from .invite import ChannelInvite
from .system import AppSetting
from .subscription import Subscription

__all__ = [
    "Channel", "ChannelType", "EncryptionMode",
    "Device", "DeviceChannelEdge",
    "ChannelInvite",
    "AppSetting",
    "Subscription",
]
