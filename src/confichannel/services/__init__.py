"""Business logic services for the ConfiChannel relay."""

from .channels import ChannelRelay
from .devices import DeviceService
from .events import EventSink, LoggingEventSink
from .invites import InviteService
from .passcodes import PasscodeAuthenticator
from .payloads import PayloadValidator
from .permissions import PermissionStore
from .subscriptions import SubscriptionService

__all__ = [
    "ChannelRelay",
    "DeviceService",
    "EventSink",
    "LoggingEventSink",
    "InviteService",
    "PasscodeAuthenticator",
    "PayloadValidator",
    "PermissionStore",
    "SubscriptionService",
]
