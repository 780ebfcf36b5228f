"""API endpoint modules for version 1."""

from .channels import router as channels_router
from .devices import router as devices_router
from .invites import router as invites_router
from .subscriptions import router as subscriptions_router

__all__ = [
    "channels_router",
    "devices_router",
    "invites_router",
    "subscriptions_router",
]
