"""Version 1 API endpoints."""

from .endpoints import channels_router, devices_router, invites_router, subscriptions_router

__all__ = [
    "channels_router",
    "devices_router",
    "invites_router",
    "subscriptions_router",
]
