"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Header, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from confichannel.core.errors import UnauthorizedError
from confichannel.core.security import authenticate_device_token
from confichannel.db.session import get_db
from confichannel.services.events import EventSink, get_event_sink

REFRESHED_TOKEN_HEADER = "X-Device-Token"
PASSCODE_HEADER = "X-Confi-Passcode"

# Telemetry event recorded when a request to the named endpoint is rejected
ERROR_EVENTS: dict[str, str] = {
    "create_channel": "channel:creationError",
    "pull_message": "channel:pullError",
    "push_message": "channel:pushError",
    "delete_channel": "channel:deleteError",
    "pop_public_keys": "channel:popPublicKeysError",
    "outstanding_invite_flag": "channel:inviteListError",
    "create_invite": "channel:inviteCreationError",
    "list_invites": "channel:inviteListError",
    "delete_invite": "channel:inviteDeleteError",
    "check_invite": "channel:inviteCheckError",
    "consume_invite": "channel:inviteConsumeError",
    "create_subscription": "subscription:creationError",
    "active_subscription": "subscription:activeError",
}
DEFAULT_ERROR_EVENT = "request:validationError"

# HTTP Bearer scheme for device tokens; missing credentials raise our own 401
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
EventSinkDep = Annotated[EventSink, Depends(get_event_sink)]


def get_current_device_id(
    response: Response,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Resolve the calling device from its bearer token.

    When the token is close to expiry a replacement is returned in the
    ``X-Device-Token`` response header.

    Args:
        response: Outgoing response, used to attach a refreshed token
        credentials: HTTP Bearer token credentials

    Returns:
        The device id carried by the token

    Raises:
        UnauthorizedError: If the token is missing or invalid
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    identity = authenticate_device_token(credentials.credentials)
    if identity.refreshed_token is not None:
        response.headers[REFRESHED_TOKEN_HEADER] = identity.refreshed_token
    return identity.device_id


def error_event_for(endpoint_name: str) -> str:
    return ERROR_EVENTS.get(endpoint_name, DEFAULT_ERROR_EVENT)


def get_passcode(
    passcode: Annotated[str | None, Header(alias=PASSCODE_HEADER)] = None,
) -> str | None:
    """Return the passcode presented out of band in the request headers."""
    return passcode


CurrentDeviceDep = Annotated[str, Depends(get_current_device_id)]
PasscodeDep = Annotated[str | None, Depends(get_passcode)]
