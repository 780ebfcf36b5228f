"""Error taxonomy shared by the relay services and the HTTP layer."""

from __future__ import annotations

from fastapi import status


class RelayError(Exception):
    """Base exception raised for relay failures.

    Each subclass carries the HTTP status and the machine readable code the
    API layer renders. ``detail`` is safe to show to callers.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "relay_error"
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadInputError(RelayError):
    """Raised when a request is malformed or violates a payload rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_input"
    default_detail = "Bad input"


class UnauthorizedError(RelayError):
    """Raised when the device token is missing, invalid or expired."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_detail = "Could not validate credentials"


class ForbiddenError(RelayError):
    """Raised on passcode mismatch or missing capability.

    The detail is intentionally uniform so callers cannot tell which check
    failed.
    """

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Forbidden"


class NotFoundError(RelayError):
    """Raised when a channel or invite does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class LimitExceededError(RelayError):
    """Raised when a tier or protocol limit is reached."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "limit_exceeded"
    default_detail = "Limit exceeded"


class InternalInconsistencyError(RelayError):
    """Raised when stored state contradicts the data model."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_inconsistency"
    default_detail = "Internal error"


class EdgeAlreadyExistsError(RelayError):
    """Raised when a device already holds an edge to the channel."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "edge_exists"
    default_detail = "Device is already connected to this channel"
