"""Telemetry event sink.

Events are fire-and-forget: recording never raises into the caller and
never influences the response.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

from confichannel.core.errors import RelayError
from confichannel.db.time import epoch_seconds

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Anything that can record a named telemetry event."""

    def record(self, event_name: str, **attributes: Any) -> None:
        ...


class LoggingEventSink:
    """Default sink writing events to the ``confichannel.events`` logger."""

    def __init__(self, logger_name: str = "confichannel.events") -> None:
        self._logger = logging.getLogger(logger_name)

    def record(self, event_name: str, **attributes: Any) -> None:
        try:
            self._logger.info(
                "%s",
                event_name,
                extra={"event_name": event_name, "timestamp": epoch_seconds(), **attributes},
            )
        except Exception:  # pragma: no cover - telemetry must not break requests
            logger.exception("Failed to record event %s", event_name)


_event_sink: EventSink = LoggingEventSink()


def get_event_sink() -> EventSink:
    """Return the process wide event sink."""
    return _event_sink


@contextmanager
def record_failures(sink: EventSink, event_name: str) -> Iterator[None]:
    """Record ``event_name`` with the error code when a relay error escapes."""
    try:
        yield
    except RelayError as exc:
        sink.record(event_name, error_type=exc.code)
        raise
