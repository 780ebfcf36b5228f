"""Time utilities for database models."""

import time


def epoch_seconds() -> int:
    """Return the current time as whole seconds since the Unix epoch."""
    return int(time.time())
