"""Clock helpers for storage defaults and sync timing."""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt

type Clock = cabc.Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    """Return the current time as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


__all__ = ["Clock", "utcnow"]
