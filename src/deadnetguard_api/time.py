from __future__ import annotations

import datetime as dt
from typing import Callable


UtcNow = Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def get_utcnow() -> UtcNow:
    return utcnow


def as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)


def epoch_millis(value: dt.datetime | None) -> int:
    """Version stamp used by polling clients; 0 means "nothing yet"."""
    if value is None:
        return 0
    return int(as_utc(value).timestamp() * 1000)
