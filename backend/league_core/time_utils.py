"""Helpers for working with UTC datetimes.

Timestamps are stored as naive UTC values, so everything handed to the
models goes through :func:`to_naive_utc`.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def coerce_utc(value: datetime | None) -> datetime | None:
    """Return a UTC-normalized datetime, assuming naive values are already UTC."""

    if value is None:
        return None

    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)

    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime | None) -> datetime | None:
    coerced = coerce_utc(value)
    return coerced.replace(tzinfo=None) if coerced is not None else None


def days_between(earlier: datetime, later: datetime) -> float:
    """Whole-and-fractional days from ``earlier`` to ``later``."""

    delta = coerce_utc(later) - coerce_utc(earlier)
    return delta.total_seconds() / 86400
