"""
Date/time helpers shared by the tracking and stats paths — framework-agnostic.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, NamedTuple, Optional


class LocalDay(NamedTuple):
    """A calendar day in the reference timezone, in both spellings."""

    iso: str  # "2024-06-01", stored on the daily counter
    compact: str  # "20240601", used as the log-key prefix


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_day(now: datetime, tz: tzinfo) -> LocalDay:
    """Return the calendar day of *now* as seen in *tz*."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(tz)
    return LocalDay(iso=local.strftime("%Y-%m-%d"), compact=local.strftime("%Y%m%d"))


def local_midnight(now: datetime, tz: tzinfo, days_back: int = 0) -> datetime:
    """Local midnight of the day *days_back* days before *now*'s local day."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=days_back)


def local_end_of_day(now: datetime, tz: tzinfo) -> datetime:
    """The last microsecond of *now*'s local day."""
    return local_midnight(now, tz) + timedelta(days=1, microseconds=-1)


def parse_datetime(value: Any, default_tz: tzinfo = timezone.utc) -> Optional[datetime]:
    """Parse a date/time value into a timezone-aware UTC datetime.

    Accepts:
    - ``None`` → ``None``
    - ``int`` / ``float`` → treated as Unix epoch seconds
    - ``str`` ending in ``"Z"`` → converted to ``+00:00`` before parsing
    - Any ISO 8601 string (``datetime.fromisoformat``)

    Naive datetimes (no ``tzinfo``) are read as wall-clock time in
    *default_tz* (UTC unless given).

    Returns:
        A timezone-aware ``datetime`` in UTC, or ``None`` if *value* is ``None``
        or cannot be parsed.
    """
    if value is None:
        return None
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        raw = str(value).strip()
        if raw.lstrip("-").isdigit():
            return datetime.fromtimestamp(int(raw), tz=timezone.utc)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        dt = datetime.fromisoformat(raw)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=default_tz)
        return dt.astimezone(timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None
