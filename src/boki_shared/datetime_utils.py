"""
Datetime utilities shared by the order, ban and report services.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """
    Get current UTC time (timezone-aware).
    """
    return datetime.now(timezone.utc)


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """
    Parse a store timestamp into an aware UTC datetime.

    PostgREST returns ISO-8601 strings, sometimes with a trailing ``Z``.
    Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def business_date(value: datetime | str, tz: ZoneInfo | str) -> date:
    """Calendar date of ``value`` as seen in the business time zone."""
    if isinstance(tz, str):
        tz = ZoneInfo(tz)
    moment = parse_timestamp(value)
    if moment is None:
        raise ValueError("timestamp is required")
    return moment.astimezone(tz).date()


def business_day_bounds(day: date, tz: ZoneInfo | str) -> tuple[datetime, datetime]:
    """UTC instants ``[start, end)`` covering one business-local calendar day."""
    if isinstance(tz, str):
        tz = ZoneInfo(tz)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
