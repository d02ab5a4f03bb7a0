"""Injectable source of "now" and day-granularity date helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Protocol

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Manually driven clock for deterministic tests."""

    def __init__(self, current: datetime):
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self._current = current

    def advance(self, **kwargs: float) -> None:
        self._current = self._current + timedelta(**kwargs)


def iso_now(clock: Clock) -> str:
    return format_timestamp(clock.now())


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(ISO_FORMAT)


def parse_timestamp(raw: Optional[str]) -> datetime:
    """Parse an ISO-8601 timestamp; missing or malformed values sort as the epoch."""
    if not raw:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_day(raw: str) -> date:
    """Day part of a date or timestamp string ("2024-05-01" or "2024-05-01T08:00:00Z")."""
    return date.fromisoformat(raw.strip()[:10])


def days_between(start: date, end: date) -> int:
    return (end - start).days
