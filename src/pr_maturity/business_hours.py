"""Business-hours arithmetic for pull request close time.

Elapsed time is measured only inside a weekly Monday-Friday work window
expressed in a local time zone, with one carve-out: a pull request opened
outside the work window and closed at or before the morning cutoff is
considered handled immediately, so its whole wall-clock span counts.
"""

from __future__ import annotations

import math
from datetime import datetime, time, timedelta
from typing import NamedTuple, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigurationError

_SLICE = timedelta(hours=1)
_WORK_DAYS = range(0, 5)


class LocalParts(NamedTuple):
    """Local calendar parts of an instant, truncated to the minute."""

    weekday: int
    hour: int
    minute: int

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute

    @property
    def is_work_day(self) -> bool:
        return self.weekday in _WORK_DAYS


def resolve_timezone(tz_name: str) -> ZoneInfo:
    """Return the ``ZoneInfo`` for an IANA identifier.

    Raises:
        ConfigurationError: If the identifier is unknown.
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown time zone '{tz_name}'.") from exc


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` local clock time.

    Raises:
        ConfigurationError: If the value is not a valid 24-hour clock time.
    """
    hours, sep, minutes = value.strip().partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit():
        raise ConfigurationError(f"Invalid clock time '{value}': expected HH:MM.")
    try:
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid clock time '{value}': expected HH:MM.") from exc


def parse_work_hours(value: str) -> Tuple[time, time]:
    """Parse an ``HH:MM-HH:MM`` work window into start and end times.

    Raises:
        ConfigurationError: If the window is malformed or ends before it starts.
    """
    start_text, sep, end_text = value.partition("-")
    if not sep:
        raise ConfigurationError(f"Invalid work hours '{value}': expected HH:MM-HH:MM.")

    work_start = parse_clock(start_text)
    work_end = parse_clock(end_text)
    if work_end <= work_start:
        raise ConfigurationError(f"Invalid work hours '{value}': end must be after start.")
    return work_start, work_end


def to_local_parts(instant: datetime, zone: ZoneInfo) -> LocalParts:
    """Convert an aware instant into local weekday, hour and minute."""
    local = instant.astimezone(zone)
    return LocalParts(weekday=local.weekday(), hour=local.hour, minute=local.minute)


def _minute_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def business_minutes_between(
    start: datetime,
    end: datetime,
    tz_name: str,
    work_start: time,
    work_end: time,
    morning_cutoff: time,
) -> int:
    """Count working minutes between two aware instants.

    Business logic:
    - ``end <= start`` yields ``0``.
    - Only Monday to Friday contribute.
    - When ``start`` falls outside the work window and ``end`` is at or before
      the morning cutoff (local time of day), the full elapsed span counts.
    - Otherwise the span is walked in one-hour slices and each slice that
      starts on a work day contributes its overlap with
      ``[effective_start, work_end]``. ``effective_start`` is raised to the
      cutoff for the whole walk when the original start was outside the
      window.

    Returns:
        Non-negative whole minutes.
    """
    if end <= start:
        return 0

    zone = resolve_timezone(tz_name)
    ws = _minute_of_day(work_start)
    we = _minute_of_day(work_end)
    cutoff = _minute_of_day(morning_cutoff)

    start_parts = to_local_parts(start, zone)
    end_parts = to_local_parts(end, zone)

    start_in_window = start_parts.is_work_day and ws <= start_parts.minute_of_day <= we

    if not start_in_window and end_parts.minute_of_day <= cutoff:
        return math.floor((end - start).total_seconds() / 60 + 0.5)

    effective_start = ws if start_in_window else max(ws, cutoff)
    total = 0
    current = start

    while current < end:
        following = min(end, current + _SLICE)
        current_parts = to_local_parts(current, zone)

        if current_parts.is_work_day:
            following_parts = to_local_parts(following, zone)
            lower = _clamp(current_parts.minute_of_day, effective_start, we)
            upper = _clamp(following_parts.minute_of_day, effective_start, we)
            if upper > lower:
                total += upper - lower

        current = following

    return total
