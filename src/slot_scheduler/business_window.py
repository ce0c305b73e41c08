"""Business window: the day's bookable range as absolute UTC instants."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidConfigError, InvalidDateError


@dataclass(frozen=True)
class BusinessWindow:
    """Bookable range for one calendar date. start/end are UTC-aware datetimes."""
    date: date
    start: datetime
    end: datetime


def resolve_zone(name: str) -> ZoneInfo:
    """Look up an IANA zone id (e.g. 'America/New_York')."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as exc:
        raise InvalidConfigError(f"Unknown time zone: {name!r}") from exc


def calendar_date(year: int, month: int, day: int) -> date:
    try:
        return date(year, month, day)
    except (ValueError, TypeError) as exc:
        raise InvalidDateError(f"Invalid date {year}-{month}-{day}: {exc}") from exc


def parse_calendar_date(text: str) -> date:
    """Parse YYYY-MM-DD. Raises InvalidDateError for anything else."""
    parts = (text or "").strip().split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise InvalidDateError(f"Expected YYYY-MM-DD, got {text!r}")
    year, month, day = (int(p) for p in parts)
    return calendar_date(year, month, day)


def days_in_month(year: int, month: int) -> int:
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise InvalidDateError(f"Invalid month {year}-{month}")
    return calendar.monthrange(year, month)[1]


def _check_hours(start_hour: int, end_hour: int) -> None:
    for hour in (start_hour, end_hour):
        if not isinstance(hour, int) or not 0 <= hour < 24:
            raise InvalidConfigError(f"Business hour out of range [0, 24): {hour!r}")
    if start_hour >= end_hour:
        raise InvalidConfigError(
            f"Business start hour ({start_hour}) must be before end hour ({end_hour})"
        )


def resolve_window(
    day: date | str,
    time_zone: str,
    start_hour: int,
    end_hour: int,
) -> BusinessWindow:
    """
    Build the business window for `day` in `time_zone`.

    start/end are the local wall-clock hours converted to UTC with the offset
    in effect on that date (zoneinfo handles DST). Pure function.
    """
    if isinstance(day, str):
        day = parse_calendar_date(day)
    elif not isinstance(day, date) or isinstance(day, datetime):
        raise InvalidDateError(f"Expected a calendar date, got {day!r}")
    _check_hours(start_hour, end_hour)
    tz = resolve_zone(time_zone)

    local_start = datetime(day.year, day.month, day.day, start_hour, tzinfo=tz)
    local_end = datetime(day.year, day.month, day.day, end_hour, tzinfo=tz)
    start = local_start.astimezone(timezone.utc)
    end = local_end.astimezone(timezone.utc)
    # A window squeezed shut by a DST jump is still a config problem
    if start >= end:
        raise InvalidConfigError(
            f"Business window {start_hour}:00-{end_hour}:00 is empty on {day.isoformat()} in {time_zone}"
        )
    return BusinessWindow(date=day, start=start, end=end)
