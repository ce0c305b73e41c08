"""Config-driven availability: day, month and range views, plus booking checks."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Protocol

from .business_window import (
    BusinessWindow,
    calendar_date,
    days_in_month,
    resolve_window,
    resolve_zone,
)
from .errors import InvalidConfigError, InvalidDateError
from .events import normalize_events
from .slot_engine import Slot, classify_slots, compute_slots, select_slots

DEFAULT_TZ = "America/New_York"
DEFAULT_START_HOUR = 9   # 9 AM
DEFAULT_END_HOUR = 17    # 5 PM
DEFAULT_SLOT_MINUTES = 30
DEFAULT_MAX_RANGE_DAYS = 62

# Reminders on booked events (minutes before start)
EMAIL_REMINDER_MINUTES = 60
POPUP_REMINDER_MINUTES = 10


class EventSource(Protocol):
    def list_events(
        self, time_min: datetime, time_max: datetime, time_zone: str | None = None
    ) -> list[dict[str, Any]]: ...


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise InvalidConfigError(f"{name} must be true/false, got {raw!r}")


@dataclass(frozen=True)
class SchedulerConfig:
    """Business-window settings. Passed explicitly into every computation."""
    timezone: str = DEFAULT_TZ
    start_hour: int = DEFAULT_START_HOUR
    end_hour: int = DEFAULT_END_HOUR
    slot_minutes: int = DEFAULT_SLOT_MINUTES
    exclude_weekends: bool = True
    max_range_days: int = DEFAULT_MAX_RANGE_DAYS

    @classmethod
    def from_env(cls) -> "SchedulerConfig":
        config = cls(
            timezone=(os.environ.get("BUSINESS_TIMEZONE") or "").strip() or DEFAULT_TZ,
            start_hour=_env_int("BUSINESS_START_HOUR", DEFAULT_START_HOUR),
            end_hour=_env_int("BUSINESS_END_HOUR", DEFAULT_END_HOUR),
            slot_minutes=_env_int("SLOT_MINUTES", DEFAULT_SLOT_MINUTES),
            exclude_weekends=_env_bool("EXCLUDE_WEEKENDS", True),
            max_range_days=_env_int("MAX_RANGE_DAYS", DEFAULT_MAX_RANGE_DAYS),
        )
        resolve_zone(config.timezone)
        return config


@dataclass
class DayAvailability:
    """Bookable (adjacent) and all-free slots for one date."""
    date: date
    adjacent: list[Slot] = field(default_factory=list)
    all_free: list[Slot] = field(default_factory=list)
    is_weekend: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "adjacent": [s.to_dict() for s in self.adjacent],
            "all": [s.to_dict() for s in self.all_free],
            "isWeekend": self.is_weekend,
        }


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5  # Sat=5, Sun=6


def _skipped(day: date, config: SchedulerConfig) -> bool:
    return config.exclude_weekends and is_weekend(day)


def window_for(day: date | str, config: SchedulerConfig) -> BusinessWindow:
    return resolve_window(day, config.timezone, config.start_hour, config.end_hour)


def day_availability(
    day: date,
    raw_events: list[Any],
    config: SchedulerConfig,
) -> DayAvailability:
    """
    Resolver -> Normalizer -> Engine for one date. Pure.

    Weekends (when excluded) come back empty without looking at the events.
    Both lists are filtered from the same classified slots.
    """
    if _skipped(day, config):
        return DayAvailability(date=day, is_weekend=True)
    window = window_for(day, config)
    events = normalize_events(raw_events, window, default_tz=config.timezone)
    adjacent, all_free = select_slots(classify_slots(window, events, config.slot_minutes))
    return DayAvailability(date=day, adjacent=adjacent, all_free=all_free, is_weekend=is_weekend(day))


def _fetch_events(
    client: EventSource,
    windows: list[BusinessWindow],
    time_zone: str | None,
) -> list[dict[str, Any]]:
    """One listing covering every window; each day's normalization picks its own events."""
    if not windows:
        return []
    time_min = min(w.start for w in windows)
    time_max = max(w.end for w in windows)
    events = client.list_events(time_min, time_max, time_zone)
    print(
        f"[scheduler] {len(events)} events between {time_min.isoformat()} and {time_max.isoformat()}",
        file=sys.stderr,
    )
    return events


def available_slots(
    day: date,
    config: SchedulerConfig,
    client: EventSource,
    time_zone: str | None = None,
) -> list[Slot]:
    """Bookable slots for one date (day view)."""
    if _skipped(day, config):
        return []
    window = window_for(day, config)
    raw = _fetch_events(client, [window], time_zone or config.timezone)
    events = normalize_events(raw, window, default_tz=config.timezone)
    return compute_slots(window, events, config.slot_minutes)


def month_availability(
    year: int,
    month: int,
    config: SchedulerConfig,
    client: EventSource,
    time_zone: str | None = None,
) -> dict[str, bool]:
    """{YYYY-MM-DD: has at least one bookable slot} for every day of the month."""
    days = [calendar_date(year, month, d) for d in range(1, days_in_month(year, month) + 1)]
    windows = {d: window_for(d, config) for d in days if not _skipped(d, config)}
    raw = _fetch_events(client, list(windows.values()), time_zone or config.timezone)

    availability: dict[str, bool] = {}
    for day in days:
        window = windows.get(day)
        if window is None:
            availability[day.isoformat()] = False
            continue
        events = normalize_events(raw, window, default_tz=config.timezone)
        availability[day.isoformat()] = bool(compute_slots(window, events, config.slot_minutes))
    return availability


def range_availability(
    start: date,
    end: date,
    config: SchedulerConfig,
    client: EventSource,
) -> dict[str, dict[str, Any]]:
    """Adjacent and all-free slots for each date in [start, end] (inclusive)."""
    if end < start:
        raise InvalidDateError(f"Range end {end.isoformat()} is before start {start.isoformat()}")
    span = (end - start).days + 1
    if span > config.max_range_days:
        raise InvalidDateError(f"Range of {span} days exceeds the {config.max_range_days}-day limit")

    days = [start + timedelta(days=i) for i in range(span)]
    windows = [window_for(d, config) for d in days if not _skipped(d, config)]
    raw = _fetch_events(client, windows, config.timezone)
    return {day.isoformat(): day_availability(day, raw, config).to_dict() for day in days}


def parse_instant(text: str) -> datetime:
    """ISO-8601 instant -> UTC-aware datetime. Values without an offset are taken as UTC."""
    try:
        parsed = datetime.fromisoformat((text or "").strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidDateError(f"Invalid ISO-8601 instant: {text!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def booking_rejection(start: datetime, end: datetime, config: SchedulerConfig) -> str | None:
    """Return why a booking is not allowed, or None if it fits the business window."""
    if end <= start:
        return "End time must be after start time."
    local_day = start.astimezone(resolve_zone(config.timezone)).date()
    if _skipped(local_day, config):
        return "Meetings cannot be booked on weekends."
    window = window_for(local_day, config)
    if start < window.start or end > window.end:
        return (
            f"Meetings must fall between {config.start_hour}:00 and {config.end_hour}:00 "
            f"({config.timezone})."
        )
    return None


def build_event_body(
    start: datetime,
    end: datetime,
    name: str,
    email: str,
    time_zone: str,
    owner_email: str | None = None,
    meeting_link: str | None = None,
) -> dict[str, Any]:
    """Calendar event resource for a booking; invitations go out through the provider."""
    tz = resolve_zone(time_zone)
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    lines = [
        f"Meeting with: {name}",
        f"Email: {email}",
        f"Date: {local_start.strftime('%A, %B %d, %Y')}",
        f"Time: {local_start.strftime('%I:%M %p')} - {local_end.strftime('%I:%M %p')} ({time_zone})",
    ]
    if meeting_link:
        lines.append(f"Meeting link: {meeting_link}")
    attendees = [{"email": email}]
    if owner_email and owner_email.lower() != email.lower():
        attendees.append({"email": owner_email})
    return {
        "summary": f"Meeting with {name}",
        "description": "\n".join(lines),
        "start": {"dateTime": start.isoformat(), "timeZone": time_zone},
        "end": {"dateTime": end.isoformat(), "timeZone": time_zone},
        "attendees": attendees,
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": EMAIL_REMINDER_MINUTES},
                {"method": "popup", "minutes": POPUP_REMINDER_MINUTES},
            ],
        },
        "guestsCanSeeOtherGuests": True,
    }
