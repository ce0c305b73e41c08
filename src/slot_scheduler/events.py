"""Busy events from the calendar provider, normalized against a business window."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

from .business_window import BusinessWindow, resolve_zone
from .errors import InvalidDateError

CANCELLED = "cancelled"
TRANSPARENT = "transparent"


@dataclass
class BusyEvent:
    """
    One raw calendar entry. Timed events carry start/end instants; all-day
    events carry start_date (inclusive) and end_date (exclusive).
    """
    start: datetime | None = None
    end: datetime | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: str = "confirmed"
    transparency: str = "opaque"
    summary: str = ""

    @property
    def is_all_day(self) -> bool:
        return self.start_date is not None

    @property
    def is_blocking(self) -> bool:
        """Cancelled and transparent ('free') entries never block time."""
        return self.status != CANCELLED and self.transparency != TRANSPARENT

    @classmethod
    def from_api(cls, item: dict[str, Any], default_tz: str = "UTC") -> "BusyEvent":
        """
        Parse a Google Calendar event resource.

        start/end hold either {"dateTime": ..., "timeZone": ...} or {"date": ...}.
        A dateTime without an offset is read in its timeZone, else default_tz.
        """
        start = item.get("start") or {}
        end = item.get("end") or {}
        common = {
            "status": item.get("status") or "confirmed",
            "transparency": item.get("transparency") or "opaque",
            "summary": item.get("summary") or "",
        }
        if start.get("date") and not start.get("dateTime"):
            start_date = _parse_date(start["date"])
            end_date = _parse_date(end["date"]) if end.get("date") else start_date + timedelta(days=1)
            return cls(start_date=start_date, end_date=end_date, **common)
        if not start.get("dateTime") or not end.get("dateTime"):
            raise InvalidDateError(f"Event {item.get('id', '?')} has no usable start/end")
        return cls(
            start=_parse_instant(start["dateTime"], start.get("timeZone") or default_tz),
            end=_parse_instant(end["dateTime"], end.get("timeZone") or default_tz),
            **common,
        )


@dataclass(frozen=True)
class NormalizedEvent:
    start: datetime
    end: datetime
    is_synthetic_all_day_block: bool = False


def _parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except (ValueError, TypeError) as exc:
        raise InvalidDateError(f"Invalid event date: {text!r}") from exc


def _parse_instant(text: str, tz_name: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError) as exc:
        raise InvalidDateError(f"Invalid event dateTime: {text!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=resolve_zone(tz_name))
    return parsed.astimezone(timezone.utc)


def normalize_events(
    raw_events: Iterable[BusyEvent | dict[str, Any]],
    window: BusinessWindow,
    default_tz: str = "UTC",
) -> list[NormalizedEvent]:
    """
    Keep the blocking events that touch `window`, as concrete instant ranges.

    An all-day event covering window.date becomes one synthetic block equal to
    the window. Timed events survive iff start < window.end and end > window.start,
    with their original (unclipped) instants. API items without usable times
    are logged and skipped.
    """
    out: list[NormalizedEvent] = []
    for raw in raw_events:
        if isinstance(raw, BusyEvent):
            event = raw
        else:
            # Cancelled instances may arrive as bare {"id", "status"} stubs
            if raw.get("status") == CANCELLED or raw.get("transparency") == TRANSPARENT:
                continue
            try:
                event = BusyEvent.from_api(raw, default_tz)
            except InvalidDateError as exc:
                print(f"[events] Skipping calendar item: {exc}", file=sys.stderr)
                continue
        if not event.is_blocking:
            continue
        if event.is_all_day:
            end_date = event.end_date or event.start_date + timedelta(days=1)
            if event.start_date <= window.date < end_date:
                out.append(NormalizedEvent(window.start, window.end, is_synthetic_all_day_block=True))
            continue
        if event.start < window.end and event.end > window.start:
            out.append(NormalizedEvent(event.start, event.end))
    return out
