"""Slot engine: tile the business window, classify slots, select bookable ones."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from .business_window import BusinessWindow
from .errors import InvalidConfigError
from .events import NormalizedEvent

SLOT_MINUTES = 30


@dataclass
class Slot:
    """A candidate booking interval. Flags are set once, during classification."""
    start: datetime
    end: datetime
    is_overlapping: bool = False
    is_adjacent: bool = False

    def overlaps(self, start: datetime, end: datetime) -> bool:
        # Half-open: touching at an endpoint is not overlap
        return self.start < end and self.end > start

    def to_dict(self) -> dict[str, Any]:
        return {"start": format_instant(self.start), "end": format_instant(self.end)}


def format_instant(instant: datetime) -> str:
    """UTC ISO-8601 with a Z suffix, e.g. 2024-01-10T16:30:00Z."""
    return instant.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _slot_delta(slot_minutes: int) -> timedelta:
    if not isinstance(slot_minutes, int) or slot_minutes <= 0:
        raise InvalidConfigError(f"Slot duration must be a positive number of minutes: {slot_minutes!r}")
    return timedelta(minutes=slot_minutes)


def round_down(instant: datetime, origin: datetime, slot_minutes: int = SLOT_MINUTES) -> datetime:
    """Floor `instant` to the slot grid that starts at `origin`."""
    delta = _slot_delta(slot_minutes)
    return origin + ((instant - origin) // delta) * delta


def round_up(instant: datetime, origin: datetime, slot_minutes: int = SLOT_MINUTES) -> datetime:
    """
    Ceil `instant` to the slot grid that starts at `origin`.

    Seconds are dropped first, so 10:00:45 stays at 10:00 while 10:05 goes to 10:30.
    """
    delta = _slot_delta(slot_minutes)
    instant = instant.replace(second=0, microsecond=0)
    steps = -((origin - instant) // delta)
    return origin + steps * delta


def tile_slots(window: BusinessWindow, slot_minutes: int = SLOT_MINUTES) -> list[Slot]:
    """Consecutive slots from window.start; a trailing partial slot is dropped."""
    delta = _slot_delta(slot_minutes)
    slots: list[Slot] = []
    cursor = window.start
    while cursor + delta <= window.end:
        slots.append(Slot(start=cursor, end=cursor + delta))
        cursor += delta
    return slots


def classify_slots(
    window: BusinessWindow,
    events: list[NormalizedEvent],
    slot_minutes: int = SLOT_MINUTES,
) -> list[Slot]:
    """
    Tile the window and set is_overlapping / is_adjacent on every slot in one pass.

    Every event can make a slot overlapping. Only real (non all-day) events make
    a slot adjacent: the event is widened to the slot grid and a slot ending at
    the rounded start or starting at the rounded end is adjacent, unless it
    overlaps that event.
    """
    slots = tile_slots(window, slot_minutes)
    for event in events:
        if event.is_synthetic_all_day_block:
            edges = None
        else:
            edges = (
                round_down(event.start, window.start, slot_minutes),
                round_up(event.end, window.start, slot_minutes),
            )
        for slot in slots:
            if slot.overlaps(event.start, event.end):
                slot.is_overlapping = True
                continue
            if edges and (slot.end == edges[0] or slot.start == edges[1]):
                slot.is_adjacent = True
    return slots


def compute_slots(
    window: BusinessWindow,
    events: list[NormalizedEvent],
    slot_minutes: int = SLOT_MINUTES,
) -> list[Slot]:
    """Free slots bordering at least one event. No events means nothing is bookable."""
    if not events:
        return []
    return [s for s in classify_slots(window, events, slot_minutes) if not s.is_overlapping and s.is_adjacent]


def compute_all_free_slots(
    window: BusinessWindow,
    events: list[NormalizedEvent],
    slot_minutes: int = SLOT_MINUTES,
) -> list[Slot]:
    """Every slot no event overlaps, adjacent or not."""
    return [s for s in classify_slots(window, events, slot_minutes) if not s.is_overlapping]


def select_slots(slots: list[Slot]) -> tuple[list[Slot], list[Slot]]:
    """Split one classified list into (adjacent, all_free)."""
    free = [s for s in slots if not s.is_overlapping]
    return [s for s in free if s.is_adjacent], free
