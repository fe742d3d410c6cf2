"""Delivery slot selection."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from modules.florists.dtos import DeliverySlot
from shared.domain.timeutils import clock_hhmm, is_time_within_range, normalize_hhmm


def open_slots(
    slots: Iterable[DeliverySlot], now: datetime, requested_date: date
) -> List[DeliverySlot]:
    """Enabled slots for *requested_date*.

    For a same-day request, only slots that have not started yet.
    """
    enabled = [slot for slot in slots if slot.enabled]
    if requested_date != now.date():
        return enabled
    current = clock_hhmm(now)
    return [slot for slot in enabled if slot.start > current]


def find_slot(slots: Iterable[DeliverySlot], time: str) -> Optional[DeliverySlot]:
    for slot in slots:
        if is_time_within_range(time, slot.start, slot.end):
            return slot
    return None


def find_slot_by_label(
    slots: Iterable[DeliverySlot], label: str
) -> Optional[DeliverySlot]:
    start, end = parse_slot_label(label)
    for slot in slots:
        if slot.start == start and slot.end == end:
            return slot
    return None


def slot_has_capacity(slot: DeliverySlot, booked: int) -> bool:
    return booked < slot.max_orders


def parse_slot_label(label: str) -> Tuple[str, str]:
    """Split ``"HH:MM-HH:MM"`` into normalised start and end times.

    Raises:
        ValueError: if *label* is not a valid slot label.
    """
    parts = label.split("-") if isinstance(label, str) else []
    if len(parts) != 2:
        raise ValueError(f"Invalid slot label '{label}': expected HH:MM-HH:MM.")
    start, end = (normalize_hhmm(part) for part in parts)
    if end <= start:
        raise ValueError(f"Invalid slot label '{label}': end must be after start.")
    return start, end
