"""Bookable slot generation for a doctor's working hours."""
from datetime import date, timedelta
from typing import Dict, List, Optional

from clinica_dental.config import SLOT_MINUTES, WORKDAYS


def to_minutes(hhmm: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hours, minutes = hhmm.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def to_label(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def generate_slots(opening: str, closing: str, step: int = SLOT_MINUTES) -> List[str]:
    """
    Slot start labels from ``opening`` (inclusive) to ``closing`` (exclusive).

    Inputs are not validated beyond parsing; an opening at or after the
    closing time yields an empty list.

    Example:
        >>> generate_slots("08:00", "09:00")
        ['08:00', '08:30']
    """
    start = to_minutes(opening)
    end = to_minutes(closing)
    return [to_label(m) for m in range(start, end, step)]


def seed_calendar(
    slots: List[str],
    start: Optional[date] = None,
    days: int = 30,
) -> List[Dict[str, object]]:
    """
    Default availability calendar sent when a doctor is created.

    One entry per weekday (Mon-Fri) among the ``days`` consecutive days
    starting at ``start`` (today by default), each offering every slot.
    """
    start = start or date.today()
    calendar = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        if day.weekday() in WORKDAYS:
            calendar.append({
                "fecha": day.isoformat(),
                "horariosDisponibles": list(slots),
            })
    return calendar
