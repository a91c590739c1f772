import re
from datetime import time
from typing import Any, Iterable, Mapping

from .errors import InvalidTimeFormat

_SLOT_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_slot_time(value: Any) -> time:
    """Parse ``HH:MM`` (optionally ``HH:MM:SS``) into a same-day time.

    Seconds are accepted but dropped; slots have minute resolution.
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Invalid time format: {value!r}")

    match = _SLOT_TIME_PATTERN.match(value.strip())
    if match is None:
        raise InvalidTimeFormat(f"Invalid time format: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3)) if match.group(3) is not None else 0
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeFormat(f"Invalid time format: {value!r}")
    return time(hour, minute)


def has_time_overlap(new_start: time, new_end: time, exist_start: time, exist_end: time) -> bool:
    """Return True when two slots share at least one instant.

    Both ends are inclusive, so touching slots (10:00-11:00 and 11:00-12:00)
    overlap.
    """
    return new_start <= exist_end and new_end >= exist_start


def has_conflict(candidate: Any, existing_reservations: Iterable[Any]) -> bool:
    """Return True if ``candidate`` overlaps any stored reservation for the same table and date.

    Records may be ``ReservationRecord`` instances or mappings using the wire
    field names (``tableNumber``, ``date``, ``slotTimeStart``, ``slotTimeEnd``).
    """
    table_number, slot_date, start_value, end_value = _slot_fields(candidate)
    new_start = parse_slot_time(start_value)
    new_end = parse_slot_time(end_value)

    for reservation in existing_reservations:
        other_table, other_date, other_start, other_end = _slot_fields(reservation)
        if other_table != table_number or str(other_date) != str(slot_date):
            continue
        if has_time_overlap(new_start, new_end, parse_slot_time(other_start), parse_slot_time(other_end)):
            return True
    return False


def _slot_fields(reservation: Any) -> tuple[Any, Any, Any, Any]:
    if isinstance(reservation, Mapping):
        return (
            reservation.get("tableNumber"),
            reservation.get("date"),
            reservation.get("slotTimeStart"),
            reservation.get("slotTimeEnd"),
        )
    return (
        reservation.table_number,
        reservation.date,
        reservation.slot_time_start,
        reservation.slot_time_end,
    )
