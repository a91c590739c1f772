from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import math
import re
from typing import Any
from uuid import uuid4

from .booking import parse_slot_time
from .errors import InvalidRequestError

_GENERATED_ID_BITS = 48
# ASCII digits only; str.isdigit() also accepts superscripts that int() rejects.
_INTEGER_PATTERN = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class TableRecord:
    id: int
    number: int
    places: int
    is_vip: bool = False
    min_order: int | float = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "places": self.places,
            "isVip": self.is_vip,
            "minOrder": self.min_order,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "TableRecord":
        return TableRecord(
            id=int(data["id"]),
            number=int(data["number"]),
            places=int(data["places"]),
            is_vip=bool(data.get("isVip", False)),
            min_order=_plain_number(data.get("minOrder", 0)),
        )

    @staticmethod
    def from_request(payload: dict[str, Any]) -> "TableRecord":
        raw_id = payload.get("id")
        table_id = _as_int(raw_id, "id") if raw_id not in (None, "") else 0
        if not table_id:
            table_id = generate_table_id()

        is_vip = payload.get("isVip", False)
        if not isinstance(is_vip, bool):
            raise InvalidRequestError("isVip must be a boolean")

        min_order = payload.get("minOrder", 0)
        if min_order is None:
            min_order = 0
        if isinstance(min_order, bool) or not isinstance(min_order, (int, float)) or not math.isfinite(min_order):
            raise InvalidRequestError("minOrder must be a number")

        return TableRecord(
            id=table_id,
            number=_as_int(payload.get("number"), "number"),
            places=_as_int(payload.get("places"), "places"),
            is_vip=is_vip,
            min_order=min_order,
        )


@dataclass(frozen=True)
class ReservationRecord:
    id: str
    table_number: int
    client_name: str
    phone_number: str
    date: str
    slot_time_start: str
    slot_time_end: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tableNumber": self.table_number,
            "clientName": self.client_name,
            "phoneNumber": self.phone_number,
            "date": self.date,
            "slotTimeStart": self.slot_time_start,
            "slotTimeEnd": self.slot_time_end,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReservationRecord":
        return ReservationRecord(
            id=str(data["id"]),
            table_number=int(data["tableNumber"]),
            client_name=str(data.get("clientName", "")),
            phone_number=str(data.get("phoneNumber", "")),
            date=str(data["date"]),
            slot_time_start=str(data["slotTimeStart"]),
            slot_time_end=str(data["slotTimeEnd"]),
        )

    @staticmethod
    def from_request(payload: dict[str, Any]) -> "ReservationRecord":
        slot_time_start = payload.get("slotTimeStart")
        slot_time_end = payload.get("slotTimeEnd")
        if parse_slot_time(slot_time_start) >= parse_slot_time(slot_time_end):
            raise InvalidRequestError("slotTimeStart must be earlier than slotTimeEnd")

        return ReservationRecord(
            id=str(uuid4()),
            table_number=_as_int(payload.get("tableNumber"), "tableNumber"),
            client_name=require_text(payload, "clientName"),
            phone_number=require_text(payload, "phoneNumber"),
            date=require_text(payload, "date"),
            slot_time_start=slot_time_start.strip(),
            slot_time_end=slot_time_end.strip(),
        )


def generate_table_id() -> int:
    # Must stay below 2**53 to survive a JavaScript number.
    return (uuid4().int >> (128 - _GENERATED_ID_BITS)) or 1


def require_text(payload: dict[str, Any], field_name: str) -> str:
    value = payload.get(field_name)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"{field_name} is required")
    return value.strip()


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise InvalidRequestError(f"{field_name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER_PATTERN.fullmatch(value.strip()):
        return int(value.strip())
    if value is None:
        raise InvalidRequestError(f"{field_name} is required")
    raise InvalidRequestError(f"{field_name} must be an integer")


def _plain_number(value: Any) -> int | float:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if value is None:
        return 0
    return value
