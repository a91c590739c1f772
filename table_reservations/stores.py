"""
Storage interface shared by the DynamoDB and YAML backends.

The service only ever scans whole collections, reads a table by key, and
writes single records. Reservation writes are compare-and-swap against a
per-(table number, date) slot version so that two concurrent requests for
the same slot cannot both be persisted.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .records import ReservationRecord, TableRecord


def slot_key(table_number: int, date: str) -> str:
    """Key identifying every reservation of one table on one date."""
    return f"{table_number}#{date}"


class BookingStore(ABC):
    """Abstract base class for table/reservation persistence."""

    @abstractmethod
    def scan_tables(self) -> list[TableRecord]:
        ...

    @abstractmethod
    def get_table(self, table_id: int) -> Optional[TableRecord]:
        """Return the table with primary key ``table_id``, or None."""
        ...

    @abstractmethod
    def put_table(self, table: TableRecord) -> None:
        ...

    @abstractmethod
    def scan_reservations(self) -> list[ReservationRecord]:
        ...

    @abstractmethod
    def slot_version(self, table_number: int, date: str) -> int:
        """
        Return the current write version of a (table number, date) slot.

        A slot nobody has booked yet is at version 0.
        """
        ...

    @abstractmethod
    def put_reservation(self, reservation: ReservationRecord, expected_version: int) -> None:
        """
        Persist ``reservation`` if its slot is still at ``expected_version``.

        Raises:
            ConcurrentWriteError: another reservation for the same slot was
                written after ``expected_version`` was read
            StoreError: the write itself failed
        """
        ...
