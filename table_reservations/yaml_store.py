from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import shutil
import threading
from typing import Any

import yaml

from .errors import ConcurrentWriteError, StoreError
from .records import ReservationRecord, TableRecord
from .stores import BookingStore

logger = logging.getLogger(__name__)


class YamlBookingStore(BookingStore):
    """Local file-backed store used for development and tests.

    Each collection is a YAML list on disk. Writes go through a temp file and
    an atomic rename, and every mutation is appended to an event log.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.tables_file = self.base_dir / "tables.yaml"
        self.reservations_file = self.base_dir / "reservations.yaml"
        self.log_file = self.base_dir / "booking_events.yaml"
        self._write_lock = threading.RLock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.tables_file, self.reservations_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            else:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise StoreError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError as backup_error:
            logger.warning("Could not back up corrupted %s: %s", path.name, backup_error)

        logger.warning("Resetting corrupted %s: %s", path.name, error)
        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name),
                    "reason": str(error),
                },
            )

    def _log_event(self, event_type: str, payload: dict[str, Any]) -> None:
        # Reads log skipped rows too, so this can run outside a writer.
        with self._write_lock:
            timestamp = datetime.now().isoformat(timespec="seconds")
            events = self._read_yaml_list(self.log_file)
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            self._write_yaml_list(self.log_file, events)

    def read_events(self) -> list[dict[str, Any]]:
        return self._read_yaml_list(self.log_file)

    def scan_tables(self) -> list[TableRecord]:
        return [TableRecord.from_dict(row) for row in self._read_yaml_list(self.tables_file)]

    def get_table(self, table_id: int) -> TableRecord | None:
        for table in self.scan_tables():
            if table.id == table_id:
                return table
        return None

    def put_table(self, table: TableRecord) -> None:
        with self._write_lock:
            rows = [row for row in self._read_yaml_list(self.tables_file) if int(row.get("id", 0)) != table.id]
            rows.append(table.to_dict())
            self._write_yaml_list(self.tables_file, rows)
            self._log_event("TABLE_CREATED", table.to_dict())

    def scan_reservations(self) -> list[ReservationRecord]:
        return [ReservationRecord.from_dict(row) for row in self._read_yaml_list(self.reservations_file)]

    def slot_version(self, table_number: int, date: str) -> int:
        # Reservations are never removed, so the count only grows.
        return sum(
            1
            for reservation in self.scan_reservations()
            if reservation.table_number == table_number and reservation.date == date
        )

    def put_reservation(self, reservation: ReservationRecord, expected_version: int) -> None:
        with self._write_lock:
            current_version = self.slot_version(reservation.table_number, reservation.date)
            if current_version != expected_version:
                raise ConcurrentWriteError(
                    f"Slot {reservation.table_number}#{reservation.date} moved from "
                    f"version {expected_version} to {current_version}"
                )

            rows = self._read_yaml_list(self.reservations_file)
            rows.append(reservation.to_dict())
            self._write_yaml_list(self.reservations_file, rows)
            self._log_event("RESERVATION_CREATED", reservation.to_dict())
