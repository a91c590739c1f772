from __future__ import annotations

import logging
from typing import Any

from .booking import has_conflict
from .errors import ConcurrentWriteError, InvalidRequestError, ReservationConflictError, TableNotFoundError
from .identity import IdentityProvider
from .records import ReservationRecord, TableRecord, require_text
from .stores import BookingStore

logger = logging.getLogger(__name__)

SIGNUP_SUCCESS_MESSAGE = "Sign-up process is successful"


class BookingService:
    """The seven API operations, independent of the HTTP envelope."""

    def __init__(
        self,
        store: BookingStore,
        identity: IdentityProvider | None = None,
        reservation_write_attempts: int = 3,
    ) -> None:
        if reservation_write_attempts < 1:
            raise ValueError("reservation_write_attempts must be at least 1")
        self.store = store
        self.identity = identity
        self.reservation_write_attempts = reservation_write_attempts

    def _require_identity(self) -> IdentityProvider:
        if self.identity is None:
            raise InvalidRequestError("Identity provider is not configured")
        return self.identity

    def signup(self, payload: dict[str, Any]) -> dict[str, Any]:
        identity = self._require_identity()
        email = require_text(payload, "email")
        password = require_text(payload, "password")

        attributes: dict[str, str] = {}
        for field_name in ("firstName", "lastName"):
            value = payload.get(field_name)
            if value is not None:
                attributes[f"custom:{field_name}"] = str(value)

        identity.create_user(email, password, attributes)
        logger.info("Created user %s", email)
        return {"message": SIGNUP_SUCCESS_MESSAGE}

    def signin(self, payload: dict[str, Any]) -> dict[str, Any]:
        identity = self._require_identity()
        email = require_text(payload, "email")
        password = require_text(payload, "password")
        return {"accessToken": identity.authenticate(email, password)}

    def create_table(self, payload: dict[str, Any]) -> dict[str, Any]:
        table = TableRecord.from_request(payload)
        self.store.put_table(table)
        logger.info("Stored table id=%s number=%s", table.id, table.number)
        return {"id": table.id}

    def list_tables(self) -> dict[str, Any]:
        return {"tables": [table.to_dict() for table in self.store.scan_tables()]}

    def get_table(self, table_id: int) -> dict[str, Any]:
        table = self.store.get_table(table_id)
        if table is None:
            raise TableNotFoundError()
        return table.to_dict()

    def list_reservations(self) -> dict[str, Any]:
        return {"reservations": [reservation.to_dict() for reservation in self.store.scan_reservations()]}

    def create_reservation(self, payload: dict[str, Any]) -> dict[str, Any]:
        candidate = ReservationRecord.from_request(payload)

        if not self.table_exists(candidate.table_number):
            raise TableNotFoundError()

        for attempt in range(1, self.reservation_write_attempts + 1):
            version = self.store.slot_version(candidate.table_number, candidate.date)
            if has_conflict(candidate, self.store.scan_reservations()):
                raise ReservationConflictError()

            try:
                self.store.put_reservation(candidate, expected_version=version)
            except ConcurrentWriteError as error:
                logger.warning(
                    "Attempt %d/%d for table %s on %s lost a race: %s",
                    attempt,
                    self.reservation_write_attempts,
                    candidate.table_number,
                    candidate.date,
                    error,
                )
                continue

            logger.info("Stored reservation %s for table %s", candidate.id, candidate.table_number)
            return {"reservationId": candidate.id}

        raise ReservationConflictError()

    def table_exists(self, table_number: int) -> bool:
        """Return True if any stored table carries business number ``table_number``."""
        return any(table.number == table_number for table in self.store.scan_tables())
