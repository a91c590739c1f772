import tempfile
import unittest
from pathlib import Path

from table_reservations import (
    BookingService,
    ConcurrentWriteError,
    InvalidRequestError,
    InvalidTimeFormat,
    ReservationConflictError,
    TableNotFoundError,
    YamlBookingStore,
)
from table_reservations.identity import IdentityProvider


class FakeIdentityProvider(IdentityProvider):
    def __init__(self) -> None:
        self.users: dict[str, tuple[str, dict[str, str]]] = {}

    def create_user(self, email: str, password: str, attributes: dict[str, str]) -> None:
        self.users[email] = (password, attributes)

    def authenticate(self, email: str, password: str) -> str:
        return f"token-for-{email}"


class RacingStore(YamlBookingStore):
    """Loses the first ``races`` reservation writes to a concurrent writer."""

    def __init__(self, base_dir: Path, races: int) -> None:
        super().__init__(base_dir)
        self.races = races
        self.put_attempts = 0

    def put_reservation(self, reservation, expected_version):
        self.put_attempts += 1
        if self.races > 0:
            self.races -= 1
            raise ConcurrentWriteError("slot moved")
        super().put_reservation(reservation, expected_version)


def _reservation_payload(**overrides) -> dict:
    payload = {
        "tableNumber": 1,
        "clientName": "Ann",
        "phoneNumber": "+100000000",
        "date": "2024-05-01",
        "slotTimeStart": "18:00",
        "slotTimeEnd": "19:00",
    }
    payload.update(overrides)
    return payload


class TestReservationCreation(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.store = YamlBookingStore(Path(self._temp_dir.name) / "data")
        self.service = BookingService(self.store)
        self.service.create_table({"id": 1, "number": 1, "places": 4, "isVip": False, "minOrder": 0})

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def test_creates_reservation_for_existing_table(self) -> None:
        result = self.service.create_reservation(_reservation_payload())

        stored = self.store.scan_reservations()
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0].id, result["reservationId"])
        self.assertEqual(stored[0].slot_time_start, "18:00")

    def test_second_identical_submission_is_rejected(self) -> None:
        self.service.create_reservation(_reservation_payload())

        with self.assertRaises(ReservationConflictError) as context:
            self.service.create_reservation(_reservation_payload())

        self.assertEqual(context.exception.message, "Reservation already exists")
        self.assertEqual(len(self.store.scan_reservations()), 1)

    def test_unknown_table_is_rejected_before_conflict_check(self) -> None:
        self.store.reservations_file.write_text(
            "- {id: x, tableNumber: 5, date: '2024-05-01', slotTimeStart: broken, slotTimeEnd: '19:00'}\n",
            encoding="utf-8",
        )

        with self.assertRaises(TableNotFoundError) as context:
            self.service.create_reservation(_reservation_payload(tableNumber=5))

        self.assertEqual(context.exception.message, "Table is not exist")

    def test_same_slot_on_another_table_is_accepted(self) -> None:
        self.service.create_table({"id": 2, "number": 2, "places": 2})
        self.service.create_reservation(_reservation_payload())
        self.service.create_reservation(_reservation_payload(tableNumber=2))

        self.assertEqual(len(self.store.scan_reservations()), 2)

    def test_rejects_malformed_time(self) -> None:
        with self.assertRaises(InvalidTimeFormat):
            self.service.create_reservation(_reservation_payload(slotTimeStart="6pm"))

    def test_rejects_inverted_slot(self) -> None:
        with self.assertRaises(InvalidRequestError):
            self.service.create_reservation(_reservation_payload(slotTimeStart="19:00", slotTimeEnd="18:00"))

    def test_rejects_missing_client_name(self) -> None:
        with self.assertRaises(InvalidRequestError):
            self.service.create_reservation(_reservation_payload(clientName=""))


class TestConcurrentWrites(unittest.TestCase):
    def test_retries_after_lost_race(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = RacingStore(Path(temp_dir) / "data", races=1)
            service = BookingService(store, reservation_write_attempts=3)
            service.create_table({"id": 1, "number": 1, "places": 4})

            service.create_reservation(_reservation_payload())

            self.assertEqual(store.put_attempts, 2)
            self.assertEqual(len(store.scan_reservations()), 1)

    def test_gives_up_after_all_attempts(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = RacingStore(Path(temp_dir) / "data", races=5)
            service = BookingService(store, reservation_write_attempts=2)
            service.create_table({"id": 1, "number": 1, "places": 4})

            with self.assertRaises(ReservationConflictError):
                service.create_reservation(_reservation_payload())

            self.assertEqual(store.put_attempts, 2)
            self.assertEqual(store.scan_reservations(), [])

    def test_rejects_zero_attempts(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(ValueError):
                BookingService(YamlBookingStore(Path(temp_dir) / "data"), reservation_write_attempts=0)


class TestTables(unittest.TestCase):
    def test_generates_id_when_missing(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"))

            result = service.create_table({"number": "3", "places": 6})

            self.assertGreater(result["id"], 0)
            self.assertLess(result["id"], 2**48)
            self.assertEqual(service.get_table(result["id"])["number"], 3)

    def test_list_tables(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"))
            service.create_table({"id": 7, "number": 1, "places": 2, "isVip": True, "minOrder": 100})

            self.assertEqual(
                service.list_tables(),
                {"tables": [{"id": 7, "number": 1, "places": 2, "isVip": True, "minOrder": 100}]},
            )

    def test_get_missing_table_raises(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"))
            with self.assertRaises(TableNotFoundError):
                service.get_table(404)

    def test_rejects_non_boolean_vip_flag(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"))
            with self.assertRaises(InvalidRequestError):
                service.create_table({"number": 1, "places": 2, "isVip": "yes"})

    def test_rejects_malformed_integer_strings(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"))
            for number in ["--5", "²", "1_000", "-", " "]:
                with self.subTest(number=number):
                    with self.assertRaises(InvalidRequestError) as context:
                        service.create_table({"number": number, "places": 2})
                    self.assertIn("number", context.exception.message)

            self.assertEqual(service.create_table({"id": "-3", "number": " 12 ", "places": "2"}), {"id": -3})

    def test_rejects_non_finite_min_order(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlBookingStore(Path(temp_dir) / "data")
            service = BookingService(store)
            for min_order in [float("nan"), float("inf"), float("-inf")]:
                with self.subTest(min_order=min_order):
                    with self.assertRaises(InvalidRequestError) as context:
                        service.create_table({"number": 1, "places": 2, "minOrder": min_order})
                    self.assertEqual(context.exception.message, "minOrder must be a number")

            self.assertEqual(store.scan_tables(), [])


class TestIdentityOperations(unittest.TestCase):
    def test_signup_passes_name_attributes(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            identity = FakeIdentityProvider()
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"), identity)

            result = service.signup(
                {"email": "ann@example.com", "password": "Secret123!", "firstName": "Ann", "lastName": "Lee"}
            )

            self.assertEqual(result, {"message": "Sign-up process is successful"})
            password, attributes = identity.users["ann@example.com"]
            self.assertEqual(password, "Secret123!")
            self.assertEqual(attributes, {"custom:firstName": "Ann", "custom:lastName": "Lee"})

    def test_signin_returns_access_token(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"), FakeIdentityProvider())
            result = service.signin({"email": "ann@example.com", "password": "Secret123!"})
            self.assertEqual(result, {"accessToken": "token-for-ann@example.com"})

    def test_signin_without_identity_provider_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            service = BookingService(YamlBookingStore(Path(temp_dir) / "data"))
            with self.assertRaises(InvalidRequestError):
                service.signin({"email": "ann@example.com", "password": "Secret123!"})


if __name__ == "__main__":
    unittest.main()
