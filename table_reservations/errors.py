class BookingError(Exception):
    """Base error; ``message`` is what the caller sees in the response body."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidRequestError(BookingError):
    pass


class InvalidTimeFormat(InvalidRequestError):
    pass


class TableNotFoundError(BookingError):
    def __init__(self, message: str = "Table is not exist") -> None:
        super().__init__(message)


class ReservationConflictError(BookingError):
    def __init__(self, message: str = "Reservation already exists") -> None:
        super().__init__(message)


class ConcurrentWriteError(BookingError):
    """Raised by a store when the slot changed between read and write."""


class StoreError(BookingError):
    pass


class IdentityProviderError(BookingError):
    pass
