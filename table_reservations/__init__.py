from .booking import has_conflict, has_time_overlap, parse_slot_time
from .errors import (
	BookingError,
	ConcurrentWriteError,
	IdentityProviderError,
	InvalidRequestError,
	InvalidTimeFormat,
	ReservationConflictError,
	StoreError,
	TableNotFoundError,
)
from .records import ReservationRecord, TableRecord
from .service import BookingService
from .stores import BookingStore
from .yaml_store import YamlBookingStore

__all__ = [
	"has_conflict",
	"has_time_overlap",
	"parse_slot_time",
	"BookingError",
	"ConcurrentWriteError",
	"IdentityProviderError",
	"InvalidRequestError",
	"InvalidTimeFormat",
	"ReservationConflictError",
	"StoreError",
	"TableNotFoundError",
	"ReservationRecord",
	"TableRecord",
	"BookingService",
	"BookingStore",
	"YamlBookingStore",
]
