"""Interval arithmetic and the booking status machine."""
import html
import math
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from hotel_booking.core.timeutils import to_utc
from hotel_booking.services.errors import ErrorKind, ServiceError


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


# Statuses that hold a room interval; cancelled stays never conflict.
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

_ALLOWED = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open [start, end) overlap; back-to-back stays do not overlap."""
    return a_start < b_end and b_start < a_end


def validate_range(check_in: datetime, check_out: datetime) -> tuple[datetime, datetime]:
    if check_in is None or check_out is None:
        raise ServiceError(ErrorKind.INVALID_RANGE, "check-in and check-out are required")
    if not isinstance(check_in, datetime) or not isinstance(check_out, datetime):
        raise ServiceError(ErrorKind.INVALID_INPUT, "check-in and check-out must be datetimes")
    check_in, check_out = to_utc(check_in), to_utc(check_out)
    if check_in >= check_out:
        raise ServiceError(ErrorKind.INVALID_RANGE, "check-out must be later than check-in")
    return check_in, check_out


def nights(check_in: datetime, check_out: datetime) -> int:
    # A partial day is charged as a full night.
    return max(1, math.ceil((check_out - check_in) / timedelta(days=1)))


def stay_price(price_per_night: Decimal, check_in: datetime, check_out: datetime) -> Decimal:
    return (Decimal(price_per_night) * nights(check_in, check_out)).quantize(Decimal("0.01"))


def parse_status(value) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).strip().upper())
    except ValueError:
        raise ServiceError(ErrorKind.INVALID_INPUT, f"unknown booking status {value!r}")


def check_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Return True when the status must change, False for an idempotent no-op.

    Re-cancelling a cancelled booking is accepted as a no-op; every other
    move out of CANCELLED is rejected.
    """
    if current == target:
        return False
    if target not in _ALLOWED[current]:
        raise ServiceError(
            ErrorKind.INVALID_TRANSITION,
            f"booking cannot move from {current.value} to {target.value}",
        )
    return True


def sanitize_special_requests(text: str | None, max_length: int) -> str:
    """Escape for HTML; the bound applies to the stored, escaped text."""
    if text is None:
        return ""
    if not isinstance(text, str):
        raise ServiceError(ErrorKind.INVALID_INPUT, "special requests must be text")
    escaped = html.escape(text.strip())
    if len(escaped) > max_length:
        raise ServiceError(ErrorKind.INVALID_INPUT, f"special requests must be at most {max_length} characters once escaped")
    return escaped
