import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable

from hotel_booking.core.config import settings
from hotel_booking.core.timeutils import utcnow
from hotel_booking.db.store import SqlAlchemyStore, StoreTransaction
from hotel_booking.models.booking import Booking
from hotel_booking.services import stay_rules
from hotel_booking.services.errors import CouponRejection, ErrorKind, ServiceError, invalid_coupon, require_text, returns_result
from hotel_booking.services.paging import Page, check_paging
from hotel_booking.services.stay_rules import ACTIVE_STATUSES, BookingStatus

logger = logging.getLogger(__name__)


class ReservationService:
    """Admission control and lifecycle for room bookings.

    Every public method returns ``Ok``/``Err``. The availability check and the
    insert in :meth:`create_booking` share one transaction that holds the room
    row lock, so two requests for the same room are admitted one at a time.
    """

    def __init__(
        self,
        store: SqlAlchemyStore,
        clock: Callable[[], datetime] = utcnow,
        special_requests_max_length: int | None = None,
    ):
        self.store = store
        self._clock = clock
        self._max_requests = special_requests_max_length or settings.SPECIAL_REQUESTS_MAX_LENGTH

    @returns_result
    def check_availability(self, room_id: str, check_in: datetime, check_out: datetime) -> bool:
        # Advisory only; create_booking re-checks under the room lock.
        check_in, check_out = stay_rules.validate_range(check_in, check_out)
        require_text(room_id, "room_id")
        with self.store.transaction(write=False) as tx:
            room = tx.get_room(room_id)
            if room is None:
                raise ServiceError(ErrorKind.NOT_FOUND, "room not found")
            if not room.is_available:
                return False
            return not self._overlapping(tx, room_id, check_in, check_out)

    @returns_result
    def create_booking(
        self,
        user_id: str,
        room_id: str,
        check_in: datetime,
        check_out: datetime,
        special_requests: str | None = None,
    ) -> Booking:
        check_in, check_out = stay_rules.validate_range(check_in, check_out)
        require_text(user_id, "user_id")
        require_text(room_id, "room_id")
        requests = stay_rules.sanitize_special_requests(special_requests, self._max_requests)

        with self.store.transaction() as tx:
            room = tx.lock_room(room_id)
            if room is None:
                raise ServiceError(ErrorKind.NOT_FOUND, "room not found")
            if not room.is_available:
                raise ServiceError(ErrorKind.ROOM_CONFLICT, "room is out of service")

            clashes = self._overlapping(tx, room_id, check_in, check_out)
            if clashes:
                logger.warning(
                    "Rejected booking for room %s [%s, %s): overlaps %s",
                    room_id, check_in.isoformat(), check_out.isoformat(), [b.id for b in clashes],
                )
                raise ServiceError(ErrorKind.ROOM_CONFLICT, "room is not available for the requested dates")

            now = self._clock()
            booking = Booking(
                id=str(uuid.uuid4()),
                room_id=room_id,
                user_id=user_id,
                check_in=check_in,
                check_out=check_out,
                status=BookingStatus.PENDING.value,
                total_amount=stay_rules.stay_price(room.price_per_night, check_in, check_out),
                special_requests=requests,
                created_at=now,
                updated_at=now,
            )
            tx.insert_booking(booking)
            tx.record_audit(user_id, "booking.created", "booking", booking.id, {
                "room_id": room_id,
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
                "total_amount": str(booking.total_amount),
            })

        logger.info("Booking %s admitted for room %s by user %s", booking.id, room_id, user_id)
        return booking

    @returns_result
    def update_status(self, booking_id: str, new_status, actor_user_id: str | None = None) -> Booking:
        require_text(booking_id, "booking_id")
        target = stay_rules.parse_status(new_status)
        with self.store.transaction() as tx:
            booking = tx.get_booking(booking_id, for_update=True)
            if booking is None:
                raise ServiceError(ErrorKind.NOT_FOUND, "booking not found")

            current = BookingStatus(booking.status)
            if not stay_rules.check_transition(current, target):
                return booking

            booking.status = target.value
            booking.updated_at = self._touch(booking)
            tx.update_booking(booking)
            tx.record_audit(actor_user_id, "booking.status_changed", "booking", booking.id, {
                "from": current.value,
                "to": target.value,
            })

        logger.info("Booking %s moved %s -> %s", booking_id, current.value, target.value)
        return booking

    def cancel_booking(self, booking_id: str, actor_user_id: str | None = None):
        return self.update_status(booking_id, BookingStatus.CANCELLED, actor_user_id=actor_user_id)

    @returns_result
    def get_booking(self, booking_id: str) -> Booking:
        require_text(booking_id, "booking_id")
        with self.store.transaction(write=False) as tx:
            booking = tx.get_booking(booking_id)
        if booking is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "booking not found")
        return booking

    @returns_result
    def list_bookings_for_user(self, user_id: str) -> list[Booking]:
        require_text(user_id, "user_id")
        with self.store.transaction(write=False) as tx:
            return tx.find_bookings_by_user(user_id)

    @returns_result
    def list_bookings(self, page_index: int = 0, page_size: int = 20) -> Page[Booking]:
        """All bookings ordered by check-in, one page at a time."""
        page_index, page_size = check_paging(page_index, page_size)
        with self.store.transaction(write=False) as tx:
            items = tx.page_bookings(page_index * page_size, page_size)
            total = tx.count_bookings()
        return Page(items=items, total_count=total, page_index=page_index, page_size=page_size)

    # Used by CouponService inside its redemption transaction.

    def lock_for_discount(self, tx: StoreTransaction, booking_id: str, user_id: str) -> Booking:
        booking = tx.get_booking(booking_id, for_update=True)
        if booking is None or booking.user_id != user_id:
            raise ServiceError(ErrorKind.BOOKING_NOT_FOUND, "booking not found")
        if booking.status == BookingStatus.CANCELLED.value:
            raise ServiceError(ErrorKind.INVALID_TRANSITION, "cannot discount a cancelled booking")
        if booking.coupon_id:
            raise invalid_coupon(CouponRejection.BOOKING_ALREADY_DISCOUNTED, "booking already has a coupon applied")
        return booking

    def apply_discount(self, tx: StoreTransaction, booking: Booking, coupon_id: str, discount: Decimal, now: datetime) -> Booking:
        booking.total_amount = Decimal(booking.total_amount) - discount
        booking.coupon_id = coupon_id
        booking.updated_at = max(now, booking.updated_at)
        return tx.update_booking(booking)

    def _overlapping(self, tx: StoreTransaction, room_id: str, check_in: datetime, check_out: datetime) -> list[Booking]:
        candidates = tx.find_bookings_by_room(room_id, ACTIVE_STATUSES, overlapping=(check_in, check_out))
        return [b for b in candidates if stay_rules.overlaps(b.check_in, b.check_out, check_in, check_out)]

    def _touch(self, booking: Booking) -> datetime:
        return max(self._clock(), booking.updated_at)
