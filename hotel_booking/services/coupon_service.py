import html
import logging
import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Callable, Iterable

from hotel_booking.core.config import settings
from hotel_booking.core.timeutils import to_utc, utcnow
from hotel_booking.db.store import SqlAlchemyStore, normalize_code
from hotel_booking.models.booking import Booking
from hotel_booking.models.coupon import Coupon, CouponRestriction
from hotel_booking.services.booking_service import ReservationService
from hotel_booking.services.errors import CouponRejection, ErrorKind, ServiceError, invalid_coupon, require_text, returns_result

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def compute_discount(total_amount: Decimal, discount_percentage: Decimal, max_discount_amount: Decimal) -> Decimal:
    """min(total * pct / 100, cap), rounded to cents and never more than the total."""
    total = Decimal(total_amount)
    raw = total * Decimal(discount_percentage) / Decimal(100)
    discount = min(raw, Decimal(max_discount_amount), total)
    return max(discount, Decimal(0)).quantize(CENT, rounding=ROUND_HALF_UP)


def check_coupon(coupon: Coupon | None, user_id: str, now: datetime) -> Coupon:
    if coupon is None:
        raise invalid_coupon(CouponRejection.NOT_FOUND, "coupon not found")
    if to_utc(coupon.expiry_date) <= now:
        raise invalid_coupon(CouponRejection.EXPIRED, "coupon has expired")
    if not coupon.is_active:
        raise invalid_coupon(CouponRejection.INACTIVE, "coupon is no longer active")
    if coupon.is_used:
        raise invalid_coupon(CouponRejection.ALREADY_USED, "coupon has already been used")
    if user_id in coupon.restricted_user_ids:
        raise invalid_coupon(CouponRejection.USER_RESTRICTED, "coupon cannot be used by this account")
    return coupon


class CouponService:
    """Validation and single-use redemption of discount coupons.

    Redemption locks the coupon and the booking, re-runs every validity check,
    stamps the booking through :class:`ReservationService` and claims the
    coupon, all in one store transaction. If any step fails nothing is
    written: the coupon stays unused and the booking keeps its amount.
    """

    def __init__(
        self,
        store: SqlAlchemyStore,
        reservations: ReservationService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.reservations = reservations
        self._clock = clock

    @returns_result
    def validate_coupon(self, code: str, user_id: str) -> Coupon:
        _require_code(code)
        require_text(user_id, "user_id")
        now = self._clock()
        with self.store.transaction(write=False) as tx:
            return check_coupon(tx.find_coupon_by_code(code), user_id, now)

    @returns_result
    def redeem_coupon(self, code: str, user_id: str, booking_id: str) -> Booking:
        _require_code(code)
        require_text(user_id, "user_id")
        require_text(booking_id, "booking_id")
        with self.store.transaction() as tx:
            now = self._clock()
            coupon = check_coupon(tx.find_coupon_by_code(code, for_update=True), user_id, now)
            booking = self.reservations.lock_for_discount(tx, booking_id, user_id)

            discount = compute_discount(booking.total_amount, coupon.discount_percentage, coupon.max_discount_amount)
            original = Decimal(booking.total_amount)
            self.reservations.apply_discount(tx, booking, coupon.id, discount, now)

            if not tx.claim_coupon(coupon.id, now):
                # Lost the race to a concurrent redemption; the booking change rolls back with us.
                raise invalid_coupon(CouponRejection.ALREADY_USED, "coupon has already been used")

            tx.record_audit(user_id, "coupon.redeemed", "coupon", coupon.id, {
                "booking_id": booking.id,
                "discount": str(discount),
                "total_before": str(original),
                "total_after": str(booking.total_amount),
            })

        logger.info("Coupon %s redeemed on booking %s: -%s", coupon.code, booking_id, discount)
        return booking

    @returns_result
    def create_coupon(
        self,
        code: str,
        discount_percentage,
        max_discount_amount,
        expiry_date: datetime,
        description: str = "",
        restricted_user_ids: Iterable[str] = (),
        actor_user_id: str | None = None,
    ) -> Coupon:
        now = self._clock()
        _require_code(code)
        normalized = normalize_code(code)
        if not normalized:
            raise ServiceError(ErrorKind.INVALID_INPUT, "coupon code cannot be empty")
        if len(normalized) > settings.COUPON_CODE_MAX_LENGTH:
            raise ServiceError(ErrorKind.INVALID_INPUT, f"coupon code cannot exceed {settings.COUPON_CODE_MAX_LENGTH} characters")
        pct = _as_decimal(discount_percentage, "discount_percentage")
        cap = _as_decimal(max_discount_amount, "max_discount_amount")
        if pct < 0 or pct > 100:
            raise ServiceError(ErrorKind.INVALID_INPUT, "discount percentage must be between 0 and 100")
        if cap < 0:
            raise ServiceError(ErrorKind.INVALID_INPUT, "maximum discount amount must be zero or more")
        if not isinstance(expiry_date, datetime) or to_utc(expiry_date) <= now:
            raise ServiceError(ErrorKind.INVALID_INPUT, "expiry date must be in the future")
        if description is not None and not isinstance(description, str):
            raise ServiceError(ErrorKind.INVALID_INPUT, "description must be text")
        description = (description or "").strip()
        restricted = set(restricted_user_ids or ())
        if not all(isinstance(u, str) for u in restricted):
            raise ServiceError(ErrorKind.INVALID_INPUT, "restricted user ids must be strings")
        if len(description) > 500:
            raise ServiceError(ErrorKind.INVALID_INPUT, "description cannot exceed 500 characters")

        coupon = Coupon(
            id=str(uuid.uuid4()),
            code=normalized,
            discount_percentage=pct,
            max_discount_amount=cap,
            expiry_date=to_utc(expiry_date),
            is_active=True,
            is_used=False,
            description=html.escape(description),
            created_at=now,
            updated_at=now,
        )
        coupon.restrictions = [CouponRestriction(user_id=u) for u in sorted(restricted) if u.strip()]

        with self.store.transaction() as tx:
            if tx.find_coupon_by_code(normalized) is not None:
                raise ServiceError(ErrorKind.DUPLICATE_COUPON, f"coupon code {normalized} already exists")
            tx.insert_coupon(coupon)
            tx.record_audit(actor_user_id, "coupon.created", "coupon", coupon.id, {"code": normalized})

        logger.info("Coupon %s created (%s%%, cap %s)", normalized, pct, cap)
        return coupon

    @returns_result
    def deactivate_coupon(self, coupon_id: str, actor_user_id: str | None = None) -> Coupon:
        require_text(coupon_id, "coupon_id")
        with self.store.transaction() as tx:
            coupon = tx.get_coupon(coupon_id, for_update=True)
            if coupon is None:
                raise ServiceError(ErrorKind.NOT_FOUND, "coupon not found")
            if coupon.is_used:
                raise ServiceError(ErrorKind.INVALID_TRANSITION, "a used coupon cannot be deactivated")
            if not coupon.is_active:
                return coupon

            coupon.is_active = False
            coupon.updated_at = max(self._clock(), coupon.updated_at)
            tx.update_coupon(coupon)
            tx.record_audit(actor_user_id, "coupon.deactivated", "coupon", coupon.id, {"code": coupon.code})

        logger.info("Coupon %s deactivated", coupon.code)
        return coupon

    @returns_result
    def list_active_coupons(self) -> list[Coupon]:
        with self.store.transaction(write=False) as tx:
            return tx.find_coupons(active_at=self._clock())

    @returns_result
    def list_expired_coupons(self) -> list[Coupon]:
        with self.store.transaction(write=False) as tx:
            return tx.find_coupons(expired_at=self._clock())

    @returns_result
    def list_all_coupons(self) -> list[Coupon]:
        with self.store.transaction(write=False) as tx:
            return tx.find_coupons()

    @returns_result
    def get_coupon(self, coupon_id: str) -> Coupon:
        require_text(coupon_id, "coupon_id")
        with self.store.transaction(write=False) as tx:
            coupon = tx.get_coupon(coupon_id)
        if coupon is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "coupon not found")
        return coupon

    @returns_result
    def delete_coupon(self, coupon_id: str, actor_user_id: str | None = None) -> Coupon:
        """Remove a coupon that never discounted a booking; used ones stay for the record."""
        require_text(coupon_id, "coupon_id")
        with self.store.transaction() as tx:
            coupon = tx.get_coupon(coupon_id, for_update=True)
            if coupon is None:
                raise ServiceError(ErrorKind.NOT_FOUND, "coupon not found")
            if coupon.is_used or tx.coupon_applied_to_booking(coupon.id):
                raise ServiceError(ErrorKind.INVALID_TRANSITION, "a used coupon cannot be deleted")
            tx.delete_coupon(coupon)
            tx.record_audit(actor_user_id, "coupon.deleted", "coupon", coupon.id, {"code": coupon.code})

        logger.info("Coupon %s deleted", coupon.code)
        return coupon


def _require_code(code) -> None:
    if not isinstance(code, str):
        raise ServiceError(ErrorKind.INVALID_INPUT, "coupon code must be text")


def _as_decimal(value, field: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ServiceError(ErrorKind.INVALID_INPUT, f"{field} must be a number")
    if not number.is_finite():
        raise ServiceError(ErrorKind.INVALID_INPUT, f"{field} must be a number")
    return number
