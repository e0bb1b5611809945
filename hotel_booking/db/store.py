"""Persistence collaborator for the reservation and coupon services.

``SqlAlchemyStore`` is handed to the services explicitly; each call to
``transaction()`` opens a fresh session, so nothing about rooms, bookings or
coupons is cached between calls. Driver failures (lock waits, dropped
connections, pool exhaustion) leave here as ``StoreUnavailable``.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterable, Iterator, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hotel_booking.models.booking import Booking
from hotel_booking.models.coupon import Coupon
from hotel_booking.db.session import READ_ONLY
from hotel_booking.models.room import Room
from hotel_booking.services.audit_service import log_audit
from hotel_booking.services.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreTransaction:
    """Operations available while a store transaction is open."""

    def __init__(self, session: Session):
        self.session = session

    # Rooms

    def lock_room(self, room_id: str) -> Room | None:
        # FOR UPDATE is the per-room mutex on Postgres; SQLite already holds the write lock.
        return self.session.execute(
            select(Room).where(Room.id == room_id).with_for_update()
        ).scalar_one_or_none()

    def get_room(self, room_id: str) -> Room | None:
        return self.session.get(Room, room_id)

    # Bookings

    def find_bookings_by_room(
        self,
        room_id: str,
        statuses: Iterable[str],
        overlapping: tuple[datetime, datetime] | None = None,
    ) -> list[Booking]:
        q = select(Booking).where(
            Booking.room_id == room_id,
            Booking.status.in_([getattr(s, "value", s) for s in statuses]),
        )
        if overlapping is not None:
            start, end = overlapping
            q = q.where(Booking.check_in < end, Booking.check_out > start)
        return list(self.session.execute(q.order_by(Booking.check_in)).scalars())

    def find_bookings_by_user(self, user_id: str) -> list[Booking]:
        q = select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())
        return list(self.session.execute(q).scalars())

    def page_bookings(self, offset: int, limit: int) -> list[Booking]:
        q = select(Booking).order_by(Booking.check_in, Booking.id).offset(offset).limit(limit)
        return list(self.session.execute(q).scalars())

    def count_bookings(self) -> int:
        return self.session.execute(select(func.count()).select_from(Booking)).scalar_one()

    def get_booking(self, booking_id: str, for_update: bool = False) -> Booking | None:
        q = select(Booking).where(Booking.id == booking_id)
        if for_update:
            q = q.with_for_update()
        return self.session.execute(q).scalar_one_or_none()

    def insert_booking(self, booking: Booking) -> Booking:
        self.session.add(booking)
        try:
            self.session.flush()
        except IntegrityError as e:
            # Postgres exclusion constraint on active intervals
            raise ServiceError(ErrorKind.ROOM_CONFLICT, "room already booked for an overlapping stay") from e
        return booking

    def update_booking(self, booking: Booking) -> Booking:
        self.session.add(booking)
        self.session.flush()
        return booking

    # Coupons

    def find_coupon_by_code(self, code: str, for_update: bool = False) -> Coupon | None:
        q = select(Coupon).where(Coupon.code == normalize_code(code))
        if for_update:
            q = q.with_for_update()
        return self.session.execute(q).scalar_one_or_none()

    def get_coupon(self, coupon_id: str, for_update: bool = False) -> Coupon | None:
        q = select(Coupon).where(Coupon.id == coupon_id)
        if for_update:
            q = q.with_for_update()
        return self.session.execute(q).scalar_one_or_none()

    def insert_coupon(self, coupon: Coupon) -> Coupon:
        self.session.add(coupon)
        try:
            self.session.flush()
        except IntegrityError as e:
            raise ServiceError(ErrorKind.DUPLICATE_COUPON, f"coupon code {coupon.code} already exists") from e
        return coupon

    def update_coupon(self, coupon: Coupon) -> Coupon:
        self.session.add(coupon)
        self.session.flush()
        return coupon

    def delete_coupon(self, coupon: Coupon) -> None:
        self.session.delete(coupon)
        self.session.flush()

    def coupon_applied_to_booking(self, coupon_id: str) -> bool:
        q = select(Booking.id).where(Booking.coupon_id == coupon_id).limit(1)
        return self.session.execute(q).first() is not None

    def claim_coupon(self, coupon_id: str, now: datetime) -> bool:
        """Flip is_used false -> true. False when another transaction got there first."""
        result = self.session.execute(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.is_used.is_(False), Coupon.is_active.is_(True))
            .values(is_used=True, updated_at=now)
        )
        return result.rowcount == 1

    def find_coupons(self, *, active_at: datetime | None = None, expired_at: datetime | None = None) -> list[Coupon]:
        q = select(Coupon)
        if active_at is not None:
            q = q.where(Coupon.is_active.is_(True), Coupon.is_used.is_(False), Coupon.expiry_date > active_at)
        if expired_at is not None:
            q = q.where(Coupon.expiry_date <= expired_at)
        return list(self.session.execute(q.order_by(Coupon.expiry_date)).scalars())

    # Audit

    def record_audit(self, actor_user_id: str | None, action: str, entity_type: str, entity_id: str, details: dict | None = None):
        log_audit(self.session, actor_user_id, action, entity_type, entity_id, details)


class SqlAlchemyStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def transaction(self, write: bool = True) -> Iterator[StoreTransaction]:
        """Commit on clean exit, roll back on any exception.

        ``write=False`` marks a read-only transaction; on SQLite it does not
        take the database write lock.
        """
        session = self._session_factory()
        try:
            with session.begin():
                if not write:
                    session.connection(execution_options={READ_ONLY: True})
                yield StoreTransaction(session)
        except ServiceError:
            raise
        except SQLAlchemyError as e:
            logger.exception("Store operation failed")
            raise ServiceError(ErrorKind.STORE_UNAVAILABLE, "booking store is unavailable, try again") from e
        finally:
            session.close()

    def with_transaction(self, fn: Callable[[StoreTransaction], T], write: bool = True) -> T:
        with self.transaction(write=write) as tx:
            return fn(tx)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()
