"""
Shared pytest fixtures.

Each test gets its own file-backed SQLite database so that worker threads in
the concurrency tests open real, separate connections to one database.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from hotel_booking.db.base import Base
from hotel_booking.db.session import build_engine, make_session_factory
from hotel_booking.db.store import SqlAlchemyStore
from hotel_booking.models.coupon import Coupon, CouponRestriction
from hotel_booking.models.room import Room
from hotel_booking.services.booking_service import ReservationService
from hotel_booking.services.coupon_service import CouponService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def stay(start_day: int, nights: int = 1) -> tuple[datetime, datetime]:
    """Check-in at 14:00 `start_day` days after NOW, check-out `nights` later."""
    check_in = NOW.replace(hour=14) + timedelta(days=start_day)
    return check_in, check_in + timedelta(days=nights)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return SqlAlchemyStore(session_factory)


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def reservations(store, clock):
    return ReservationService(store, clock=clock)


@pytest.fixture
def coupons(store, reservations, clock):
    return CouponService(store, reservations, clock=clock)


@pytest.fixture
def make_room(session_factory):
    def _make(price="100.00", is_available=True, number="101"):
        room = Room(
            id=str(uuid.uuid4()),
            hotel_id="hotel-1",
            room_number=number,
            room_type="Standard",
            price_per_night=Decimal(price),
            max_occupancy=2,
            is_available=is_available,
        )
        with session_factory.begin() as session:
            session.add(room)
        return room
    return _make


@pytest.fixture
def room(make_room):
    return make_room()


@pytest.fixture
def make_coupon(session_factory):
    """Insert a coupon row directly, bypassing create_coupon's input checks."""
    def _make(code="SAVE20", pct="20", cap="50", expires_in=timedelta(days=30),
              is_active=True, is_used=False, restricted=()):
        coupon = Coupon(
            id=str(uuid.uuid4()),
            code=code.upper(),
            discount_percentage=Decimal(pct),
            max_discount_amount=Decimal(cap),
            expiry_date=NOW + expires_in,
            is_active=is_active,
            is_used=is_used,
            description="",
            created_at=NOW,
            updated_at=NOW,
        )
        coupon.restrictions = [CouponRestriction(user_id=u) for u in restricted]
        with session_factory.begin() as session:
            session.add(coupon)
        return coupon
    return _make


@pytest.fixture
def get_coupon_row(session_factory):
    def _get(coupon_id):
        with session_factory() as session:
            return session.get(Coupon, coupon_id)
    return _get
