import logging
import uuid
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, ProgrammingError

from hotel_booking.core.timeutils import utcnow
from hotel_booking.db.session import SessionLocal
from hotel_booking.models.room import Room
from hotel_booking.models.coupon import Coupon

logger = logging.getLogger(__name__)

DEMO_HOTEL_ID = "00000000-0000-0000-0000-000000000001"

ROOMS = [
    ("101", "Standard", Decimal("80.00"), 2),
    ("102", "Standard", Decimal("80.00"), 2),
    ("201", "Deluxe", Decimal("140.00"), 3),
    ("301", "Suite", Decimal("260.00"), 4),
]


def ensure_room(db: Session, number: str, room_type: str, price: Decimal, occupancy: int):
    exists = db.query(Room).filter(Room.hotel_id == DEMO_HOTEL_ID, Room.room_number == number).first()
    if exists:
        return
    db.add(Room(
        id=str(uuid.uuid4()),
        hotel_id=DEMO_HOTEL_ID,
        room_number=number,
        room_type=room_type,
        price_per_night=price,
        max_occupancy=occupancy,
        is_available=True,
    ))


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM rooms LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("rooms table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        for number, room_type, price, occupancy in ROOMS:
            ensure_room(db, number, room_type, price, occupancy)

        if not db.query(Coupon).filter(Coupon.code == "WELCOME20").first():
            db.add(Coupon(
                id=str(uuid.uuid4()),
                code="WELCOME20",
                discount_percentage=Decimal("20"),
                max_discount_amount=Decimal("50.00"),
                expiry_date=utcnow() + timedelta(days=365),
                description="20% off your first stay, up to 50",
            ))
        db.commit()
        logger.info("Seeded %d demo rooms", len(ROOMS))
    finally:
        db.close()
