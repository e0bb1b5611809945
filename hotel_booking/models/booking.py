from decimal import Decimal
from sqlalchemy import String, Text, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from hotel_booking.db.session import Base
from hotel_booking.db.types import UTCDateTime

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    room_id: Mapped[str] = mapped_column(String(36), ForeignKey("rooms.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)  # booker

    check_in: Mapped[datetime] = mapped_column(UTCDateTime)
    check_out: Mapped[datetime] = mapped_column(UTCDateTime)

    status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING, CONFIRMED, CANCELLED

    coupon_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("coupons.id"), nullable=True, unique=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    special_requests: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("check_in < check_out", name="ck_bookings_range"),
        # Serves the per-room overlap query
        Index("ix_bookings_room_status_check_in", "room_id", "status", "check_in"),
    )
