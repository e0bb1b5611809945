from decimal import Decimal
from sqlalchemy import String, Boolean, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from hotel_booking.db.session import Base
from hotel_booking.db.types import UTCDateTime

class Coupon(Base):
    __tablename__ = "coupons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True)  # stored upper-cased

    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    max_discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    expiry_date: Mapped[datetime] = mapped_column(UTCDateTime)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)

    description: Mapped[str] = mapped_column(String(500), default="")

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    restrictions: Mapped[list["CouponRestriction"]] = relationship(
        back_populates="coupon", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def restricted_user_ids(self) -> set[str]:
        return {r.user_id for r in self.restrictions}


class CouponRestriction(Base):
    __tablename__ = "coupon_restricted_users"

    coupon_id: Mapped[str] = mapped_column(String(36), ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    coupon: Mapped[Coupon] = relationship(back_populates="restrictions")
