from hotel_booking.db.session import Base

# Import all models so metadata (create_all, Alembic) sees every table
from hotel_booking.models.room import Room  # noqa: F401
from hotel_booking.models.coupon import Coupon, CouponRestriction  # noqa: F401
from hotel_booking.models.booking import Booking  # noqa: F401
from hotel_booking.models.audit_log import AuditLog  # noqa: F401
