from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from hotel_booking.core.timeutils import to_utc


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC on the way in and out, whatever the backend keeps."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return to_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return to_utc(value)
