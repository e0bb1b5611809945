from fastapi import HTTPException

from hotel_booking.services.errors import Err, ErrorKind, Result

STATUS_BY_KIND = {
    ErrorKind.INVALID_RANGE: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BOOKING_NOT_FOUND: 404,
    ErrorKind.ROOM_CONFLICT: 409,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.DUPLICATE_COUPON: 409,
    ErrorKind.INVALID_COUPON: 422,
    ErrorKind.STORE_UNAVAILABLE: 503,
}


def unwrap(result: Result):
    """Return the success value or raise the HTTPException for the error kind."""
    if isinstance(result, Err):
        e = result.error
        raise HTTPException(
            status_code=STATUS_BY_KIND[e.kind],
            detail={"error": e.kind.value, "reason": e.reason.value if e.reason else None, "message": e.message},
        )
    return result.value
