"""Error taxonomy and tagged results for the reservation and coupon services.

Inside a transaction the services raise :class:`ServiceError` so the store
rolls back. At the public method boundary the error is returned as
``Err(error)``; successful calls return ``Ok(value)``. Callers branch on
``error.kind`` (and ``error.reason`` for coupons), never on message text.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    INVALID_RANGE = "InvalidRange"
    INVALID_INPUT = "InvalidInput"
    ROOM_CONFLICT = "RoomConflict"
    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    INVALID_COUPON = "InvalidCoupon"
    DUPLICATE_COUPON = "DuplicateCoupon"
    BOOKING_NOT_FOUND = "BookingNotFound"
    STORE_UNAVAILABLE = "StoreUnavailable"


class CouponRejection(str, Enum):
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    INACTIVE = "Inactive"
    ALREADY_USED = "AlreadyUsed"
    USER_RESTRICTED = "UserRestricted"
    BOOKING_ALREADY_DISCOUNTED = "BookingAlreadyDiscounted"


class ServiceError(Exception):
    def __init__(self, kind: ErrorKind, message: str = "", reason: CouponRejection | None = None):
        super().__init__(message or kind.value)
        self.kind = kind
        self.reason = reason
        self.message = message or kind.value

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.value!r}, reason={self.reason and self.reason.value!r}, message={self.message!r})"


def invalid_coupon(reason: CouponRejection, message: str = "") -> ServiceError:
    return ServiceError(ErrorKind.INVALID_COUPON, message or f"coupon rejected: {reason.value}", reason=reason)


def require_text(value, field: str) -> str:
    """Non-blank string or InvalidInput."""
    if not isinstance(value, str) or not value.strip():
        raise ServiceError(ErrorKind.INVALID_INPUT, f"{field} must be a non-empty string")
    return value


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: ServiceError

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def reason(self) -> CouponRejection | None:
        return self.error.reason


Result = Union[Ok[T], Err]


def returns_result(fn: Callable[..., T]) -> Callable[..., Result[T]]:
    """Wrap a method that returns a value or raises ServiceError into Ok/Err."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return Ok(fn(*args, **kwargs))
        except ServiceError as e:
            if e.kind is ErrorKind.INVALID_COUPON:
                logger.warning("%s rejected coupon: %s (%s)", fn.__qualname__, e.reason.value, e.message)
            elif e.kind is not ErrorKind.STORE_UNAVAILABLE:
                logger.info("%s rejected: %s (%s)", fn.__qualname__, e.kind.value, e.message)
            return Err(e)

    return wrapper
