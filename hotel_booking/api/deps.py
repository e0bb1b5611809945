from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from hotel_booking.core.security import decode_token
from hotel_booking.db.session import SessionLocal
from hotel_booking.db.store import SqlAlchemyStore
from hotel_booking.services.booking_service import ReservationService
from hotel_booking.services.coupon_service import CouponService

bearer = HTTPBearer(auto_error=False)

ADMIN_ROLES = ("admin", "superadmin")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def get_store() -> SqlAlchemyStore:
    return SqlAlchemyStore(SessionLocal)

def get_reservation_service(store: SqlAlchemyStore = Depends(get_store)) -> ReservationService:
    return ReservationService(store)

def get_coupon_service(
    store: SqlAlchemyStore = Depends(get_store),
    reservations: ReservationService = Depends(get_reservation_service),
) -> CouponService:
    return CouponService(store, reservations)

def get_current_user(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> CurrentUser:
    # Identity is delegated to the token issuer; we only trust a verified `sub`.
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("sub")
    if not user_id or payload.get("type", "access") != "access":
        raise HTTPException(status_code=401, detail="Invalid token")
    return CurrentUser(id=str(user_id), role=payload.get("role") or "customer")

def require_roles(*roles: str):
    def _guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _guard
