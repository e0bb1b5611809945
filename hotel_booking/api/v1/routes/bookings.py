from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from hotel_booking.api.deps import CurrentUser, get_current_user, get_reservation_service, require_roles, ADMIN_ROLES
from hotel_booking.api.errors import unwrap
from hotel_booking.models.booking import Booking
from hotel_booking.schemas.booking import AvailabilityOut, BookingCreate, BookingOut, BookingStatusUpdate
from hotel_booking.services.booking_service import ReservationService

router = APIRouter(tags=["bookings"])

def booking_out(b: Booking) -> BookingOut:
    return BookingOut(
        id=b.id,
        roomId=b.room_id,
        userId=b.user_id,
        checkIn=b.check_in,
        checkOut=b.check_out,
        status=b.status,
        couponId=b.coupon_id,
        totalAmount=b.total_amount,
        specialRequests=b.special_requests or "",
        createdAt=b.created_at,
        updatedAt=b.updated_at,
    )

def _own_booking(booking_id: str, user: CurrentUser, service: ReservationService) -> Booking:
    booking = unwrap(service.get_booking(booking_id))
    if booking.user_id != user.id and not user.is_admin:
        # Same answer as a missing booking; other guests' ids are not confirmed.
        raise HTTPException(status_code=404, detail={"error": "NotFound", "reason": None, "message": "booking not found"})
    return booking

@router.get("/rooms/{room_id}/availability", response_model=AvailabilityOut)
def room_availability(room_id: str, checkIn: datetime, checkOut: datetime,
                      user: CurrentUser = Depends(get_current_user),
                      service: ReservationService = Depends(get_reservation_service)):
    available = unwrap(service.check_availability(room_id, checkIn, checkOut))
    return AvailabilityOut(roomId=room_id, checkIn=checkIn, checkOut=checkOut, available=available)

@router.post("/bookings", response_model=BookingOut, status_code=201)
def create_booking(body: BookingCreate,
                   user: CurrentUser = Depends(get_current_user),
                   service: ReservationService = Depends(get_reservation_service)):
    booking = unwrap(service.create_booking(user.id, body.roomId, body.checkIn, body.checkOut, body.specialRequests))
    return booking_out(booking)

@router.get("/bookings/me", response_model=list[BookingOut])
def my_bookings(user: CurrentUser = Depends(get_current_user),
                service: ReservationService = Depends(get_reservation_service)):
    return [booking_out(b) for b in unwrap(service.list_bookings_for_user(user.id))]

@router.get("/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: str,
                user: CurrentUser = Depends(get_current_user),
                service: ReservationService = Depends(get_reservation_service)):
    return booking_out(_own_booking(booking_id, user, service))

@router.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: str,
                   user: CurrentUser = Depends(get_current_user),
                   service: ReservationService = Depends(get_reservation_service)):
    _own_booking(booking_id, user, service)
    return booking_out(unwrap(service.cancel_booking(booking_id, actor_user_id=user.id)))

@router.patch("/bookings/{booking_id}/status", response_model=BookingOut)
def update_booking_status(booking_id: str, body: BookingStatusUpdate,
                          user: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
                          service: ReservationService = Depends(get_reservation_service)):
    return booking_out(unwrap(service.update_status(booking_id, body.status, actor_user_id=user.id)))
