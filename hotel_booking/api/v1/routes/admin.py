from typing import Literal
from fastapi import APIRouter, Depends, Response
from hotel_booking.api.deps import ADMIN_ROLES, CurrentUser, get_coupon_service, get_reservation_service, require_roles
from hotel_booking.api.errors import unwrap
from hotel_booking.api.v1.routes.bookings import booking_out
from hotel_booking.api.v1.routes.coupons import coupon_out
from hotel_booking.schemas.booking import BookingPageOut
from hotel_booking.schemas.coupon import CouponCreate, CouponOut
from hotel_booking.services.booking_service import ReservationService
from hotel_booking.services.coupon_service import CouponService

router = APIRouter(tags=["admin"])

@router.get("/admin/bookings", response_model=BookingPageOut)
def list_bookings(page: int = 0, pageSize: int = 20,
                  me: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
                  service: ReservationService = Depends(get_reservation_service)):
    result = unwrap(service.list_bookings(page, pageSize))
    return BookingPageOut(
        items=[booking_out(b) for b in result.items],
        totalCount=result.total_count,
        pageIndex=result.page_index,
        pageSize=result.page_size,
        totalPages=result.total_pages,
        hasNextPage=result.has_next,
        hasPreviousPage=result.has_previous,
    )

@router.post("/admin/coupons", response_model=CouponOut, status_code=201)
def create_coupon(body: CouponCreate,
                  me: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
                  service: CouponService = Depends(get_coupon_service)):
    coupon = unwrap(service.create_coupon(
        body.code,
        body.discountPercentage,
        body.maxDiscountAmount,
        body.expiryDate,
        description=body.description,
        restricted_user_ids=body.restrictedUserIds,
        actor_user_id=me.id,
    ))
    return coupon_out(coupon)

@router.get("/admin/coupons/{coupon_id}", response_model=CouponOut)
def get_coupon(coupon_id: str,
               me: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
               service: CouponService = Depends(get_coupon_service)):
    return coupon_out(unwrap(service.get_coupon(coupon_id)))

@router.delete("/admin/coupons/{coupon_id}", status_code=204)
def delete_coupon(coupon_id: str,
                  me: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
                  service: CouponService = Depends(get_coupon_service)):
    unwrap(service.delete_coupon(coupon_id, actor_user_id=me.id))
    return Response(status_code=204)

@router.post("/admin/coupons/{coupon_id}/deactivate", response_model=CouponOut)
def deactivate_coupon(coupon_id: str,
                      me: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
                      service: CouponService = Depends(get_coupon_service)):
    return coupon_out(unwrap(service.deactivate_coupon(coupon_id, actor_user_id=me.id)))

@router.get("/admin/coupons", response_model=list[CouponOut])
def list_coupons(state: Literal["active", "expired", "all"] = "active",
                 me: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
                 service: CouponService = Depends(get_coupon_service)):
    if state == "expired":
        coupons = unwrap(service.list_expired_coupons())
    elif state == "all":
        coupons = unwrap(service.list_all_coupons())
    else:
        coupons = unwrap(service.list_active_coupons())
    return [coupon_out(c) for c in coupons]
