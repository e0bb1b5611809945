from fastapi import APIRouter, Depends
from hotel_booking.api.deps import CurrentUser, get_current_user, get_coupon_service
from hotel_booking.api.errors import unwrap
from hotel_booking.api.v1.routes.bookings import booking_out
from hotel_booking.models.coupon import Coupon
from hotel_booking.schemas.booking import BookingOut
from hotel_booking.schemas.coupon import CouponOut, CouponRedeem, CouponValidate, CouponValidationOut
from hotel_booking.services.coupon_service import CouponService
from hotel_booking.services.errors import ErrorKind

router = APIRouter(tags=["coupons"])

def coupon_out(c: Coupon) -> CouponOut:
    return CouponOut(
        id=c.id,
        code=c.code,
        discountPercentage=c.discount_percentage,
        maxDiscountAmount=c.max_discount_amount,
        expiryDate=c.expiry_date,
        isActive=c.is_active,
        isUsed=c.is_used,
        description=c.description or "",
        restrictedUserIds=sorted(c.restricted_user_ids),
    )

@router.post("/coupons/validate", response_model=CouponValidationOut)
def validate_coupon(body: CouponValidate,
                    user: CurrentUser = Depends(get_current_user),
                    service: CouponService = Depends(get_coupon_service)):
    result = service.validate_coupon(body.code, user.id)
    if not result.ok and result.kind is ErrorKind.INVALID_COUPON:
        # A rejected code is an answer here, not a failure.
        return CouponValidationOut(code=body.code, valid=False, reason=result.reason.value)
    coupon = unwrap(result)
    return CouponValidationOut(
        code=coupon.code,
        valid=True,
        discountPercentage=coupon.discount_percentage,
        maxDiscountAmount=coupon.max_discount_amount,
    )

@router.post("/coupons/redeem", response_model=BookingOut)
def redeem_coupon(body: CouponRedeem,
                  user: CurrentUser = Depends(get_current_user),
                  service: CouponService = Depends(get_coupon_service)):
    return booking_out(unwrap(service.redeem_coupon(body.code, user.id, body.bookingId)))
