from fastapi import APIRouter
from hotel_booking.api.v1.routes.bookings import router as bookings_router
from hotel_booking.api.v1.routes.coupons import router as coupons_router
from hotel_booking.api.v1.routes.admin import router as admin_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings_router)
api_router.include_router(coupons_router)
api_router.include_router(admin_router)
