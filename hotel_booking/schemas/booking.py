from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

class BookingCreate(BaseModel):
    roomId: str
    checkIn: datetime
    checkOut: datetime
    specialRequests: Optional[str] = ""

class BookingStatusUpdate(BaseModel):
    status: str = Field(description="PENDING, CONFIRMED or CANCELLED")

class BookingOut(BaseModel):
    id: str
    roomId: str
    userId: str
    checkIn: datetime
    checkOut: datetime
    status: str
    couponId: Optional[str] = None
    totalAmount: Decimal
    specialRequests: str = ""
    createdAt: datetime
    updatedAt: datetime

class AvailabilityOut(BaseModel):
    roomId: str
    checkIn: datetime
    checkOut: datetime
    available: bool

class BookingPageOut(BaseModel):
    items: list[BookingOut]
    totalCount: int
    pageIndex: int
    pageSize: int
    totalPages: int
    hasNextPage: bool
    hasPreviousPage: bool
