from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

class CouponCreate(BaseModel):
    code: str
    discountPercentage: Decimal = Field(ge=0, le=100)
    maxDiscountAmount: Decimal = Field(ge=0)
    expiryDate: datetime
    description: str = ""
    restrictedUserIds: List[str] = []

class CouponValidate(BaseModel):
    code: str

class CouponRedeem(BaseModel):
    code: str
    bookingId: str

class CouponOut(BaseModel):
    id: str
    code: str
    discountPercentage: Decimal
    maxDiscountAmount: Decimal
    expiryDate: datetime
    isActive: bool
    isUsed: bool
    description: str = ""
    restrictedUserIds: List[str] = []

class CouponValidationOut(BaseModel):
    code: str
    valid: bool
    reason: Optional[str] = None
    discountPercentage: Optional[Decimal] = None
    maxDiscountAmount: Optional[Decimal] = None
