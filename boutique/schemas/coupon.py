# boutique/schemas/coupon.py
import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel

CouponKind = Literal["discount_amount", "discount_percentage", "free_delivery"]


class CouponTypeRead(SQLModel):
    id: uuid.UUID
    type: CouponKind
    value: float
    description: str


class UserCouponRead(SQLModel):
    """
    A coupon the customer can pick at checkout, with its template embedded.
    """

    id: uuid.UUID
    code: str
    coupon_type_id: uuid.UUID
    source: str
    is_used: bool
    used_at: datetime | None = None
    obtained_at: datetime
    valid_until: datetime | None = None
    coupon_type: CouponTypeRead
