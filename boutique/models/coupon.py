# boutique/models/coupon.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class CouponType(SQLModel, table=True):
    """
    Reusable discount template.

    type:
      - discount_amount     : fixed amount off the cart
      - discount_percentage : percent off the cart
      - free_delivery       : shipping offered
    """

    __tablename__ = "coupon_types"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    type: str = Field(index=True)
    value: float = Field(default=0.0, ge=0)
    description: str = ""
    valid_until: datetime | None = None


class UserCoupon(SQLModel, table=True):
    """
    A coupon type instantiated for one user.

    is_used only ever moves False -> True, together with used_at and
    order_id.
    """

    __tablename__ = "user_coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        index=True,
    )

    coupon_type_id: uuid.UUID = Field(
        foreign_key="coupon_types.id",
        index=True,
    )

    code: str = Field(unique=True, index=True)
    source: str = Field(default="manual")

    is_used: bool = Field(default=False, index=True)
    used_at: datetime | None = None
    order_id: uuid.UUID | None = Field(default=None, foreign_key="orders.id")

    obtained_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    valid_until: datetime | None = None
