# boutique/schemas/wheel.py
import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict
from sqlmodel import SQLModel

from boutique.schemas.coupon import UserCouponRead


class WinningZoneConfig(BaseModel):
    """Stored winning zone: a coupon type and its weight."""

    model_config = ConfigDict(extra="ignore")

    coupon_type_id: uuid.UUID | None = None
    probability: float = 0.0


class LosingZoneConfig(BaseModel):
    """Stored losing zone: a consolation message and its weight."""

    model_config = ConfigDict(extra="ignore")

    message: str = "Perdu !"
    probability: float = 0.0


class WheelZone(SQLModel):
    """A wheel segment as drawn on screen."""

    id: str
    type: Literal["winning", "losing"]
    label: str
    coupon_type_id: uuid.UUID | None = None
    message: str | None = None


class WheelStatus(SQLModel):
    is_enabled: bool
    require_authentication: bool
    zones: list[WheelZone]
    can_play: bool
    reason: str | None = None
    plays_today: int
    max_plays_per_day: int


class SpinResult(SQLModel):
    won: bool
    zone_index: int
    zone: WheelZone
    message: str
    coupon: UserCouponRead | None = None
