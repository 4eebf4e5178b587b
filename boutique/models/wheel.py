# boutique/models/wheel.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class WheelGameSettings(SQLModel, table=True):
    """
    Wheel-of-fortune configuration (single row in practice).

    Zones are stored as JSON lists:
      winning_zones: [{"coupon_type_id": "<uuid>", "probability": 10}, ...]
      losing_zones:  [{"message": "Perdu !", "probability": 70}, ...]

    A zone's probability is an unnormalized weight.
    A cap of 0 means "unlimited".
    """

    __tablename__ = "wheel_game_settings"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    is_enabled: bool = Field(default=True)
    require_authentication: bool = Field(default=False)
    max_plays_per_day: int = Field(default=1, ge=0)
    max_plays_per_user: int = Field(default=0, ge=0)

    winning_zones: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    losing_zones: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class WheelGamePlay(SQLModel, table=True):
    """
    One spin, logged whether it won or not.

    Anonymous players are tracked by session_id instead of user_id.
    """

    __tablename__ = "wheel_game_plays"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="profiles.id",
        index=True,
    )
    session_id: str | None = Field(default=None, index=True)

    won: bool = False
    prize_type: str = Field(default="none")
    coupon_type_id: uuid.UUID | None = None
    user_coupon_id: uuid.UUID | None = None
    zone_index: int

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
