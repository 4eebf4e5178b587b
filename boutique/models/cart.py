# boutique/models/cart.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import SQLModel, Field


class CartItem(SQLModel, table=True):
    """
    Server-side mirror of a customer's cart line.

    Conflict key is (user_id, product_id, variation_id): one row per
    product variation. Product ids are WooCommerce ids kept as strings.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", "variation_id"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        index=True,
    )

    product_id: str = Field(index=True)
    variation_id: str | None = Field(default=None)

    name: str
    slug: str | None = None

    price: float = Field(
        ge=0,
        description="Catalog price when added to cart",
    )
    image_url: str | None = None

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    variation_price: float | None = None
    variation_image: str | None = None
    selected_attributes: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def unit_price(self) -> float:
        return self.variation_price or self.price
