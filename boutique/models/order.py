# boutique/models/order.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Local order record, paired with a WooCommerce order.

    Financial fields are written once at checkout and never updated
    by the checkout flow afterwards.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="Server-issued public order number",
    )

    # processing | completed | shipped | cancelled
    status: str = Field(
        default="processing",
        index=True,
    )

    # Total including VAT (tax-inclusive pricing)
    total_amount: float
    shipping_address: dict[str, Any] = Field(
        sa_column=Column(JSON, nullable=False),
        description="Address snapshot at checkout time",
    )
    shipping_method_id: str
    shipping_cost: float = 0.0
    tax_amount: float = 0.0
    insurance_cost: float = 0.0
    discount_amount: float = 0.0
    payment_method: str | None = None

    woocommerce_order_id: str | None = Field(default=None, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order (snapshot of the cart line).
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: str
    product_name: str
    product_slug: str | None = None
    product_image: str | None = None

    price: float = Field(description="Unit price at time of order (VAT included)")
    quantity: int = Field(gt=0)
