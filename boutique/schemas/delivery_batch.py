# boutique/schemas/delivery_batch.py
import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel

BatchStatus = Literal["pending", "validated", "cancelled"]


class DeliveryBatchItemRead(SQLModel):
    id: uuid.UUID
    product_id: str
    product_name: str
    product_slug: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    image_url: str | None = None
    created_at: datetime


class DeliveryBatchRead(SQLModel):
    """
    A grouped shipment with its items.

    total = sum(items.total_price) + shipping_cost
    """

    id: uuid.UUID
    shipping_cost: float
    shipping_address_id: uuid.UUID | None = None
    woocommerce_order_id: str | None = None
    status: BatchStatus
    validate_at: datetime
    validated_at: datetime | None = None
    created_at: datetime
    is_expired: bool
    items: list[DeliveryBatchItemRead]
    subtotal: float
    total: float
