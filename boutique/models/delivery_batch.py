# boutique/models/delivery_batch.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class DeliveryBatch(SQLModel, table=True):
    """
    Grouped shipment ("colis ouvert").

    The customer pays shipping once, then keeps adding items until
    validate_at. A batch is *active* while status == "pending" and
    validate_at is in the future; a user has at most one active batch.

    Status lifecycle:
      pending -> validated | cancelled
    """

    __tablename__ = "delivery_batches"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        index=True,
    )

    shipping_cost: float = 0.0
    shipping_address_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="addresses.id",
    )

    woocommerce_order_id: str | None = None

    status: str = Field(default="pending", index=True)

    validate_at: datetime = Field(description="Auto-validation deadline (UTC)")
    validated_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class DeliveryBatchItem(SQLModel, table=True):
    """
    One cart line added to a delivery batch.
    """

    __tablename__ = "delivery_batch_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    batch_id: uuid.UUID = Field(
        foreign_key="delivery_batches.id",
        index=True,
    )

    product_id: str
    product_name: str
    product_slug: str | None = None
    quantity: int = Field(gt=0)
    unit_price: float
    total_price: float
    image_url: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
