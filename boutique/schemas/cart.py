# boutique/schemas/cart.py
import uuid
from datetime import datetime
from typing import Any

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class CartLine(SQLModel):
    """
    A cart line as the storefront holds it (local cart, add-to-cart,
    wholesale sync).
    """

    model_config = ConfigDict(extra="ignore")

    product_id: str
    variation_id: str | None = None
    name: str
    slug: str | None = None
    price: float = Field(ge=0)
    image_url: str | None = None
    quantity: int = Field(gt=0)
    variation_price: float | None = None
    variation_image: str | None = None
    selected_attributes: dict[str, Any] | None = None


class CartQuantityUpdate(SQLModel):
    """
    Payload for updating quantity of a cart line.

    quantity <= 0 removes the line.
    """

    quantity: int
    variation_id: str | None = None


class CartSync(SQLModel):
    """
    Wholesale replacement of the server cart (debounced client push).
    """

    items: list[CartLine]


class CartMerge(SQLModel):
    """
    Anonymous local cart sent once after sign-in.
    """

    local_items: list[CartLine] = []


class CartItemRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    id: uuid.UUID
    product_id: str
    variation_id: str | None = None
    name: str
    slug: str | None = None
    price: float
    unit_price: float
    image_url: str | None = None
    quantity: int
    variation_price: float | None = None
    variation_image: str | None = None
    selected_attributes: dict[str, Any] | None = None
    line_total: float
    created_at: datetime


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartItemRead]
    total_quantity: int
    total_price: float


class CartMergeResult(CartSummary):
    """
    Merged cart; the client must drop its local copy afterwards.
    """

    clear_local_storage: bool = True
