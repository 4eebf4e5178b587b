# boutique/schemas/checkout.py
import uuid
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

from boutique.schemas.relay import RelayPoint

InsuranceTier = Literal["none", "standard", "premium"]
CheckoutKind = Literal["order", "delivery_batch"]


class CheckoutSelection(SQLModel):
    """
    Choices made on the checkout page.

    Everything is optional at the schema level: missing selections are
    reported by the checkout gates one at a time, in a fixed order.
    """

    model_config = ConfigDict(extra="forbid")

    address_id: uuid.UUID | None = None
    shipping_method_id: str | None = None
    payment_method: str | None = None
    insurance: InsuranceTier = "none"
    coupon_id: uuid.UUID | None = None
    relay_point: RelayPoint | None = None


class CheckoutRequest(CheckoutSelection):
    """
    Payload for submitting the checkout.

    use_delivery_batch routes the cart into the customer's grouped
    shipment instead of a standalone order.
    """

    use_delivery_batch: bool = False


class PriceBreakdown(SQLModel):
    """
    Totals shown on the checkout page (VAT included everywhere).

    `discount` is the display line; for free delivery it equals the
    shipping cost while `shipping_cost` itself is already 0.
    """

    subtotal: float
    cart_discount: float
    discount: float
    shipping_cost: float
    insurance_cost: float
    tax: float
    total: float
    minimum_order_amount: float
    amount_missing: float


class CheckoutResult(SQLModel):
    kind: CheckoutKind
    redirect_to: str
    order_id: uuid.UUID | None = None
    order_number: str | None = None
    batch_id: uuid.UUID | None = None
    woocommerce_order_id: str | None = None
    payment_intent_id: str | None = None
    client_secret: str | None = None
    amount_charged: float
    breakdown: PriceBreakdown
