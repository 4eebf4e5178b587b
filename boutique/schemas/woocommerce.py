# boutique/schemas/woocommerce.py
"""
WooCommerce REST shapes (wc/v3).

Inbound models validate what we actually read from WooCommerce, so a
missing field fails loudly at the client edge. Outbound models describe
the order payload we POST.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict


class _WooModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---- inbound ----


class WooShippingZone(_WooModel):
    id: int
    name: str


class WooShippingMethod(_WooModel):
    instance_id: int
    method_id: str
    enabled: bool
    title: str | None = None
    method_title: str | None = None
    method_description: str | None = None
    settings: dict[str, Any] = {}

    @property
    def configured_cost(self) -> str:
        cost = self.settings.get("cost") or {}
        value = cost.get("value") if isinstance(cost, dict) else None
        return value or "0"


class WooPaymentGateway(_WooModel):
    id: str
    title: str
    description: str = ""
    order: int | str | None = None
    enabled: bool


class WooTaxRate(_WooModel):
    id: int
    country: str = ""
    state: str = ""
    rate: str
    name: str = ""
    shipping: bool = True


class WooOrder(_WooModel):
    id: int
    number: str | None = None
    status: str


# ---- outbound ----


class WooAddress(BaseModel):
    first_name: str
    last_name: str
    address_1: str
    address_2: str = ""
    city: str
    postcode: str
    country: str
    email: str | None = None
    phone: str | None = None


class WooLineItem(BaseModel):
    product_id: int
    quantity: int
    variation_id: int | None = None


class WooShippingLine(BaseModel):
    method_id: str
    method_title: str
    total: str


class WooMeta(BaseModel):
    key: str
    value: Any


class WooOrderPayload(BaseModel):
    status: str | None = None
    payment_method: str
    payment_method_title: str
    set_paid: bool = False
    billing: WooAddress
    shipping: WooAddress
    line_items: list[WooLineItem]
    shipping_lines: list[WooShippingLine] = []
    meta_data: list[WooMeta] = []

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
