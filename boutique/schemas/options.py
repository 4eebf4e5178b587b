# boutique/schemas/options.py
from typing import Literal

from sqlmodel import SQLModel

ShippingKind = Literal["home", "relay"]


class ShippingMethod(SQLModel):
    """
    Selectable shipping method, flattened from WooCommerce zones.

    `kind` is decided once when the WooCommerce payload is parsed;
    nothing downstream looks at the title text again.
    """

    id: str
    zone_id: int
    zone_name: str
    instance_id: int
    method_id: str
    title: str
    cost: str
    description: str = ""
    kind: ShippingKind = "home"

    @property
    def is_relay(self) -> bool:
        return self.kind == "relay"

    @property
    def cost_value(self) -> float:
        try:
            return float(self.cost)
        except ValueError:
            return 0.0


class PaymentGateway(SQLModel):
    id: str
    title: str
    description: str = ""
    order: int | str | None = None


class TaxRate(SQLModel):
    id: int
    country: str = ""
    state: str = ""
    rate: str
    name: str = ""
    shipping: bool = True


class CheckoutOptions(SQLModel):
    """
    Everything the checkout page needs to build its selectors.
    """

    shipping_methods: list[ShippingMethod]
    payment_gateways: list[PaymentGateway]
    tax_rates: list[TaxRate]
