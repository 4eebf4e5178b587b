"""
Checkout price calculator.

Prices are VAT-inclusive (TTC): tax is back-calculated from the total,
never added on top. All functions are pure.
"""

from boutique.schemas.checkout import PriceBreakdown
from boutique.schemas.options import ShippingMethod

INSURANCE_TIERS: dict[str, float] = {
    "none": 0.0,
    "standard": 2.99,
    "premium": 4.99,
}

MINIMUM_ORDER_AMOUNT = 10.0
VAT_RATE = 20.0

FREE_DELIVERY = "free_delivery"
DISCOUNT_AMOUNT = "discount_amount"
DISCOUNT_PERCENTAGE = "discount_percentage"


class CouponTerms:
    """The part of a coupon type the calculator needs."""

    __slots__ = ("type", "value")

    def __init__(self, type: str, value: float = 0.0):
        self.type = type
        self.value = value


def calculate_shipping_cost(
    method: ShippingMethod | None, coupon: CouponTerms | None = None
) -> float:
    if coupon is not None and coupon.type == FREE_DELIVERY:
        return 0.0
    if method is None:
        return 0.0
    return method.cost_value


def calculate_insurance_cost(tier: str) -> float:
    return INSURANCE_TIERS.get(tier, 0.0)


def calculate_cart_discount(subtotal: float, coupon: CouponTerms | None) -> float:
    """
    Discount applied to the goods only.

    Free delivery is handled through the shipping cost, not here.
    """
    if coupon is None:
        return 0.0
    if coupon.type == DISCOUNT_AMOUNT:
        return min(coupon.value, subtotal)
    if coupon.type == DISCOUNT_PERCENTAGE:
        return subtotal * coupon.value / 100
    return 0.0


def calculate_discount(
    subtotal: float,
    coupon: CouponTerms | None,
    method: ShippingMethod | None = None,
) -> float:
    """
    Discount as displayed to the customer.

    For free delivery this is the shipping cost that was waived; it is a
    display line only and is not subtracted again from the total.
    """
    if coupon is not None and coupon.type == FREE_DELIVERY:
        return method.cost_value if method is not None else 0.0
    return calculate_cart_discount(subtotal, coupon)


def calculate_total(
    subtotal: float, cart_discount: float, shipping: float, insurance: float
) -> float:
    return subtotal - cart_discount + shipping + insurance


def calculate_tax(
    subtotal: float,
    cart_discount: float,
    shipping: float,
    insurance: float,
    vat_rate: float = VAT_RATE,
) -> float:
    """VAT contained in a tax-inclusive total: base * rate / (100 + rate)."""
    base = calculate_total(subtotal, cart_discount, shipping, insurance)
    return base * vat_rate / (100 + vat_rate)


def minimum_order_shortfall(subtotal: float, minimum: float = MINIMUM_ORDER_AMOUNT) -> float:
    """Amount still needed to reach the minimum; 0 when reached."""
    return max(0.0, minimum - subtotal)


def build_quote(
    subtotal: float,
    method: ShippingMethod | None,
    coupon: CouponTerms | None,
    insurance_tier: str,
    vat_rate: float = VAT_RATE,
    minimum: float = MINIMUM_ORDER_AMOUNT,
) -> PriceBreakdown:
    cart_discount = calculate_cart_discount(subtotal, coupon)
    shipping = calculate_shipping_cost(method, coupon)
    insurance = calculate_insurance_cost(insurance_tier)

    return PriceBreakdown(
        subtotal=subtotal,
        cart_discount=cart_discount,
        discount=calculate_discount(subtotal, coupon, method),
        shipping_cost=shipping,
        insurance_cost=insurance,
        tax=calculate_tax(subtotal, cart_discount, shipping, insurance, vat_rate),
        total=calculate_total(subtotal, cart_discount, shipping, insurance),
        minimum_order_amount=minimum,
        amount_missing=minimum_order_shortfall(subtotal, minimum),
    )
