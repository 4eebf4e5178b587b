"""Unit tests for the checkout price calculator."""

import pytest

from boutique.schemas.options import ShippingMethod
from boutique.services import pricing
from boutique.services.pricing import CouponTerms


def _method(cost="5.00", kind="home"):
    return ShippingMethod(
        id="1_1",
        zone_id=1,
        zone_name="France",
        instance_id=1,
        method_id="flat_rate",
        title="Colissimo",
        cost=cost,
        kind=kind,
    )


class TestShippingAndInsurance:

    def test_shipping_is_method_cost(self):
        assert pricing.calculate_shipping_cost(_method("5.00")) == 5.0

    def test_no_method_means_no_shipping(self):
        assert pricing.calculate_shipping_cost(None) == 0.0

    def test_unparseable_cost_counts_as_zero(self):
        assert pricing.calculate_shipping_cost(_method("gratuit")) == 0.0

    @pytest.mark.parametrize(
        "tier, expected", [("none", 0.0), ("standard", 2.99), ("premium", 4.99)]
    )
    def test_insurance_tiers(self, tier, expected):
        assert pricing.calculate_insurance_cost(tier) == expected


class TestDiscounts:

    @pytest.mark.parametrize("value", [1.0, 49.99, 50.0, 75.0, 1000.0])
    def test_amount_discount_never_exceeds_subtotal(self, value):
        discount = pricing.calculate_discount(50.0, CouponTerms("discount_amount", value))
        assert discount <= 50.0
        assert discount == min(value, 50.0)

    def test_percentage_discount(self):
        coupon = CouponTerms("discount_percentage", 10)
        assert pricing.calculate_discount(80.0, coupon) == pytest.approx(8.0)

    def test_free_delivery_nets_out_shipping(self):
        coupon = CouponTerms("free_delivery")
        method = _method("6.50")

        assert pricing.calculate_shipping_cost(method, coupon) == 0.0
        assert pricing.calculate_discount(40.0, coupon, method) == 6.5
        # Displayed discount is not taken off the goods.
        assert pricing.calculate_cart_discount(40.0, coupon) == 0.0

    def test_free_delivery_total_has_no_shipping(self):
        quote = pricing.build_quote(40.0, _method("6.50"), CouponTerms("free_delivery"), "none")
        assert quote.shipping_cost == 0.0
        assert quote.discount == 6.5
        assert quote.total == pytest.approx(40.0)


class TestTaxAndTotal:

    @pytest.mark.parametrize(
        "subtotal, discount, shipping, insurance",
        [(50.0, 0.0, 5.0, 2.99), (12.0, 3.0, 0.0, 0.0), (199.9, 20.0, 3.8, 4.99)],
    )
    def test_tax_is_embedded_in_total(self, subtotal, discount, shipping, insurance):
        base = subtotal - discount + shipping + insurance
        tax = pricing.calculate_tax(subtotal, discount, shipping, insurance)

        assert tax == pytest.approx(base * 20 / 120)
        # Tax-exclusive amount times 1.2 gives the total back.
        assert (base - tax) * 1.2 == pytest.approx(base)

    def test_scenario_standard_insurance(self):
        quote = pricing.build_quote(50.0, _method("5.00"), None, "standard")

        assert quote.tax == pytest.approx(57.99 * 20 / 120)
        assert quote.total == pytest.approx(57.99)
        assert quote.amount_missing == 0.0


class TestMinimumOrder:

    @pytest.mark.parametrize(
        "subtotal, missing",
        [(0.0, 10.0), (9.99, 0.01), (10.0, 0.0), (25.0, 0.0)],
    )
    def test_shortfall(self, subtotal, missing):
        assert pricing.minimum_order_shortfall(subtotal) == pytest.approx(missing)

    def test_shipping_and_insurance_do_not_reach_minimum(self):
        quote = pricing.build_quote(8.0, _method("5.00"), None, "premium")
        assert quote.total > 10.0
        assert quote.amount_missing == pytest.approx(2.0)
