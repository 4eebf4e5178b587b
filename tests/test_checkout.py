"""Checkout orchestration: gates, direct orders, delivery batches, compensation."""

import pytest
from sqlmodel import select

from boutique.core.config import get_settings
from boutique.core.datetime_utils import as_utc, utc_now
from boutique.core.dependencies import get_woocommerce_client
from boutique.main import app
from boutique.models.cart import CartItem
from boutique.models.delivery_batch import DeliveryBatch, DeliveryBatchItem
from boutique.models.order import Order, OrderItem
from boutique.services.checkout_service import CompensationStack

CHECKOUT = "/api/v1/checkout"
HOME_METHOD = "1_1"
RELAY_METHOD = "1_2"

RELAY_POINT = {
    "Id": "012345",
    "Name": "Tabac de la Gare",
    "Address1": "3 place de la Gare",
    "PostCode": "69003",
    "City": "Lyon",
    "Country": "FR",
}


def _payload(address, **overrides):
    payload = {
        "address_id": str(address.id),
        "shipping_method_id": HOME_METHOD,
        "payment_method": "bacs",
        "insurance": "none",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Quote
# ---------------------------------------------------------------------------


def test_quote_matches_price_calculator(client, add_cart_item):
    add_cart_item(price=25.0, quantity=2)

    response = client.post(
        f"{CHECKOUT}/quote",
        json={"shipping_method_id": HOME_METHOD, "insurance": "standard"},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["subtotal"] == 50.0
    assert data["shipping_cost"] == 5.0
    assert data["insurance_cost"] == 2.99
    assert data["tax"] == pytest.approx(57.99 * 20 / 120)
    assert data["total"] == pytest.approx(57.99)


def test_checkout_options_expose_relay_kind(client):
    response = client.get(f"{CHECKOUT}/options")

    assert response.status_code == 200
    methods = {m["id"]: m for m in response.json()["shipping_methods"]}
    assert set(methods) == {HOME_METHOD, RELAY_METHOD}
    assert methods[RELAY_METHOD]["kind"] == "relay"
    assert methods[RELAY_METHOD]["cost"] == "3.80"
    gateways = [g["id"] for g in response.json()["payment_gateways"]]
    assert gateways == ["bacs", "stripe"]


def test_missing_woocommerce_configuration_returns_error_body(client):
    unconfigured = get_settings().model_copy(update={"WORDPRESS_URL": None})
    app.dependency_overrides.pop(get_woocommerce_client)
    app.dependency_overrides[get_settings] = lambda: unconfigured

    response = client.get(f"{CHECKOUT}/options")

    assert response.status_code == 500
    assert response.json() == {"error": "WooCommerce configuration missing"}


# ---------------------------------------------------------------------------
# Validation gates
# ---------------------------------------------------------------------------


def test_empty_cart_is_rejected(client, address, woo):
    response = client.post(CHECKOUT, json=_payload(address))

    assert response.status_code == 400
    assert woo.created == []


def test_minimum_amount_gate_comes_first(client, add_cart_item, woo):
    add_cart_item(price=4.5, quantity=2)

    # Nothing else selected: the minimum is still what gets reported.
    response = client.post(CHECKOUT, json={"insurance": "premium"})

    assert response.status_code == 400
    assert "10.00" in response.json()["detail"]
    assert "1.00" in response.json()["detail"]
    assert woo.created == []


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"address_id": None}, "adresse"),
        ({"shipping_method_id": None}, "mode de livraison"),
        ({"shipping_method_id": RELAY_METHOD}, "point relais"),
        ({"payment_method": None}, "mode de paiement"),
    ],
)
def test_selection_gates(client, add_cart_item, address, woo, overrides, expected):
    add_cart_item()

    response = client.post(CHECKOUT, json=_payload(address, **overrides))

    assert response.status_code == 400
    assert expected in response.json()["detail"]
    assert woo.created == []


def test_gates_report_address_before_payment(client, add_cart_item, address):
    add_cart_item()

    response = client.post(CHECKOUT, json={"shipping_method_id": HOME_METHOD})

    assert response.status_code == 400
    assert "adresse" in response.json()["detail"]


def test_blocked_customer_cannot_checkout(client, session, profile, add_cart_item, address):
    profile.blocked = True
    profile.blocked_reason = "Impayé en cours"
    session.add(profile)
    session.commit()
    add_cart_item()

    response = client.post(CHECKOUT, json=_payload(address))

    assert response.status_code == 403
    assert response.json()["detail"] == "Impayé en cours"


# ---------------------------------------------------------------------------
# Direct order
# ---------------------------------------------------------------------------


def test_direct_order_with_coupon(client, session, profile, add_cart_item, address, make_coupon, woo):
    add_cart_item(price=25.0, quantity=2)
    coupon = make_coupon(type="discount_amount", value=5.0)

    response = client.post(
        CHECKOUT,
        json=_payload(address, insurance="standard", coupon_id=str(coupon.id)),
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["kind"] == "order"
    assert data["redirect_to"] == f"/order-confirmation/{data['order_number']}"
    assert data["order_number"].startswith("CMD-")
    assert data["amount_charged"] == pytest.approx(52.99)

    order = session.exec(select(Order)).one()
    assert order.user_id == profile.id
    assert order.status == "processing"
    assert order.total_amount == pytest.approx(52.99)
    assert order.discount_amount == 5.0
    assert order.insurance_cost == 2.99
    assert order.woocommerce_order_id == data["woocommerce_order_id"]
    assert order.shipping_address["city"] == "Lyon"

    items = session.exec(select(OrderItem)).all()
    assert [(it.product_id, it.quantity, it.price) for it in items] == [("101", 2, 25.0)]

    session.refresh(coupon)
    assert coupon.is_used is True
    assert coupon.used_at is not None
    assert coupon.order_id == order.id

    assert session.exec(select(CartItem)).all() == []

    sent = woo.created[0]
    assert sent["payment_method"] == "bacs"
    assert sent["payment_method_title"] == "Virement bancaire"
    assert sent["set_paid"] is False
    assert sent["line_items"] == [{"product_id": 101, "quantity": 2}]
    assert sent["shipping_lines"][0]["total"] == "5.00"


def test_used_coupon_is_not_selectable(client, add_cart_item, address, make_coupon, woo):
    add_cart_item()
    coupon = make_coupon(is_used=True)

    response = client.post(CHECKOUT, json=_payload(address, coupon_id=str(coupon.id)))

    assert response.status_code == 400
    assert woo.created == []


def test_direct_order_ignores_card_gateway(client, add_cart_item, address, woo, payments):
    add_cart_item()

    response = client.post(CHECKOUT, json=_payload(address, payment_method="stripe"))

    assert response.status_code == 200, response.text
    assert woo.created[0]["payment_method"] == "bacs"
    assert payments.intents == []


def test_relay_point_is_used_as_shipping_address(client, add_cart_item, address, woo):
    add_cart_item()

    response = client.post(
        CHECKOUT,
        json=_payload(address, shipping_method_id=RELAY_METHOD, relay_point=RELAY_POINT),
    )

    assert response.status_code == 200, response.text
    sent = woo.created[0]
    assert sent["shipping"]["address_1"] == "Tabac de la Gare"
    assert sent["shipping"]["postcode"] == "69003"
    meta = {m["key"]: m["value"] for m in sent["meta_data"]}
    assert meta["_mondial_relay_id"] == "012345"
    assert sent["shipping_lines"][0]["total"] == "3.80"


def test_direct_order_rolls_back_when_woocommerce_fails(
    client, session, add_cart_item, address, make_coupon, woo, woo_failure
):
    add_cart_item()
    coupon = make_coupon()
    woo.fail_create = woo_failure

    response = client.post(CHECKOUT, json=_payload(address, coupon_id=str(coupon.id)))

    assert response.status_code == 502
    assert response.json() == {
        "error": "Invalid product",
        "details": {"code": "woocommerce_rest_invalid_product"},
    }
    assert session.exec(select(Order)).all() == []
    assert session.exec(select(OrderItem)).all() == []
    session.refresh(coupon)
    assert coupon.is_used is False
    assert len(session.exec(select(CartItem)).all()) == 1


# ---------------------------------------------------------------------------
# Delivery batches
# ---------------------------------------------------------------------------


def test_batch_create_charges_cart_and_shipping(client, session, add_cart_item, address, woo, payments):
    add_cart_item(price=25.0, quantity=2)

    response = client.post(
        CHECKOUT,
        json=_payload(address, payment_method="stripe", use_delivery_batch=True),
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["kind"] == "delivery_batch"
    assert data["redirect_to"] == "/account/pending-deliveries"
    assert data["payment_intent_id"] == "pi_test_1"
    assert data["amount_charged"] == 55.0

    assert payments.intents[0]["amount"] == 55.0
    assert payments.intents[0]["token"] == "user-access-token"

    batch = session.exec(select(DeliveryBatch)).one()
    assert batch.status == "pending"
    assert batch.shipping_cost == 5.0
    assert batch.woocommerce_order_id == data["woocommerce_order_id"]
    remaining = as_utc(batch.validate_at) - utc_now()
    assert 4.9 < remaining.total_seconds() / 86400 <= 5.0

    sent = woo.created[0]
    assert sent["status"] == "processing"
    assert sent["set_paid"] is True
    assert sent["shipping_lines"] == [
        {"method_id": "flat_rate", "method_title": "Mon colis ouvert (5 jours)", "total": "5.00"}
    ]
    meta = {m["key"]: m["value"] for m in sent["meta_data"]}
    assert meta["_supabase_batch_id"] == str(batch.id)
    assert meta["_stripe_payment_intent_id"] == "pi_test_1"

    items = session.exec(select(DeliveryBatchItem)).all()
    assert [(it.quantity, it.total_price) for it in items] == [(2, 50.0)]
    assert session.exec(select(CartItem)).all() == []


def test_batch_append_charges_cart_only(
    client, session, add_cart_item, address, active_batch, woo, payments
):
    add_cart_item(price=12.5, quantity=2)

    response = client.post(
        CHECKOUT,
        json=_payload(address, payment_method="stripe", use_delivery_batch=True),
    )

    assert response.status_code == 200, response.text
    assert response.json()["batch_id"] == str(active_batch.id)
    assert payments.intents[0]["amount"] == 25.0

    sent = woo.created[0]
    assert sent["shipping_lines"] == [
        {"method_id": "flat_rate", "method_title": "Mon colis ouvert (déjà payée)", "total": "0"}
    ]
    meta = {m["key"]: m["value"] for m in sent["meta_data"]}
    assert meta["_supabase_batch_id"] == str(active_batch.id)

    assert len(session.exec(select(DeliveryBatch)).all()) == 1
    items = session.exec(select(DeliveryBatchItem)).all()
    assert [it.batch_id for it in items] == [active_batch.id]


def test_batch_without_card_creates_no_intent(client, add_cart_item, address, woo, payments):
    add_cart_item()

    response = client.post(CHECKOUT, json=_payload(address, use_delivery_batch=True))

    assert response.status_code == 200, response.text
    assert payments.intents == []
    assert woo.created[0]["status"] == "pending"
    assert woo.created[0]["set_paid"] is False


def test_batch_failure_cancels_payment_intent(
    client, session, add_cart_item, address, woo, payments, woo_failure
):
    add_cart_item()
    woo.fail_create = woo_failure

    response = client.post(
        CHECKOUT,
        json=_payload(address, payment_method="stripe", use_delivery_batch=True),
    )

    assert response.status_code == 502
    assert payments.cancelled == ["pi_test_1"]
    assert session.exec(select(DeliveryBatch)).all() == []
    assert len(session.exec(select(CartItem)).all()) == 1


# ---------------------------------------------------------------------------
# Compensation stack
# ---------------------------------------------------------------------------


class TestCompensationStack:

    def test_runs_in_reverse_order(self):
        calls = []
        stack = CompensationStack()
        stack.push("first", lambda: calls.append("first"))
        stack.push("second", lambda: calls.append("second"))

        assert stack.unwind() == (2, 0)
        assert calls == ["second", "first"]

    def test_failing_step_does_not_stop_the_rest(self):
        calls = []

        def boom():
            raise RuntimeError("woocommerce down")

        stack = CompensationStack()
        stack.push("intent", lambda: calls.append("intent"))
        stack.push("order", boom)

        assert stack.unwind() == (1, 1)
        assert calls == ["intent"]
