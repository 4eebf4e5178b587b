import itertools
import os
import uuid
from datetime import timedelta

# Settings are read at import time; point them at throwaway values first.
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("SUPABASE_KEY", "anon-test-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from boutique.clients.payments import PaymentIntent
from boutique.core.auth import get_access_token, get_current_user
from boutique.core.datetime_utils import utc_now
from boutique.core.dependencies import (
    get_options_service,
    get_payment_client,
    get_woocommerce_client,
)
from boutique.core.errors import WooCommerceError
from boutique.database import get_session
from boutique.main import app
from boutique.models.address import Address
from boutique.models.cart import CartItem
from boutique.models.coupon import CouponType, UserCoupon
from boutique.models.delivery_batch import DeliveryBatch
from boutique.models.profile import Profile
from boutique.schemas.woocommerce import (
    WooOrder,
    WooPaymentGateway,
    WooShippingMethod,
    WooShippingZone,
    WooTaxRate,
)
from boutique.services.checkout_options_service import CheckoutOptionsService


class FakeWooCommerce:
    """In-memory stand-in for WooCommerceClient."""

    def __init__(self):
        self.zones = [WooShippingZone(id=1, name="France")]
        self.methods = {
            1: [
                WooShippingMethod(
                    instance_id=1,
                    method_id="flat_rate",
                    enabled=True,
                    title="Colissimo domicile",
                    settings={"cost": {"value": "5.00"}},
                ),
                WooShippingMethod(
                    instance_id=2,
                    method_id="flat_rate",
                    enabled=True,
                    title="Point Relais",
                    method_description="Livraison en point relais",
                    settings={"cost": {"value": "0"}},
                ),
                WooShippingMethod(
                    instance_id=3,
                    method_id="free_shipping",
                    enabled=True,
                    title="Livraison offerte",
                ),
                WooShippingMethod(
                    instance_id=4,
                    method_id="flat_rate",
                    enabled=False,
                    title="Coursier",
                    settings={"cost": {"value": "12.00"}},
                ),
            ]
        }
        self.gateways = [
            WooPaymentGateway(id="bacs", title="Virement bancaire", enabled=True),
            WooPaymentGateway(id="stripe", title="Carte bancaire", enabled=True),
            WooPaymentGateway(id="paypal", title="PayPal", enabled=False),
        ]
        self.tax_rates = [WooTaxRate(id=1, country="FR", rate="20.0000", name="TVA")]

        self.created: list[dict] = []
        self.updated: list[tuple[str, dict]] = []
        self.cancelled: list[int | str] = []
        self.fail_create: Exception | None = None
        self.zone_calls = 0
        self._ids = itertools.count(1001)

    def list_shipping_zones(self):
        self.zone_calls += 1
        return self.zones

    def list_zone_methods(self, zone_id):
        return self.methods.get(zone_id, [])

    def list_payment_gateways(self):
        return self.gateways

    def list_tax_rates(self):
        return self.tax_rates

    def create_order(self, payload):
        if self.fail_create is not None:
            raise self.fail_create
        self.created.append(payload.to_request())
        return WooOrder(id=next(self._ids), status=payload.status or "pending")

    def update_order(self, order_id, data):
        self.updated.append((str(order_id), data))
        return WooOrder(id=int(order_id), status=data.get("status", "pending"))

    def cancel_order(self, order_id):
        self.cancelled.append(order_id)
        return WooOrder(id=int(order_id), status="cancelled")

    def close(self):
        pass


class FakePayments:
    """Records intents instead of calling the edge function / Stripe."""

    def __init__(self):
        self.intents: list[dict] = []
        self.cancelled: list[str] = []

    def create_intent(self, access_token, amount, description, metadata=None):
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents.append(
            {"id": intent_id, "amount": amount, "description": description, "token": access_token}
        )
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret")

    def cancel_intent(self, intent_id):
        self.cancelled.append(intent_id)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def profile(session):
    user = Profile(id=uuid.uuid4(), email="client@example.com", first_name="Marie")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def address(session, profile):
    addr = Address(
        user_id=profile.id,
        first_name="Marie",
        last_name="Durand",
        address_line1="12 rue des Lilas",
        city="Lyon",
        postal_code="69003",
        country="FR",
        phone="0600000000",
        is_default=True,
    )
    session.add(addr)
    session.commit()
    session.refresh(addr)
    return addr


@pytest.fixture
def woo():
    return FakeWooCommerce()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def options_service():
    return CheckoutOptionsService(ttl_seconds=3600, relay_fallback_cost="3.80")


@pytest.fixture
def client(session, profile, woo, payments, options_service):
    """
    TestClient authenticated as `profile`, with fake WooCommerce and payments.
    """

    def _get_session():
        yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_current_user] = lambda: profile
    app.dependency_overrides[get_access_token] = lambda: "user-access-token"
    app.dependency_overrides[get_woocommerce_client] = lambda: woo
    app.dependency_overrides[get_payment_client] = lambda: payments
    app.dependency_overrides[get_options_service] = lambda: options_service

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def add_cart_item(session, profile):
    def _add(product_id="101", price=25.0, quantity=2, name="Bougie parfumée", **extra):
        item = CartItem(
            user_id=profile.id,
            product_id=product_id,
            name=name,
            slug=name.lower().replace(" ", "-"),
            price=price,
            quantity=quantity,
            **extra,
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return _add


@pytest.fixture
def make_coupon(session, profile):
    def _make(type="discount_amount", value=5.0, **extra):
        coupon_type = CouponType(type=type, value=value, description=f"{type} {value}")
        session.add(coupon_type)
        session.commit()
        coupon = UserCoupon(
            user_id=profile.id,
            coupon_type_id=coupon_type.id,
            code=f"TEST-{uuid.uuid4().hex[:8].upper()}",
            **extra,
        )
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def active_batch(session, profile, address):
    batch = DeliveryBatch(
        user_id=profile.id,
        shipping_cost=5.0,
        shipping_address_id=address.id,
        woocommerce_order_id="900",
        status="pending",
        validate_at=utc_now() + timedelta(days=3),
    )
    session.add(batch)
    session.commit()
    session.refresh(batch)
    return batch


@pytest.fixture
def woo_failure():
    return WooCommerceError(
        "Invalid product", status_code=400, details={"code": "woocommerce_rest_invalid_product"}
    )
