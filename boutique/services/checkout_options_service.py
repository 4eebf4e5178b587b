# boutique/services/checkout_options_service.py
import logging
import threading
import time
from collections.abc import Callable

from boutique.clients.woocommerce import WooCommerceClient
from boutique.core.errors import UpstreamError
from boutique.schemas.options import (
    CheckoutOptions,
    PaymentGateway,
    ShippingKind,
    ShippingMethod,
    TaxRate,
)
from boutique.schemas.woocommerce import WooShippingMethod, WooShippingZone

logger = logging.getLogger(__name__)

RELAY_METHOD_IDS = {"mondial_relay", "mondialrelay", "wc_mondial_relay"}
RELAY_KEYWORDS = ("mondial relay", "relais", "locker")

# Never offered as a selectable method
HIDDEN_METHOD_IDS = {"free_shipping"}


def shipping_kind(method: WooShippingMethod) -> ShippingKind:
    """
    Classify a WooCommerce method as home delivery or relay pickup.

    Decided here, once; downstream code only reads ShippingMethod.kind.
    """
    if method.method_id.lower() in RELAY_METHOD_IDS:
        return "relay"
    text = " ".join(
        part.lower() for part in (method.title, method.method_description) if part
    )
    if any(keyword in text for keyword in RELAY_KEYWORDS):
        return "relay"
    return "home"


def to_shipping_method(
    zone: WooShippingZone,
    method: WooShippingMethod,
    relay_fallback_cost: str,
) -> ShippingMethod:
    kind = shipping_kind(method)
    cost = method.configured_cost

    # A relay method configured as free in WooCommerce still costs the
    # carrier fee.
    if kind == "relay":
        try:
            is_free = float(cost) == 0
        except ValueError:
            is_free = True
        if is_free:
            cost = relay_fallback_cost

    return ShippingMethod(
        id=f"{zone.id}_{method.instance_id}",
        zone_id=zone.id,
        zone_name=zone.name,
        instance_id=method.instance_id,
        method_id=method.method_id,
        title=method.title or method.method_title or method.method_id,
        cost=cost,
        description=method.method_description or "",
        kind=kind,
    )


class CheckoutOptionsService:
    """
    Shipping methods, payment gateways and tax rates offered at checkout.

    WooCommerce is slow to enumerate zones, so the assembled result is
    kept in process for `ttl_seconds` (shared by all users).
    Each list degrades to [] on its own when WooCommerce fails for it.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        relay_fallback_cost: str = "3.80",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.relay_fallback_cost = relay_fallback_cost
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: CheckoutOptions | None = None
        self._cached_at = 0.0

    def get_options(self, woo: WooCommerceClient, refresh: bool = False) -> CheckoutOptions:
        """
        Cached options, reloaded once the TTL has passed or on `refresh`.

        A degraded result (some list fell back to []) is returned to the
        caller but not cached, so the next request asks WooCommerce again.
        """
        with self._lock:
            fresh = (
                self._cached is not None
                and self._clock() - self._cached_at < self.ttl_seconds
            )
            if fresh and not refresh:
                return self._cached

        failures: list[str] = []
        options = CheckoutOptions(
            shipping_methods=self._load_shipping_methods(woo, failures),
            payment_gateways=self._load_payment_gateways(woo, failures),
            tax_rates=self._load_tax_rates(woo, failures),
        )

        if failures:
            logger.warning("Checkout options degraded (%s); not cached", ", ".join(failures))
            return options

        with self._lock:
            self._cached = options
            self._cached_at = self._clock()
        return options

    def find_shipping_method(
        self, woo: WooCommerceClient, method_id: str
    ) -> ShippingMethod | None:
        for method in self.get_options(woo).shipping_methods:
            if method.id == method_id:
                return method
        return None

    def find_payment_gateway(
        self, woo: WooCommerceClient, gateway_id: str
    ) -> PaymentGateway | None:
        for gateway in self.get_options(woo).payment_gateways:
            if gateway.id == gateway_id:
                return gateway
        return None

    # ---- loaders ----

    def _load_shipping_methods(
        self, woo: WooCommerceClient, failures: list[str]
    ) -> list[ShippingMethod]:
        try:
            zones = woo.list_shipping_zones()
        except UpstreamError as exc:
            logger.error("Could not load shipping zones: %s", exc.message)
            failures.append("shipping zones")
            return []

        methods: list[ShippingMethod] = []
        for zone in zones:
            try:
                zone_methods = woo.list_zone_methods(zone.id)
            except UpstreamError as exc:
                logger.error("Could not load methods of zone %s: %s", zone.id, exc.message)
                failures.append(f"zone {zone.id}")
                continue

            for method in zone_methods:
                if not method.enabled or method.method_id in HIDDEN_METHOD_IDS:
                    continue
                methods.append(to_shipping_method(zone, method, self.relay_fallback_cost))

        return methods

    def _load_payment_gateways(
        self, woo: WooCommerceClient, failures: list[str]
    ) -> list[PaymentGateway]:
        try:
            gateways = woo.list_payment_gateways()
        except UpstreamError as exc:
            logger.error("Could not load payment gateways: %s", exc.message)
            failures.append("payment gateways")
            return []
        return [
            PaymentGateway(id=g.id, title=g.title, description=g.description, order=g.order)
            for g in gateways
            if g.enabled
        ]

    def _load_tax_rates(self, woo: WooCommerceClient, failures: list[str]) -> list[TaxRate]:
        try:
            rates = woo.list_tax_rates()
        except UpstreamError as exc:
            logger.error("Could not load tax rates: %s", exc.message)
            failures.append("tax rates")
            return []
        return [TaxRate.model_validate(r.model_dump()) for r in rates]
