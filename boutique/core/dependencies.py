# boutique/core/dependencies.py
"""
Providers for outbound collaborators.

Routers depend on these instead of building clients themselves, so a
test (or another deployment) swaps them through app.dependency_overrides.
"""

from collections.abc import Iterator
from functools import lru_cache

from fastapi import Depends

from boutique.clients.mondial_relay import MondialRelayClient
from boutique.clients.payments import PaymentClient
from boutique.clients.woocommerce import WooCommerceClient
from boutique.core.config import Settings, get_settings
from boutique.core.errors import ConfigurationError
from boutique.services.checkout_options_service import CheckoutOptionsService


def get_woocommerce_client(
    settings: Settings = Depends(get_settings),
) -> Iterator[WooCommerceClient]:
    """
    One WooCommerce client per request, closed afterwards.

    Raises:
        ConfigurationError: WooCommerce credentials are not configured (500).
    """
    if not settings.woocommerce_configured:
        raise ConfigurationError("WooCommerce configuration missing")
    client = WooCommerceClient.from_settings(settings)
    try:
        yield client
    finally:
        client.close()


def get_payment_client(settings: Settings = Depends(get_settings)) -> PaymentClient:
    return PaymentClient(settings)


def get_relay_client(settings: Settings = Depends(get_settings)) -> MondialRelayClient:
    return MondialRelayClient(settings)


@lru_cache
def get_options_service() -> CheckoutOptionsService:
    """
    Process-wide options cache (shipping methods, gateways, tax rates).
    """
    settings = get_settings()
    return CheckoutOptionsService(
        ttl_seconds=settings.CHECKOUT_OPTIONS_TTL_SECONDS,
        relay_fallback_cost=settings.RELAY_FALLBACK_COST,
    )
