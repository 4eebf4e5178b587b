"""
WooCommerce REST client (wc/v3).

Provides methods for:
- Listing shipping zones and their methods
- Listing payment gateways and tax rates
- Creating, updating and cancelling orders

Every response is validated against the schemas in
`boutique.schemas.woocommerce` before it leaves this module.
"""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from boutique.core.config import Settings
from boutique.core.errors import UpstreamDecodeError, WooCommerceError
from boutique.schemas.woocommerce import (
    WooOrder,
    WooOrderPayload,
    WooPaymentGateway,
    WooShippingMethod,
    WooShippingZone,
    WooTaxRate,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _decode(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise UpstreamDecodeError(
            f"Unexpected WooCommerce payload for {model.__name__}",
            details=str(exc),
        ) from exc


def _decode_list(model: type[M], data: Any) -> list[M]:
    if not isinstance(data, list):
        raise UpstreamDecodeError(
            f"Expected a list of {model.__name__}", details=data
        )
    return [_decode(model, row) for row in data]


class WooCommerceClient:
    """Sync client for the WooCommerce REST API (basic auth)."""

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/wp-json/wc/v3",
            auth=(consumer_key, consumer_secret),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "WooCommerceClient":
        return cls(
            settings.WORDPRESS_URL,
            settings.WOOCOMMERCE_CONSUMER_KEY,
            settings.WOOCOMMERCE_CONSUMER_SECRET,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json_data: dict | None = None,
    ) -> Any:
        try:
            response = self._client.request(method, path, params=params, json=json_data)
        except httpx.HTTPError as exc:
            raise WooCommerceError(f"WooCommerce unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = response.text

        if not response.is_success:
            logger.error(
                "WooCommerce API error: %s %s -> %s - %s",
                method,
                path,
                response.status_code,
                data,
            )
            message = "WooCommerce error"
            if isinstance(data, dict) and data.get("message"):
                message = data["message"]
            raise WooCommerceError(
                message, status_code=response.status_code, details=data
            )

        return data

    # =========================================================================
    # Checkout options
    # =========================================================================

    def list_shipping_zones(self) -> list[WooShippingZone]:
        return _decode_list(WooShippingZone, self._request("GET", "/shipping/zones"))

    def list_zone_methods(self, zone_id: int) -> list[WooShippingMethod]:
        data = self._request("GET", f"/shipping/zones/{zone_id}/methods")
        return _decode_list(WooShippingMethod, data)

    def list_payment_gateways(self) -> list[WooPaymentGateway]:
        return _decode_list(WooPaymentGateway, self._request("GET", "/payment_gateways"))

    def list_tax_rates(self) -> list[WooTaxRate]:
        return _decode_list(WooTaxRate, self._request("GET", "/taxes"))

    # =========================================================================
    # Orders
    # =========================================================================

    def create_order(self, payload: WooOrderPayload) -> WooOrder:
        order = _decode(WooOrder, self._request("POST", "/orders", json_data=payload.to_request()))
        logger.info("WooCommerce order created: %s", order.id)
        return order

    def update_order(self, order_id: int | str, data: dict[str, Any]) -> WooOrder:
        return _decode(WooOrder, self._request("PUT", f"/orders/{order_id}", json_data=data))

    def cancel_order(self, order_id: int | str) -> WooOrder:
        logger.warning("Cancelling WooCommerce order %s", order_id)
        return self.update_order(order_id, {"status": "cancelled"})
