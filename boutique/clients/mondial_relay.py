"""
Mondial Relay pickup-point search, through the `mondial-relay-api`
Supabase edge function (it signs the SOAP call with the brand key).
"""

import logging

import httpx
from pydantic import ValidationError

from boutique.core.config import Settings
from boutique.core.errors import MondialRelayError, UpstreamDecodeError
from boutique.schemas.relay import RelayPoint

logger = logging.getLogger(__name__)


class MondialRelayClient:

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        self._base_url = (
            f"{settings.SUPABASE_URL.rstrip('/')}/functions/v1/{settings.MONDIAL_RELAY_FUNCTION}"
        )
        self._headers = {
            "apikey": settings.SUPABASE_KEY,
            "Authorization": f"Bearer {settings.SUPABASE_KEY}",
        }
        self._timeout = settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    def search_pickup_points(
        self,
        postcode: str,
        country: str = "FR",
        delivery_mode: str = "24R",
        num_results: int = 10,
        radius: int | None = None,
    ) -> list[RelayPoint]:
        """
        Search pickup points around a postcode.

        Returns:
            List of RelayPoint, closest first (upstream order).

        Raises:
            MondialRelayError: non-2xx answer or network failure.
            UpstreamDecodeError: malformed point in the answer.
        """
        params = {
            "postcode": postcode,
            "country": country,
            "deliveryMode": delivery_mode,
            "numResults": str(num_results),
        }
        if radius is not None:
            params["radius"] = str(radius)

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(
                    f"{self._base_url}/pickup-points",
                    params=params,
                    headers=self._headers,
                )
        except httpx.HTTPError as exc:
            raise MondialRelayError(f"Mondial Relay unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {"error": response.text}
        if not isinstance(data, dict):
            data = {"details": data}

        if not response.is_success:
            logger.error("Mondial Relay API error: %s - %s", response.status_code, data)
            raise MondialRelayError(
                data.get("error", "Failed to fetch pickup points"),
                status_code=response.status_code,
                details=data.get("details"),
            )

        try:
            return [RelayPoint.model_validate(p) for p in data.get("PickupPoints", [])]
        except ValidationError as exc:
            raise UpstreamDecodeError("Unexpected pickup point payload", details=str(exc)) from exc
