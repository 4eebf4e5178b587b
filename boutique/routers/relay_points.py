# boutique/routers/relay_points.py
from fastapi import APIRouter, Depends, Query

from boutique.clients.mondial_relay import MondialRelayClient
from boutique.core.dependencies import get_relay_client
from boutique.schemas.relay import RelayPoint

router = APIRouter(prefix="/relay-points", tags=["Relay points"])


@router.get("", response_model=list[RelayPoint])
def search_relay_points(
    postcode: str = Query(min_length=4, max_length=10),
    country: str = Query(default="FR", min_length=2, max_length=2),
    delivery_mode: str = "24R",
    num_results: int = Query(default=10, ge=1, le=30),
    radius: int | None = Query(default=None, ge=1),
    client: MondialRelayClient = Depends(get_relay_client),
):
    """
    Mondial Relay pickup points around a postcode, closest first.
    """
    return client.search_pickup_points(
        postcode,
        country=country.upper(),
        delivery_mode=delivery_mode,
        num_results=num_results,
        radius=radius,
    )
