# boutique/routers/delivery_batches.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from boutique.clients.woocommerce import WooCommerceClient
from boutique.core.auth import require_auth, require_customer
from boutique.core.dependencies import get_woocommerce_client
from boutique.database import get_session
from boutique.models.profile import Profile
from boutique.repositories.address_repo import AddressRepository
from boutique.repositories.delivery_batch_repo import DeliveryBatchRepository
from boutique.schemas.delivery_batch import DeliveryBatchRead
from boutique.services.delivery_batch_service import DeliveryBatchService

router = APIRouter(prefix="/delivery-batches", tags=["Delivery batches"])

service = DeliveryBatchService(DeliveryBatchRepository(), AddressRepository())


@router.get("", response_model=list[DeliveryBatchRead])
def list_my_batches(
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    List the user's delivery batches with items, newest first.
    """
    return service.list_batches(session, current_user.id)


@router.get("/active", response_model=DeliveryBatchRead | None)
def get_active_batch(
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    The batch still open for new items, or null.
    """
    return service.get_active(session, current_user.id)


@router.post("/{batch_id}/validate", response_model=DeliveryBatchRead)
def validate_batch(
    batch_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_customer),
    woo: WooCommerceClient = Depends(get_woocommerce_client),
):
    """
    Close the batch and release its WooCommerce order for shipping.
    """
    return service.validate(session, current_user, batch_id, woo)
