# boutique/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from boutique.core.auth import require_auth
from boutique.database import get_session
from boutique.models.profile import Profile
from boutique.repositories.cart_repo import CartRepository
from boutique.schemas.cart import (
    CartLine,
    CartMerge,
    CartMergeResult,
    CartQuantityUpdate,
    CartSummary,
    CartSync,
)
from boutique.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
service = CartService(cart_repo)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Get current user's cart summary.
    """
    return service.get_cart_summary(session, current_user.id)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartLine,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Add a product (or product variation) to the cart.

    Returns the updated cart summary.
    """
    return service.add_to_cart(session, current_user.id, payload)


@router.put("", response_model=CartSummary)
def sync_cart(
    payload: CartSync,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Replace the whole cart with the storefront's copy.
    """
    return service.sync_cart(session, current_user.id, payload.items)


@router.post("/merge", response_model=CartMergeResult)
def merge_cart(
    payload: CartMerge,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Merge the anonymous local cart right after sign-in.

    The client must clear its local cart afterwards (clear_local_storage).
    """
    return service.merge_local_cart(session, current_user.id, payload.local_items)


@router.patch("/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: str,
    payload: CartQuantityUpdate,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Update quantity of a product in the cart. quantity <= 0 removes it.
    """
    return service.update_quantity(
        session=session,
        user_id=current_user.id,
        product_id=product_id,
        payload=payload,
    )


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: str,
    variation_id: str | None = None,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Remove a product from the cart.
    """
    return service.remove_item(session, current_user.id, product_id, variation_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Clear the entire cart.
    """
    return service.clear_cart(session, current_user.id)
