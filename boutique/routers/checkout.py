# boutique/routers/checkout.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from boutique.clients.payments import PaymentClient
from boutique.clients.woocommerce import WooCommerceClient
from boutique.core.auth import get_access_token, require_auth, require_customer
from boutique.core.config import get_settings
from boutique.core.dependencies import (
    get_options_service,
    get_payment_client,
    get_woocommerce_client,
)
from boutique.database import get_session
from boutique.models.profile import Profile
from boutique.repositories.address_repo import AddressRepository
from boutique.repositories.cart_repo import CartRepository
from boutique.repositories.coupon_repo import CouponRepository
from boutique.repositories.delivery_batch_repo import DeliveryBatchRepository
from boutique.repositories.order_repo import OrderRepository
from boutique.repositories.profile_repo import ProfileRepository
from boutique.schemas.checkout import (
    CheckoutRequest,
    CheckoutResult,
    CheckoutSelection,
    PriceBreakdown,
)
from boutique.schemas.options import CheckoutOptions
from boutique.services.checkout_options_service import CheckoutOptionsService
from boutique.services.checkout_service import CheckoutService
from boutique.services.coupon_service import CouponService

router = APIRouter(prefix="/checkout", tags=["Checkout"])

cart_repo = CartRepository()
address_repo = AddressRepository()
order_repo = OrderRepository()
batch_repo = DeliveryBatchRepository()
profile_repo = ProfileRepository()
coupon_service = CouponService(CouponRepository())


def get_checkout_service(
    options_service: CheckoutOptionsService = Depends(get_options_service),
) -> CheckoutService:
    return CheckoutService(
        get_settings(),
        options_service,
        coupon_service,
        cart_repo,
        address_repo,
        order_repo,
        batch_repo,
        profile_repo,
    )


@router.get("/options", response_model=CheckoutOptions)
def get_checkout_options(
    refresh: bool = False,
    woo: WooCommerceClient = Depends(get_woocommerce_client),
    options_service: CheckoutOptionsService = Depends(get_options_service),
):
    """
    Shipping methods, payment gateways and tax rates from WooCommerce.

    Cached for an hour; ?refresh=true forces a reload.
    """
    return options_service.get_options(woo, refresh=refresh)


@router.post("/quote", response_model=PriceBreakdown)
def quote(
    payload: CheckoutSelection,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
    woo: WooCommerceClient = Depends(get_woocommerce_client),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Price breakdown for the current cart and selections (VAT included).
    """
    return service.quote(session, current_user, payload, woo)


@router.post("", response_model=CheckoutResult)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_customer),
    access_token: str = Depends(get_access_token),
    woo: WooCommerceClient = Depends(get_woocommerce_client),
    payments: PaymentClient = Depends(get_payment_client),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Submit the checkout.

    - use_delivery_batch=false: direct order, redirect to its confirmation
    - use_delivery_batch=true: create or extend the delivery batch,
      redirect to pending deliveries

    Auth:
      - signed-in, non-blocked customers only
    """
    return service.checkout(session, current_user, payload, woo, payments, access_token)
