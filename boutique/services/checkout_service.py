# boutique/services/checkout_service.py
import logging
import smtplib
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from fastapi import HTTPException, status
from sqlmodel import Session

from boutique.clients.payments import PaymentClient, PaymentIntent
from boutique.clients.woocommerce import WooCommerceClient
from boutique.core.config import Settings
from boutique.core.datetime_utils import utc_now
from boutique.core.email_client import render_order_confirmation, send_email
from boutique.models.address import Address
from boutique.models.cart import CartItem
from boutique.models.coupon import CouponType, UserCoupon
from boutique.models.delivery_batch import DeliveryBatch, DeliveryBatchItem
from boutique.models.order import Order, OrderItem
from boutique.models.profile import Profile
from boutique.repositories.address_repo import AddressRepository
from boutique.repositories.cart_repo import CartRepository
from boutique.repositories.delivery_batch_repo import DeliveryBatchRepository
from boutique.repositories.order_repo import OrderRepository
from boutique.repositories.profile_repo import ProfileRepository
from boutique.schemas.checkout import (
    CheckoutRequest,
    CheckoutResult,
    CheckoutSelection,
    PriceBreakdown,
)
from boutique.schemas.options import PaymentGateway, ShippingMethod
from boutique.schemas.relay import RelayPoint
from boutique.schemas.woocommerce import (
    WooAddress,
    WooLineItem,
    WooMeta,
    WooOrderPayload,
    WooShippingLine,
)
from boutique.services import pricing
from boutique.services.checkout_options_service import CheckoutOptionsService
from boutique.services.coupon_service import CouponService

logger = logging.getLogger(__name__)

CARD_GATEWAY = "stripe"

BATCH_CREATE_TITLE = "Mon colis ouvert (5 jours)"
BATCH_APPEND_TITLE = "Mon colis ouvert (déjà payée)"
BATCH_REDIRECT = "/account/pending-deliveries"

# Direct orders are always submitted to WooCommerce as bank transfers.
DIRECT_PAYMENT_METHOD = "bacs"
DIRECT_PAYMENT_TITLE = "Virement bancaire"


def generate_order_number() -> str:
    """Server-issued public order number, e.g. CMD-9F2C41D07A3B."""
    return f"CMD-{uuid.uuid4().hex[:12].upper()}"


class CompensationStack:
    """
    Undo actions for external writes, run in reverse order on failure.

    A failing compensator is logged and the next one still runs; the
    error that triggered the rollback is what the caller sees.
    """

    def __init__(self):
        self._steps: list[tuple[str, Callable[[], object]]] = []

    def push(self, name: str, action: Callable[[], object]) -> None:
        self._steps.append((name, action))

    def unwind(self) -> tuple[int, int]:
        """Returns (run, failed)."""
        run = failed = 0
        for name, action in reversed(self._steps):
            try:
                action()
                run += 1
            except Exception:
                failed += 1
                logger.exception("Compensation step failed: %s", name)
        self._steps.clear()
        return run, failed


@dataclass
class CheckoutContext:
    """Everything resolved and validated before the first write."""

    cart: list[CartItem]
    subtotal: float
    address: Address
    method: ShippingMethod
    gateway: PaymentGateway
    relay_point: RelayPoint | None
    coupon: UserCoupon | None
    coupon_type: CouponType | None
    breakdown: PriceBreakdown


class CheckoutService:
    """
    Server-side checkout.

    Responsibilities:
      - price quotes for the current cart and selections
      - validation gates, in a fixed order, before any side effect
      - direct orders (orders + order_items + WooCommerce bank transfer)
      - delivery batches (create or append, optional card payment intent)
      - compensation of external writes when a later step fails
    """

    def __init__(
        self,
        settings: Settings,
        options_service: CheckoutOptionsService,
        coupon_service: CouponService,
        cart_repo: CartRepository,
        address_repo: AddressRepository,
        order_repo: OrderRepository,
        batch_repo: DeliveryBatchRepository,
        profile_repo: ProfileRepository,
    ):
        self.settings = settings
        self.options_service = options_service
        self.coupon_service = coupon_service
        self.cart_repo = cart_repo
        self.address_repo = address_repo
        self.order_repo = order_repo
        self.batch_repo = batch_repo
        self.profile_repo = profile_repo

    # ---- internal helpers ----

    def _bad_request(self, detail: str) -> HTTPException:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    def _terms(self, coupon_type: CouponType | None) -> pricing.CouponTerms | None:
        if coupon_type is None:
            return None
        return pricing.CouponTerms(coupon_type.type, coupon_type.value)

    def _quote(
        self,
        subtotal: float,
        method: ShippingMethod | None,
        coupon_type: CouponType | None,
        insurance: str,
    ) -> PriceBreakdown:
        return pricing.build_quote(
            subtotal,
            method,
            self._terms(coupon_type),
            insurance,
            vat_rate=self.settings.VAT_RATE,
            minimum=self.settings.MINIMUM_ORDER_AMOUNT,
        )

    def _load_cart(self, session: Session, user_id: uuid.UUID) -> tuple[list[CartItem], float]:
        cart = self.cart_repo.list_for_user(session, user_id)
        subtotal = sum(it.unit_price * it.quantity for it in cart)
        return cart, subtotal

    def _prepare(
        self,
        session: Session,
        user: Profile,
        payload: CheckoutRequest,
        woo: WooCommerceClient,
    ) -> CheckoutContext:
        """
        Run the checkout gates. Order matters: the customer is told about
        the first missing piece only.

          1. minimum order amount (pre-shipping subtotal)
          2. delivery address
          3. shipping method
          4. relay point, for relay methods
          5. payment method
        """
        cart, subtotal = self._load_cart(session, user.id)
        if not cart:
            raise self._bad_request("Votre panier est vide")

        minimum = self.settings.MINIMUM_ORDER_AMOUNT
        missing = pricing.minimum_order_shortfall(subtotal, minimum)
        if missing > 0:
            raise self._bad_request(
                f"Le montant minimum de commande est de {minimum:.2f} € "
                f"(il manque {missing:.2f} €)"
            )

        if payload.address_id is None:
            raise self._bad_request("Veuillez sélectionner une adresse de livraison")
        address = self.address_repo.get_for_user(session, user.id, payload.address_id)
        if address is None:
            raise self._bad_request("Adresse de livraison introuvable")

        if not payload.shipping_method_id:
            raise self._bad_request("Veuillez sélectionner un mode de livraison")
        method = self.options_service.find_shipping_method(woo, payload.shipping_method_id)
        if method is None:
            raise self._bad_request("Mode de livraison indisponible")

        if method.is_relay and payload.relay_point is None:
            raise self._bad_request("Veuillez sélectionner un point relais")

        if not payload.payment_method:
            raise self._bad_request("Veuillez sélectionner un mode de paiement")
        gateway = self.options_service.find_payment_gateway(woo, payload.payment_method)
        if gateway is None:
            raise self._bad_request("Mode de paiement indisponible")

        for it in cart:
            if not it.product_id.isdigit():
                raise self._bad_request(f"Produit invalide dans le panier: {it.name}")

        coupon = coupon_type = None
        if payload.coupon_id is not None:
            coupon, coupon_type = self.coupon_service.get_selectable(
                session, user.id, payload.coupon_id
            )

        return CheckoutContext(
            cart=cart,
            subtotal=subtotal,
            address=address,
            method=method,
            gateway=gateway,
            relay_point=payload.relay_point if method.is_relay else None,
            coupon=coupon,
            coupon_type=coupon_type,
            breakdown=self._quote(subtotal, method, coupon_type, payload.insurance),
        )

    def _woo_order(
        self,
        ctx: CheckoutContext,
        user: Profile,
        payment_method: str,
        payment_method_title: str,
        set_paid: bool,
        shipping_line: WooShippingLine,
        meta: list[WooMeta],
        order_status: str | None = None,
    ) -> WooOrderPayload:
        address = ctx.address
        billing = WooAddress(
            first_name=address.first_name,
            last_name=address.last_name,
            address_1=address.address_line1,
            address_2=address.address_line2 or "",
            city=address.city,
            postcode=address.postal_code,
            country=address.country,
            email=user.email,
            phone=address.phone,
        )

        relay = ctx.relay_point
        if relay is not None:
            shipping = WooAddress(
                first_name=address.first_name,
                last_name=address.last_name,
                address_1=relay.name,
                address_2=relay.address_1,
                city=relay.city,
                postcode=relay.postcode,
                country=relay.country,
            )
            meta = meta + [
                WooMeta(key="_mondial_relay_id", value=relay.id),
                WooMeta(key="_mondial_relay_name", value=relay.name),
                WooMeta(key="_mondial_relay_address", value=relay.display_address),
            ]
        else:
            shipping = billing.model_copy(update={"email": None, "phone": None})

        return WooOrderPayload(
            status=order_status,
            payment_method=payment_method,
            payment_method_title=payment_method_title,
            set_paid=set_paid,
            billing=billing,
            shipping=shipping,
            line_items=[
                WooLineItem(
                    product_id=int(it.product_id),
                    quantity=it.quantity,
                    variation_id=int(it.variation_id)
                    if it.variation_id and it.variation_id.isdigit()
                    else None,
                )
                for it in ctx.cart
            ],
            shipping_lines=[shipping_line],
            meta_data=meta,
        )

    def _submit_woo_order(
        self,
        woo: WooCommerceClient,
        payload: WooOrderPayload,
        compensations: CompensationStack,
    ) -> str:
        order = woo.create_order(payload)
        compensations.push(
            f"cancel WooCommerce order {order.id}",
            lambda: woo.cancel_order(order.id),
        )
        return str(order.id)

    def _create_intent(
        self,
        payments: PaymentClient,
        access_token: str,
        amount: float,
        description: str,
        metadata: dict[str, str],
        compensations: CompensationStack,
    ) -> PaymentIntent:
        intent = payments.create_intent(access_token, amount, description, metadata)
        compensations.push(
            f"cancel payment intent {intent.id}",
            lambda: payments.cancel_intent(intent.id),
        )
        return intent

    def _send_confirmation(self, email: str, order: Order, items: list[OrderItem]) -> None:
        if not self.settings.smtp_configured:
            logger.info("SMTP not configured; no confirmation mail for %s", order.order_number)
            return
        subject, body = render_order_confirmation(order, items)
        try:
            send_email(email, subject, body, settings=self.settings)
        except (smtplib.SMTPException, OSError):
            logger.exception("Confirmation mail failed for order %s", order.order_number)

    # ---- public operations ----

    def quote(
        self,
        session: Session,
        user: Profile,
        selection: CheckoutSelection,
        woo: WooCommerceClient,
    ) -> PriceBreakdown:
        """
        Price breakdown for the current cart and (possibly partial) selections.
        """
        _, subtotal = self._load_cart(session, user.id)

        method = None
        if selection.shipping_method_id:
            method = self.options_service.find_shipping_method(woo, selection.shipping_method_id)
            if method is None:
                raise self._bad_request("Mode de livraison indisponible")

        coupon_type = None
        if selection.coupon_id is not None:
            _, coupon_type = self.coupon_service.get_selectable(
                session, user.id, selection.coupon_id
            )

        return self._quote(subtotal, method, coupon_type, selection.insurance)

    def checkout(
        self,
        session: Session,
        user: Profile,
        payload: CheckoutRequest,
        woo: WooCommerceClient,
        payments: PaymentClient,
        access_token: str,
    ) -> CheckoutResult:
        """
        Turn the cart into a direct order or a delivery batch.

        Local rows are written in one transaction. External writes
        (payment intent, WooCommerce order) register compensations; on any
        failure the transaction is rolled back, the compensations run in
        reverse order and the original error propagates.
        """
        # Serializes concurrent checkouts of this customer (double submit,
        # two tabs racing for "no active batch").
        self.profile_repo.lock(session, user.id)

        ctx = self._prepare(session, user, payload, woo)
        compensations = CompensationStack()
        order, items = None, []

        try:
            if payload.use_delivery_batch:
                result = self._checkout_batch(
                    session, user, ctx, payments, access_token, woo, compensations
                )
            else:
                result, order, items = self._checkout_direct(
                    session, user, ctx, woo, compensations
                )
            self.cart_repo.clear_user_cart(session, user.id)
            session.commit()
        except Exception:
            session.rollback()
            run, failed = compensations.unwind()
            logger.error(
                "Checkout failed for user %s; %d compensations run, %d failed",
                user.id,
                run,
                failed,
            )
            raise

        if order is not None:
            self._send_confirmation(user.email, order, items)
        return result

    # ---- direct order ----

    def _checkout_direct(
        self,
        session: Session,
        user: Profile,
        ctx: CheckoutContext,
        woo: WooCommerceClient,
        compensations: CompensationStack,
    ) -> tuple[CheckoutResult, Order, list[OrderItem]]:
        breakdown = ctx.breakdown

        order = self.order_repo.create_order(
            session,
            Order(
                user_id=user.id,
                order_number=generate_order_number(),
                status="processing",
                total_amount=breakdown.total,
                shipping_address=ctx.address.model_dump(mode="json"),
                shipping_method_id=ctx.method.id,
                shipping_cost=breakdown.shipping_cost,
                tax_amount=breakdown.tax,
                insurance_cost=breakdown.insurance_cost,
                discount_amount=breakdown.discount,
                payment_method=DIRECT_PAYMENT_METHOD,
            ),
        )

        items = self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=it.product_id,
                    product_name=it.name,
                    product_slug=it.slug,
                    product_image=it.variation_image or it.image_url,
                    price=it.unit_price,
                    quantity=it.quantity,
                )
                for it in ctx.cart
            ],
        )

        if ctx.coupon is not None:
            self.coupon_service.mark_used(session, ctx.coupon, order.id)

        if ctx.gateway.id != DIRECT_PAYMENT_METHOD:
            logger.warning(
                "Order %s: gateway %s selected, submitted as bank transfer",
                order.order_number,
                ctx.gateway.id,
            )

        woo_payload = self._woo_order(
            ctx,
            user,
            payment_method=DIRECT_PAYMENT_METHOD,
            payment_method_title=DIRECT_PAYMENT_TITLE,
            set_paid=False,
            shipping_line=WooShippingLine(
                method_id=ctx.method.method_id,
                method_title=ctx.method.title,
                total=f"{breakdown.shipping_cost:.2f}",
            ),
            meta=[WooMeta(key="_supabase_order_number", value=order.order_number)],
        )
        order.woocommerce_order_id = self._submit_woo_order(woo, woo_payload, compensations)
        self.order_repo.update_order(session, order)

        logger.info(
            "Order %s created for user %s (WooCommerce %s)",
            order.order_number,
            user.id,
            order.woocommerce_order_id,
        )

        result = CheckoutResult(
            kind="order",
            redirect_to=f"/order-confirmation/{order.order_number}",
            order_id=order.id,
            order_number=order.order_number,
            woocommerce_order_id=order.woocommerce_order_id,
            amount_charged=breakdown.total,
            breakdown=breakdown,
        )
        return result, order, items

    # ---- delivery batch ----

    def _checkout_batch(
        self,
        session: Session,
        user: Profile,
        ctx: CheckoutContext,
        payments: PaymentClient,
        access_token: str,
        woo: WooCommerceClient,
        compensations: CompensationStack,
    ) -> CheckoutResult:
        """
        Create the customer's batch, or append to the active one.

        Create charges cart + shipping; append charges the cart only and
        ships at 0 since shipping was paid when the batch was opened.
        Coupons and insurance are not applied to batches.
        """
        now = utc_now()
        active = self.batch_repo.get_active(session, user.id, now)
        card = ctx.gateway.id == CARD_GATEWAY
        shipping_cost = pricing.calculate_shipping_cost(ctx.method)

        if active is None:
            amount = ctx.subtotal + shipping_cost
            breakdown = self._quote(ctx.subtotal, ctx.method, None, "none")
            description = "Mon colis ouvert - Première commande"
        else:
            amount = ctx.subtotal
            breakdown = self._quote(ctx.subtotal, None, None, "none")
            description = "Mon colis ouvert - Produits supplémentaires"

        intent = None
        if card:
            intent = self._create_intent(
                payments,
                access_token,
                amount,
                description,
                {"user_id": str(user.id)},
                compensations,
            )

        if active is None:
            batch = self.batch_repo.save(
                session,
                DeliveryBatch(
                    user_id=user.id,
                    shipping_cost=shipping_cost,
                    shipping_address_id=ctx.address.id,
                    status="pending",
                    validate_at=now + timedelta(days=self.settings.DELIVERY_BATCH_DAYS),
                ),
            )
            shipping_line = WooShippingLine(
                method_id=ctx.method.method_id,
                method_title=BATCH_CREATE_TITLE,
                total=f"{shipping_cost:.2f}",
            )
        else:
            batch = active
            shipping_line = WooShippingLine(
                method_id="flat_rate",
                method_title=BATCH_APPEND_TITLE,
                total="0",
            )

        meta = [WooMeta(key="_supabase_batch_id", value=str(batch.id))]
        if intent is not None:
            meta.append(WooMeta(key="_stripe_payment_intent_id", value=intent.id))

        woo_payload = self._woo_order(
            ctx,
            user,
            payment_method=ctx.gateway.id,
            payment_method_title=ctx.gateway.title or "Paiement",
            set_paid=card,
            shipping_line=shipping_line,
            meta=meta,
            order_status="processing" if card else "pending",
        )
        woo_order_id = self._submit_woo_order(woo, woo_payload, compensations)

        if active is None:
            batch.woocommerce_order_id = woo_order_id
            self.batch_repo.save(session, batch)

        self.batch_repo.create_items(
            session,
            [
                DeliveryBatchItem(
                    batch_id=batch.id,
                    product_id=it.product_id,
                    product_name=it.name,
                    product_slug=it.slug,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    total_price=it.unit_price * it.quantity,
                    image_url=it.variation_image or it.image_url,
                )
                for it in ctx.cart
            ],
        )

        logger.info(
            "%s delivery batch %s for user %s (WooCommerce %s, amount %.2f)",
            "Created" if active is None else "Appended to",
            batch.id,
            user.id,
            woo_order_id,
            amount,
        )

        return CheckoutResult(
            kind="delivery_batch",
            redirect_to=BATCH_REDIRECT,
            batch_id=batch.id,
            woocommerce_order_id=woo_order_id,
            payment_intent_id=intent.id if intent else None,
            client_secret=intent.client_secret if intent else None,
            amount_charged=amount,
            breakdown=breakdown,
        )
