# boutique/services/delivery_batch_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from boutique.clients.woocommerce import WooCommerceClient
from boutique.core.datetime_utils import as_utc, utc_now
from boutique.models.delivery_batch import DeliveryBatch, DeliveryBatchItem
from boutique.models.profile import Profile
from boutique.repositories.address_repo import AddressRepository
from boutique.repositories.delivery_batch_repo import DeliveryBatchRepository
from boutique.schemas.delivery_batch import DeliveryBatchItemRead, DeliveryBatchRead
from boutique.schemas.woocommerce import (
    WooAddress,
    WooLineItem,
    WooMeta,
    WooOrderPayload,
    WooShippingLine,
)

logger = logging.getLogger(__name__)

VALIDATED_SHIPPING_TITLE = "Livraison groupée (5 jours)"


class DeliveryBatchService:
    """
    Business logic for delivery batches ("colis ouvert").

    Responsibilities:
      - list the customer's batches with items and totals
      - expose the active batch (pending and not yet expired)
      - validation: close the batch and release its WooCommerce order
    """

    def __init__(self, batch_repo: DeliveryBatchRepository, address_repo: AddressRepository):
        self.batch_repo = batch_repo
        self.address_repo = address_repo

    # ---- public operations ----

    def list_batches(self, session: Session, user_id: uuid.UUID) -> list[DeliveryBatchRead]:
        return [
            self._build_batch_dto(session, batch)
            for batch in self.batch_repo.list_for_user(session, user_id)
        ]

    def get_active(self, session: Session, user_id: uuid.UUID) -> DeliveryBatchRead | None:
        batch = self.batch_repo.get_active(session, user_id, utc_now())
        if batch is None:
            return None
        return self._build_batch_dto(session, batch)

    def validate(
        self,
        session: Session,
        user: Profile,
        batch_id: uuid.UUID,
        woo: WooCommerceClient,
    ) -> DeliveryBatchRead:
        """
        Close a pending batch.

        Steps:
          1. Batch must belong to the user, be pending and hold items.
          2. Linked WooCommerce order => move it to processing with every
             batch line. No linked order => create one with the batch
             shipping cost.
          3. Mark the batch validated.
        """
        batch = self.batch_repo.get_for_user(session, user.id, batch_id)
        if batch is None or batch.status != "pending":
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Batch not found or already validated",
            )

        items = self.batch_repo.list_items(session, batch.id)
        if not items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No items found in batch",
            )

        now = utc_now()
        line_items = [
            WooLineItem(product_id=int(it.product_id), quantity=it.quantity) for it in items
        ]
        meta = [
            WooMeta(key="_supabase_batch_id", value=str(batch.id)),
            WooMeta(key="_batch_validated_at", value=now.isoformat()),
        ]

        if batch.woocommerce_order_id:
            woo.update_order(
                batch.woocommerce_order_id,
                {
                    "status": "processing",
                    "line_items": [li.model_dump(exclude_none=True) for li in line_items],
                    "meta_data": [m.model_dump() for m in meta],
                },
            )
        else:
            payload = self._new_order_payload(session, user, batch, line_items, meta)
            batch.woocommerce_order_id = str(woo.create_order(payload).id)

        batch.status = "validated"
        batch.validated_at = now
        self.batch_repo.save(session, batch)
        session.commit()
        session.refresh(batch)

        logger.info("Delivery batch %s validated (WooCommerce %s)", batch.id, batch.woocommerce_order_id)
        return self._build_batch_dto(session, batch)

    # ---- helpers ----

    def _new_order_payload(
        self,
        session: Session,
        user: Profile,
        batch: DeliveryBatch,
        line_items: list[WooLineItem],
        meta: list[WooMeta],
    ) -> WooOrderPayload:
        address = None
        if batch.shipping_address_id is not None:
            address = self.address_repo.get_for_user(session, user.id, batch.shipping_address_id)
        if address is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Adresse de livraison introuvable",
            )

        billing = WooAddress(
            first_name=address.first_name or user.first_name or "",
            last_name=address.last_name or user.last_name or "",
            address_1=address.address_line1,
            address_2=address.address_line2 or "",
            city=address.city,
            postcode=address.postal_code,
            country=address.country or "FR",
            email=user.email,
            phone=address.phone or user.phone,
        )
        return WooOrderPayload(
            status="processing",
            payment_method="bacs",
            payment_method_title="Virement bancaire",
            set_paid=True,
            billing=billing,
            shipping=billing.model_copy(update={"email": None, "phone": None}),
            line_items=line_items,
            shipping_lines=[
                WooShippingLine(
                    method_id="flat_rate",
                    method_title=VALIDATED_SHIPPING_TITLE,
                    total=f"{batch.shipping_cost:.2f}",
                )
            ],
            meta_data=meta + [WooMeta(key="_supabase_user_id", value=str(user.id))],
        )

    def _build_batch_dto(self, session: Session, batch: DeliveryBatch) -> DeliveryBatchRead:
        """
        Compose DeliveryBatchRead, including subtotal and total.
        """
        items: list[DeliveryBatchItem] = self.batch_repo.list_items(session, batch.id)
        subtotal = sum(it.total_price for it in items)
        is_expired = batch.status == "pending" and as_utc(batch.validate_at) < utc_now()

        return DeliveryBatchRead(
            id=batch.id,
            shipping_cost=batch.shipping_cost,
            shipping_address_id=batch.shipping_address_id,
            woocommerce_order_id=batch.woocommerce_order_id,
            status=batch.status,
            validate_at=batch.validate_at,
            validated_at=batch.validated_at,
            created_at=batch.created_at,
            is_expired=is_expired,
            items=[
                DeliveryBatchItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    product_name=it.product_name,
                    product_slug=it.product_slug,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    total_price=it.total_price,
                    image_url=it.image_url,
                    created_at=it.created_at,
                )
                for it in items
            ],
            subtotal=subtotal,
            total=subtotal + batch.shipping_cost,
        )
