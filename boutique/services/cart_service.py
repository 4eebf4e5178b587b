# boutique/services/cart_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from boutique.core.datetime_utils import utc_now
from boutique.models.cart import CartItem
from boutique.repositories.cart_repo import CartRepository
from boutique.schemas.cart import (
    CartItemRead,
    CartLine,
    CartMergeResult,
    CartQuantityUpdate,
    CartSummary,
)

logger = logging.getLogger(__name__)

CartKey = tuple[str, str | None]


def line_key(line: CartLine | CartItem) -> CartKey:
    return line.product_id, line.variation_id


def merge_carts(server_items: list[CartLine], local_items: list[CartLine]) -> list[CartLine]:
    """
    Login-time reconciliation of the anonymous local cart into the server cart.

    Rules:
      - same (product_id, variation_id) on both sides => max(server, local)
        quantity, server fields kept
      - local-only lines are appended, variation fields nulled when absent
      - quantities are never summed
    """
    merged = [line.model_copy() for line in server_items]
    by_key = {line_key(line): line for line in merged}

    for local in local_items:
        existing = by_key.get(line_key(local))
        if existing is not None:
            existing.quantity = max(existing.quantity, local.quantity)
            continue

        appended = local.model_copy(
            update={
                "variation_id": local.variation_id or None,
                "variation_price": local.variation_price or None,
                "variation_image": local.variation_image or None,
                "selected_attributes": local.selected_attributes or None,
            }
        )
        merged.append(appended)
        by_key[line_key(appended)] = appended

    return merged


def _to_line(item: CartItem) -> CartLine:
    return CartLine(
        product_id=item.product_id,
        variation_id=item.variation_id,
        name=item.name,
        slug=item.slug,
        price=item.price,
        image_url=item.image_url,
        quantity=item.quantity,
        variation_price=item.variation_price,
        variation_image=item.variation_image,
        selected_attributes=item.selected_attributes,
    )


class CartService:
    """
    Business logic for the server-side cart.

    Responsibilities:
      - keep one row per (product_id, variation_id)
      - line price is variation_price when set, else price
      - compute line totals and cart totals
      - wholesale sync and login-time merge of the storefront cart
    """

    def __init__(self, cart_repo: CartRepository):
        self.cart_repo = cart_repo

    # ---- internal helpers ----

    def _apply_line(self, item: CartItem, line: CartLine) -> None:
        item.name = line.name
        item.slug = line.slug
        item.price = line.price
        item.image_url = line.image_url
        item.quantity = line.quantity
        item.variation_price = line.variation_price
        item.variation_image = line.variation_image
        item.selected_attributes = line.selected_attributes
        item.updated_at = utc_now()

    def _upsert(self, session: Session, user_id: uuid.UUID, line: CartLine) -> CartItem:
        item = self.cart_repo.get_item(session, user_id, line.product_id, line.variation_id)
        if item is None:
            item = CartItem(
                user_id=user_id,
                product_id=line.product_id,
                variation_id=line.variation_id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
            )
        self._apply_line(item, line)
        return self.cart_repo.save(session, item)

    def _get_existing(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: str,
        variation_id: str | None,
    ) -> CartItem:
        item = self.cart_repo.get_item(session, user_id, product_id, variation_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not in cart",
            )
        return item

    # ---- public operations ----

    def get_cart_summary(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with line_total)
          - total_quantity
          - total_price
        """
        items = self.cart_repo.list_for_user(session, user_id)

        item_reads: list[CartItemRead] = []
        total_qty = 0
        total_price = 0.0

        for it in items:
            line_total = it.quantity * it.unit_price
            total_qty += it.quantity
            total_price += line_total

            item_reads.append(
                CartItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    variation_id=it.variation_id,
                    name=it.name,
                    slug=it.slug,
                    price=it.price,
                    unit_price=it.unit_price,
                    image_url=it.image_url,
                    quantity=it.quantity,
                    variation_price=it.variation_price,
                    variation_image=it.variation_image,
                    selected_attributes=it.selected_attributes,
                    line_total=line_total,
                    created_at=it.created_at,
                )
            )

        return CartSummary(
            items=item_reads,
            total_quantity=total_qty,
            total_price=total_price,
        )

    def add_to_cart(self, session: Session, user_id: uuid.UUID, payload: CartLine) -> CartSummary:
        """
        Add a line to the cart; an existing (product, variation) line has
        its quantity increased instead.
        """
        existing = self.cart_repo.get_item(
            session, user_id, payload.product_id, payload.variation_id
        )
        if existing:
            line = payload.model_copy(update={"quantity": existing.quantity + payload.quantity})
            self._apply_line(existing, line)
            self.cart_repo.save(session, existing)
        else:
            self._upsert(session, user_id, payload)

        session.commit()
        return self.get_cart_summary(session, user_id)

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: str,
        payload: CartQuantityUpdate,
    ) -> CartSummary:
        """
        Set the quantity of a cart line. quantity <= 0 removes the line.
        """
        item = self._get_existing(session, user_id, product_id, payload.variation_id)

        if payload.quantity <= 0:
            self.cart_repo.delete(session, item)
        else:
            item.quantity = payload.quantity
            item.updated_at = utc_now()
            self.cart_repo.save(session, item)

        session.commit()
        return self.get_cart_summary(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: str,
        variation_id: str | None = None,
    ) -> CartSummary:
        item = self._get_existing(session, user_id, product_id, variation_id)
        self.cart_repo.delete(session, item)
        session.commit()
        return self.get_cart_summary(session, user_id)

    def clear_cart(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        self.cart_repo.clear_user_cart(session, user_id)
        session.commit()
        return CartSummary(items=[], total_quantity=0, total_price=0.0)

    def sync_cart(
        self, session: Session, user_id: uuid.UUID, lines: list[CartLine]
    ) -> CartSummary:
        """
        Replace the server cart with `lines`.

        Rows whose key is absent from `lines` are deleted one by one, then
        every line is upserted on (user_id, product_id, variation_id).
        """
        wanted = {line_key(line) for line in lines}
        for item in self.cart_repo.list_for_user(session, user_id):
            if line_key(item) not in wanted:
                self.cart_repo.delete(session, item)

        for line in lines:
            self._upsert(session, user_id, line)

        session.commit()
        return self.get_cart_summary(session, user_id)

    def merge_local_cart(
        self, session: Session, user_id: uuid.UUID, local_items: list[CartLine]
    ) -> CartMergeResult:
        """
        Merge the anonymous cart sent right after sign-in.

        Nothing is written when the local cart is empty. The client drops
        its local copy whatever the outcome.
        """
        server_lines = [_to_line(it) for it in self.cart_repo.list_for_user(session, user_id)]
        merged = merge_carts(server_lines, local_items)

        if local_items and merged:
            for line in merged:
                self._upsert(session, user_id, line)
            session.commit()
            logger.info(
                "Merged %d local cart lines into cart of user %s", len(local_items), user_id
            )

        summary = self.get_cart_summary(session, user_id)
        return CartMergeResult(**summary.model_dump(), clear_local_storage=True)
