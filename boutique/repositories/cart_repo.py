# boutique/repositories/cart_repo.py
import uuid

from sqlmodel import Session, select

from boutique.models.cart import CartItem


class CartRepository:
    """
    Data access layer for cart_items.

    NOTE:
      - No commits here; the cart is also cleared inside the checkout
        transaction. Services call session.commit().
    """

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at)
        )
        return session.exec(stmt).all()

    def get_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: str,
        variation_id: str | None = None,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
        )
        if variation_id is None:
            stmt = stmt.where(CartItem.variation_id.is_(None))
        else:
            stmt = stmt.where(CartItem.variation_id == variation_id)
        return session.exec(stmt).first()

    def save(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def clear_user_cart(self, session: Session, user_id: uuid.UUID) -> None:
        for row in self.list_for_user(session, user_id):
            session.delete(row)
        session.flush()
