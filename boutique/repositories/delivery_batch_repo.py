# boutique/repositories/delivery_batch_repo.py
import uuid
from datetime import datetime

from sqlmodel import Session, select

from boutique.models.delivery_batch import DeliveryBatch, DeliveryBatchItem


class DeliveryBatchRepository:
    """
    Data access layer for delivery_batches and delivery_batch_items.

    NOTE:
      - No commits here; batches are written inside the checkout
        transaction.
    """

    def get_active(
        self, session: Session, user_id: uuid.UUID, now: datetime
    ) -> DeliveryBatch | None:
        """
        Most recent pending batch whose validation deadline is still ahead.
        """
        stmt = (
            select(DeliveryBatch)
            .where(
                DeliveryBatch.user_id == user_id,
                DeliveryBatch.status == "pending",
                DeliveryBatch.validate_at >= now,
            )
            .order_by(DeliveryBatch.created_at.desc())
            .limit(1)
        )
        return session.exec(stmt).first()

    def get_for_user(
        self, session: Session, user_id: uuid.UUID, batch_id: uuid.UUID
    ) -> DeliveryBatch | None:
        stmt = select(DeliveryBatch).where(
            DeliveryBatch.id == batch_id, DeliveryBatch.user_id == user_id
        )
        return session.exec(stmt).first()

    def list_for_user(
        self, session: Session, user_id: uuid.UUID
    ) -> list[DeliveryBatch]:
        stmt = (
            select(DeliveryBatch)
            .where(DeliveryBatch.user_id == user_id)
            .order_by(DeliveryBatch.created_at.desc())
        )
        return session.exec(stmt).all()

    def save(self, session: Session, batch: DeliveryBatch) -> DeliveryBatch:
        session.add(batch)
        session.flush()
        return batch

    # ---- Items ----

    def list_items(
        self, session: Session, batch_id: uuid.UUID
    ) -> list[DeliveryBatchItem]:
        stmt = (
            select(DeliveryBatchItem)
            .where(DeliveryBatchItem.batch_id == batch_id)
            .order_by(DeliveryBatchItem.created_at)
        )
        return session.exec(stmt).all()

    def create_items(
        self, session: Session, items: list[DeliveryBatchItem]
    ) -> list[DeliveryBatchItem]:
        session.add_all(items)
        session.flush()
        return items
