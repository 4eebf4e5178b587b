# boutique/services/coupon_service.py
import secrets
import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlmodel import Session

from boutique.core.datetime_utils import as_utc, utc_now
from boutique.models.coupon import CouponType, UserCoupon
from boutique.repositories.coupon_repo import CouponRepository
from boutique.schemas.coupon import CouponTypeRead, UserCouponRead


def generate_coupon_code(prefix: str) -> str:
    """Server-issued coupon code, e.g. WHEEL-3F9A0C12B4E1."""
    return f"{prefix}-{secrets.token_hex(6).upper()}"


def to_read(coupon: UserCoupon, coupon_type: CouponType) -> UserCouponRead:
    return UserCouponRead(
        id=coupon.id,
        code=coupon.code,
        coupon_type_id=coupon.coupon_type_id,
        source=coupon.source,
        is_used=coupon.is_used,
        used_at=coupon.used_at,
        obtained_at=coupon.obtained_at,
        valid_until=coupon.valid_until,
        coupon_type=CouponTypeRead(
            id=coupon_type.id,
            type=coupon_type.type,
            value=coupon_type.value,
            description=coupon_type.description,
        ),
    )


class CouponService:
    """
    Business logic for user coupons.

    Responsibilities:
      - list the coupons a customer can still pick at checkout
      - resolve a selected coupon (owned, unused, not expired)
      - the one-way unused -> used transition
      - minting coupons won in games
    """

    def __init__(self, coupon_repo: CouponRepository):
        self.coupon_repo = coupon_repo

    def list_usable(self, session: Session, user_id: uuid.UUID) -> list[UserCouponRead]:
        rows = self.coupon_repo.list_usable(session, user_id, utc_now())
        return [to_read(uc, ct) for uc, ct in rows]

    def get_selectable(
        self, session: Session, user_id: uuid.UUID, coupon_id: uuid.UUID
    ) -> tuple[UserCoupon, CouponType]:
        """
        Resolve the coupon picked at checkout.

        Raises:
            HTTPException(400): unknown, already used or expired coupon.
        """
        row = self.coupon_repo.get_for_user(session, user_id, coupon_id)
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Coupon introuvable",
            )
        coupon, coupon_type = row
        if coupon.is_used:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ce coupon a déjà été utilisé",
            )
        if coupon.valid_until is not None and as_utc(coupon.valid_until) < utc_now():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ce coupon a expiré",
            )
        return coupon, coupon_type

    def mark_used(
        self,
        session: Session,
        coupon: UserCoupon,
        order_id: uuid.UUID,
        now: datetime | None = None,
    ) -> UserCoupon:
        """
        Flag a coupon as consumed by an order. Only ever goes unused -> used.
        """
        if coupon.is_used:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ce coupon a déjà été utilisé",
            )
        coupon.is_used = True
        coupon.used_at = now or utc_now()
        coupon.order_id = order_id
        return self.coupon_repo.save(session, coupon)

    def mint(
        self,
        session: Session,
        user_id: uuid.UUID,
        coupon_type: CouponType,
        source: str,
        prefix: str,
    ) -> UserCoupon:
        coupon = UserCoupon(
            user_id=user_id,
            coupon_type_id=coupon_type.id,
            code=generate_coupon_code(prefix),
            source=source,
            valid_until=coupon_type.valid_until,
        )
        return self.coupon_repo.save(session, coupon)
