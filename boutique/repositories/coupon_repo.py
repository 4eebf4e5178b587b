# boutique/repositories/coupon_repo.py
import uuid
from datetime import datetime

from sqlmodel import Session, or_, select

from boutique.models.coupon import CouponType, UserCoupon


class CouponRepository:
    """
    Data access layer for coupon_types and user_coupons. No commits.
    """

    def get_types(
        self, session: Session, type_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, CouponType]:
        if not type_ids:
            return {}
        stmt = select(CouponType).where(CouponType.id.in_(type_ids))
        return {ct.id: ct for ct in session.exec(stmt).all()}

    def get_for_user(
        self, session: Session, user_id: uuid.UUID, coupon_id: uuid.UUID
    ) -> tuple[UserCoupon, CouponType] | None:
        stmt = (
            select(UserCoupon, CouponType)
            .join(CouponType, CouponType.id == UserCoupon.coupon_type_id)
            .where(UserCoupon.id == coupon_id, UserCoupon.user_id == user_id)
        )
        row = session.exec(stmt).first()
        return (row[0], row[1]) if row else None

    def list_usable(
        self, session: Session, user_id: uuid.UUID, now: datetime
    ) -> list[tuple[UserCoupon, CouponType]]:
        stmt = (
            select(UserCoupon, CouponType)
            .join(CouponType, CouponType.id == UserCoupon.coupon_type_id)
            .where(
                UserCoupon.user_id == user_id,
                UserCoupon.is_used == False,  # noqa: E712
                or_(UserCoupon.valid_until.is_(None), UserCoupon.valid_until >= now),
            )
            .order_by(UserCoupon.obtained_at.desc())
        )
        return [(uc, ct) for uc, ct in session.exec(stmt).all()]

    def save(self, session: Session, coupon: UserCoupon) -> UserCoupon:
        session.add(coupon)
        session.flush()
        return coupon
