# boutique/routers/coupons.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from boutique.core.auth import require_auth
from boutique.database import get_session
from boutique.models.profile import Profile
from boutique.repositories.coupon_repo import CouponRepository
from boutique.schemas.coupon import UserCouponRead
from boutique.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["Coupons"])

service = CouponService(CouponRepository())


@router.get("", response_model=list[UserCouponRead])
def list_my_coupons(
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_auth),
):
    """
    Coupons the user can still apply (unused, not expired).
    """
    return service.list_usable(session, current_user.id)
