# boutique/routers/wheel.py
from fastapi import APIRouter, Depends, Header
from sqlmodel import Session

from boutique.core.auth import get_current_user
from boutique.database import get_session
from boutique.models.profile import Profile
from boutique.repositories.coupon_repo import CouponRepository
from boutique.repositories.wheel_repo import WheelRepository
from boutique.schemas.wheel import SpinResult, WheelStatus
from boutique.services.coupon_service import CouponService
from boutique.services.wheel_service import WheelService

router = APIRouter(prefix="/wheel", tags=["Wheel game"])

coupon_repo = CouponRepository()
_service = WheelService(WheelRepository(), coupon_repo, CouponService(coupon_repo))


def get_wheel_service() -> WheelService:
    return _service


@router.get("", response_model=WheelStatus)
def get_wheel(
    session: Session = Depends(get_session),
    current_user: Profile | None = Depends(get_current_user),
    x_session_id: str | None = Header(default=None),
    service: WheelService = Depends(get_wheel_service),
):
    """
    Wheel zones and whether the caller may spin now.

    Guests are identified by the X-Session-Id header.
    """
    return service.get_status(session, current_user, x_session_id)


@router.post("/spin", response_model=SpinResult)
def spin(
    session: Session = Depends(get_session),
    current_user: Profile | None = Depends(get_current_user),
    x_session_id: str | None = Header(default=None),
    service: WheelService = Depends(get_wheel_service),
):
    """
    Spin the wheel once. A won coupon is added to the user's coupons.
    """
    return service.spin(session, current_user, x_session_id)
