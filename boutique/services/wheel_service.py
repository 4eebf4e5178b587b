# boutique/services/wheel_service.py
import logging
import random
import uuid
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlmodel import Session

from boutique.core.datetime_utils import start_of_day, utc_now
from boutique.models.coupon import CouponType
from boutique.models.profile import Profile
from boutique.models.wheel import WheelGamePlay, WheelGameSettings
from boutique.repositories.coupon_repo import CouponRepository
from boutique.repositories.wheel_repo import WheelRepository
from boutique.schemas.wheel import (
    LosingZoneConfig,
    SpinResult,
    WheelStatus,
    WheelZone,
    WinningZoneConfig,
)
from boutique.services.coupon_service import CouponService, to_read

logger = logging.getLogger(__name__)

COUPON_PREFIX = "WHEEL"
COUPON_SOURCE = "wheel_game"


def select_zone(
    winning_weights: list[float], losing_weights: list[float], draw: float
) -> tuple[int, bool]:
    """
    Pick a zone from a draw in [0, sum of all weights].

    Cumulative scan over winning zones first, then losing zones; a zone is
    hit when draw <= cumulative (inclusive bound). The returned index is
    over winning + losing zones. A draw past the total (float edge) lands
    on the last zone.

    Returns:
        (zone_index, won)
    """
    cumulative = 0.0
    for i, weight in enumerate(winning_weights):
        cumulative += weight
        if draw <= cumulative:
            return i, True

    for i, weight in enumerate(losing_weights):
        cumulative += weight
        if draw <= cumulative:
            return len(winning_weights) + i, False

    if losing_weights:
        return len(winning_weights) + len(losing_weights) - 1, False
    return len(winning_weights) - 1, True


@dataclass
class _Wheel:
    """Zones as drawn, each paired with its weight."""

    zones: list[WheelZone]
    weights: list[float]
    coupon_types: dict[int, CouponType]

    @property
    def winning_count(self) -> int:
        return sum(1 for z in self.zones if z.type == "winning")


class WheelService:
    """
    Wheel-of-fortune game.

    Responsibilities:
      - build the zone list (winning zones whose coupon type is gone are dropped)
      - eligibility gates: enabled, authentication, lifetime cap, daily cap
      - draw, mint the won coupon, log every play
    """

    def __init__(
        self,
        wheel_repo: WheelRepository,
        coupon_repo: CouponRepository,
        coupon_service: CouponService,
        rng: random.Random | None = None,
    ):
        self.wheel_repo = wheel_repo
        self.coupon_repo = coupon_repo
        self.coupon_service = coupon_service
        self.rng = rng or random.SystemRandom()

    # ---- internal helpers ----

    def _build_wheel(self, session: Session, settings: WheelGameSettings) -> _Wheel:
        winning = [WinningZoneConfig.model_validate(z) for z in settings.winning_zones]
        losing = [LosingZoneConfig.model_validate(z) for z in settings.losing_zones]

        types = self.coupon_repo.get_types(
            session, [z.coupon_type_id for z in winning if z.coupon_type_id is not None]
        )

        zones: list[WheelZone] = []
        weights: list[float] = []
        coupon_types: dict[int, CouponType] = {}

        for i, zone in enumerate(winning):
            coupon_type = types.get(zone.coupon_type_id) if zone.coupon_type_id else None
            if coupon_type is None:
                logger.warning("Wheel winning zone %d skipped: coupon type missing", i)
                continue
            coupon_types[len(zones)] = coupon_type
            zones.append(
                WheelZone(
                    id=f"win_{i}",
                    type="winning",
                    label=coupon_type.description,
                    coupon_type_id=coupon_type.id,
                )
            )
            weights.append(zone.probability)

        for i, zone in enumerate(losing):
            zones.append(
                WheelZone(id=f"lose_{i}", type="losing", label="Perdu", message=zone.message)
            )
            weights.append(zone.probability)

        return _Wheel(zones=zones, weights=weights, coupon_types=coupon_types)

    def _eligibility(
        self,
        session: Session,
        settings: WheelGameSettings | None,
        user: Profile | None,
        session_id: str | None,
    ) -> tuple[bool, str | None, int]:
        """
        Returns (can_play, reason, plays_today).
        """
        if settings is None or not settings.is_enabled:
            return False, "Le jeu n'est pas disponible", 0

        if settings.require_authentication and user is None:
            return False, "Connectez-vous pour jouer", 0

        if user is None and not session_id:
            return False, "Session de jeu manquante", 0

        user_id = user.id if user is not None else None
        owner = {"user_id": user_id} if user_id else {"session_id": session_id}

        if user_id and settings.max_plays_per_user > 0:
            total = self.wheel_repo.count_plays(session, user_id=user_id)
            if total >= settings.max_plays_per_user:
                return False, "Vous avez atteint le nombre maximum de parties", 0

        plays_today = 0
        if settings.max_plays_per_day > 0:
            plays_today = self.wheel_repo.count_plays(
                session, since=start_of_day(utc_now()), **owner
            )
            if plays_today >= settings.max_plays_per_day:
                return False, "Vous avez déjà joué aujourd'hui, revenez demain !", plays_today

        return True, None, plays_today

    # ---- public operations ----

    def get_status(
        self, session: Session, user: Profile | None, session_id: str | None
    ) -> WheelStatus:
        settings = self.wheel_repo.get_settings(session)
        zones = self._build_wheel(session, settings).zones if settings else []
        can_play, reason, plays_today = self._eligibility(session, settings, user, session_id)
        if can_play and not zones:
            can_play, reason = False, "Le jeu n'est pas disponible"

        return WheelStatus(
            is_enabled=bool(settings and settings.is_enabled),
            require_authentication=bool(settings and settings.require_authentication),
            zones=zones,
            can_play=can_play,
            reason=reason,
            plays_today=plays_today,
            max_plays_per_day=settings.max_plays_per_day if settings else 0,
        )

    def spin(
        self, session: Session, user: Profile | None, session_id: str | None
    ) -> SpinResult:
        """
        Spin once.

        Steps:
          1. Eligibility gates (403 with the reason).
          2. Weighted draw over the combined zone list.
          3. Won zone + signed-in player => mint a user coupon.
          4. Log the play, won or lost.
        """
        settings = self.wheel_repo.get_settings(session)
        can_play, reason, _ = self._eligibility(session, settings, user, session_id)
        if not can_play:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=reason)

        wheel = self._build_wheel(session, settings)
        if not wheel.zones:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Le jeu n'est pas disponible",
            )

        split = wheel.winning_count
        draw = self.rng.random() * sum(wheel.weights)
        zone_index, won = select_zone(wheel.weights[:split], wheel.weights[split:], draw)
        zone = wheel.zones[zone_index]

        coupon_read = None
        user_coupon_id: uuid.UUID | None = None
        coupon_type = wheel.coupon_types.get(zone_index) if won else None

        if coupon_type is not None and user is not None:
            coupon = self.coupon_service.mint(
                session, user.id, coupon_type, source=COUPON_SOURCE, prefix=COUPON_PREFIX
            )
            user_coupon_id = coupon.id
            coupon_read = to_read(coupon, coupon_type)

        self.wheel_repo.create_play(
            session,
            WheelGamePlay(
                user_id=user.id if user else None,
                session_id=None if user else session_id,
                won=won,
                prize_type="coupon" if won else "none",
                coupon_type_id=coupon_type.id if coupon_type else None,
                user_coupon_id=user_coupon_id,
                zone_index=zone_index,
            ),
        )
        session.commit()

        logger.info(
            "Wheel spin by %s: zone %d (%s)",
            user.id if user else f"session {session_id}",
            zone_index,
            "won" if won else "lost",
        )

        message = (
            f"Félicitations ! Vous avez gagné : {zone.label}" if won else zone.message or "Perdu !"
        )
        return SpinResult(
            won=won,
            zone_index=zone_index,
            zone=zone,
            message=message,
            coupon=coupon_read,
        )
