"""Wheel game: zone selection, eligibility and spins."""

import random
import uuid

import pytest
from sqlmodel import select

from boutique.core.auth import get_current_user
from boutique.main import app
from boutique.models.coupon import CouponType, UserCoupon
from boutique.models.wheel import WheelGamePlay, WheelGameSettings
from boutique.repositories.coupon_repo import CouponRepository
from boutique.repositories.wheel_repo import WheelRepository
from boutique.routers.wheel import get_wheel_service
from boutique.services.coupon_service import CouponService
from boutique.services.wheel_service import WheelService, select_zone

WHEEL = "/api/v1/wheel"


class FixedRandom(random.Random):
    """random() always returns `value`."""

    def __init__(self, value):
        super().__init__()
        self.value = value

    def random(self):
        return self.value


class TestSelectZone:

    @pytest.mark.parametrize(
        "draw, expected",
        [
            (0.0, (0, True)),
            (5.0, (0, True)),
            (10.0, (0, True)),
            (10.5, (1, True)),
            (15.0, (1, True)),
            (30.0, (1, True)),
            (30.5, (2, False)),
            (99.0, (2, False)),
            (100.0, (2, False)),
        ],
    )
    def test_cumulative_scan_with_inclusive_bound(self, draw, expected):
        assert select_zone([10, 20], [70], draw) == expected

    def test_draw_past_total_lands_on_last_zone(self):
        assert select_zone([10, 20], [70], 100.0000001) == (2, False)
        assert select_zone([10, 20], [], 30.0000001) == (1, True)


@pytest.fixture
def coupon_type(session):
    ct = CouponType(type="discount_percentage", value=10, description="-10% sur votre commande")
    session.add(ct)
    session.commit()
    session.refresh(ct)
    return ct


@pytest.fixture
def wheel_settings(session, coupon_type):
    settings = WheelGameSettings(
        is_enabled=True,
        max_plays_per_day=1,
        winning_zones=[{"coupon_type_id": str(coupon_type.id), "probability": 30}],
        losing_zones=[{"message": "Pas de chance !", "probability": 70}],
    )
    session.add(settings)
    session.commit()
    session.refresh(settings)
    return settings


@pytest.fixture
def spin_with(client):
    """Pin the draw: spin_with(0.1) hits the winning zone, spin_with(0.9) loses."""

    def _use(value):
        coupon_repo = CouponRepository()
        service = WheelService(
            WheelRepository(), coupon_repo, CouponService(coupon_repo), rng=FixedRandom(value)
        )
        app.dependency_overrides[get_wheel_service] = lambda: service
        return client

    return _use


def test_status_lists_zones(client, wheel_settings, coupon_type):
    response = client.get(WHEEL)

    assert response.status_code == 200
    data = response.json()
    assert data["can_play"] is True
    assert [(z["id"], z["type"]) for z in data["zones"]] == [
        ("win_0", "winning"),
        ("lose_0", "losing"),
    ]
    assert data["zones"][0]["label"] == "-10% sur votre commande"


def test_winning_spin_mints_coupon(spin_with, session, profile, wheel_settings, coupon_type):
    client = spin_with(0.1)

    response = client.post(f"{WHEEL}/spin")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["won"] is True
    assert data["message"] == "Félicitations ! Vous avez gagné : -10% sur votre commande"
    assert data["coupon"]["code"].startswith("WHEEL-")

    coupon = session.exec(select(UserCoupon)).one()
    assert coupon.user_id == profile.id
    assert coupon.source == "wheel_game"
    play = session.exec(select(WheelGamePlay)).one()
    assert play.prize_type == "coupon"
    assert play.user_coupon_id == coupon.id


def test_losing_spin_logs_play(spin_with, session, wheel_settings):
    client = spin_with(0.9)

    response = client.post(f"{WHEEL}/spin")

    data = response.json()
    assert data["won"] is False
    assert data["message"] == "Pas de chance !"
    assert session.exec(select(UserCoupon)).all() == []
    assert session.exec(select(WheelGamePlay)).one().prize_type == "none"


def test_daily_cap(spin_with, wheel_settings):
    client = spin_with(0.9)

    assert client.post(f"{WHEEL}/spin").status_code == 200
    second = client.post(f"{WHEEL}/spin")

    assert second.status_code == 403
    assert second.json()["detail"] == "Vous avez déjà joué aujourd'hui, revenez demain !"
    assert client.get(WHEEL).json()["can_play"] is False


def test_lifetime_cap(spin_with, session, wheel_settings):
    wheel_settings.max_plays_per_day = 0
    wheel_settings.max_plays_per_user = 2
    session.add(wheel_settings)
    session.commit()
    client = spin_with(0.9)

    assert client.post(f"{WHEEL}/spin").status_code == 200
    assert client.post(f"{WHEEL}/spin").status_code == 200
    third = client.post(f"{WHEEL}/spin")

    assert third.status_code == 403
    assert third.json()["detail"] == "Vous avez atteint le nombre maximum de parties"


def test_anonymous_player_needs_session_id(spin_with, session, wheel_settings):
    client = spin_with(0.1)
    app.dependency_overrides[get_current_user] = lambda: None

    missing = client.post(f"{WHEEL}/spin")
    assert missing.status_code == 403
    assert missing.json()["detail"] == "Session de jeu manquante"

    response = client.post(f"{WHEEL}/spin", headers={"X-Session-Id": "guest-42"})

    assert response.status_code == 200
    assert response.json()["won"] is True
    # Guests win the zone but no coupon is attached to anyone.
    assert response.json()["coupon"] is None
    assert session.exec(select(UserCoupon)).all() == []
    assert session.exec(select(WheelGamePlay)).one().session_id == "guest-42"


def test_authentication_can_be_required(client, session, wheel_settings):
    wheel_settings.require_authentication = True
    session.add(wheel_settings)
    session.commit()
    app.dependency_overrides[get_current_user] = lambda: None

    response = client.get(WHEEL, headers={"X-Session-Id": "guest-42"})

    assert response.json()["can_play"] is False
    assert response.json()["reason"] == "Connectez-vous pour jouer"


def test_zone_with_missing_coupon_type_is_skipped(spin_with, session, wheel_settings):
    wheel_settings.winning_zones = [
        {"coupon_type_id": str(uuid.uuid4()), "probability": 50},
        *wheel_settings.winning_zones,
    ]
    session.add(wheel_settings)
    session.commit()

    status_data = spin_with(0.1).get(WHEEL).json()

    assert [z["id"] for z in status_data["zones"]] == ["win_1", "lose_0"]


def test_disabled_wheel(client, session, wheel_settings):
    wheel_settings.is_enabled = False
    session.add(wheel_settings)
    session.commit()

    response = client.post(f"{WHEEL}/spin")

    assert response.status_code == 403
    assert response.json()["detail"] == "Le jeu n'est pas disponible"
