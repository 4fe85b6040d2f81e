"""
HTTP tests for the wheel and discount endpoints.

Services are wired to an in-memory store, a fixed clock and a deterministic
random source through `app.dependency_overrides`.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_clock, get_redemption_service, get_spin_service
from api.main import app
from conftest import ADMIN_KEY
from services.spin_service import SpinService

SPIN_URL = "/api/v1/wheel/spin"


def _client_from(host: str) -> TestClient:
    """A client whose requests arrive from `host`."""

    async def with_address(scope, receive, send):
        if scope["type"] == "http":
            scope = dict(scope, client=(host, 40000))
        await app(scope, receive, send)

    return TestClient(with_address)


@pytest.fixture
def api(spin_service, redemption_service, clock):
    app.dependency_overrides[get_spin_service] = lambda: spin_service
    app.dependency_overrides[get_redemption_service] = lambda: redemption_service
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(api) -> None:
    response = api.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_spin_returns_camel_case_award(api) -> None:
    response = api.post(SPIN_URL, json={"sessionId": "sess-1", "userIp": "203.0.113.7"})

    assert response.status_code == 200
    body = response.json()
    assert body["sessionId"] == "sess-1"
    assert body["section"] == "DISCOUNT_5"
    assert body["discountPercentage"] == 5
    assert body["isWinning"] is True
    assert body["discountCode"].startswith("INTEL05")
    assert 1080 <= body["spinAngle"] < 2520
    assert body["spinDuration"] == 3000
    assert body["canSpinAgain"] is True
    assert body["spinsRemainingToday"] == 9
    assert body["nextSpinAllowedAt"] is not None


def test_second_spin_hits_cooldown(api) -> None:
    api.post(SPIN_URL, json={"sessionId": "sess-1"})

    response = api.post(SPIN_URL, json={"sessionId": "sess-1"})

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "300"
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert body["error"]["retryable"] is True
    assert body["error"]["details"]["reason"] == "cooldown"
    assert body["error"]["details"]["cooldownRemainingMs"] == 300_000


def test_callers_behind_one_address_do_not_share_limits(api) -> None:
    shared = _client_from("10.0.0.5")

    first = shared.post(SPIN_URL, json={"sessionId": "visitor-1"})
    second = shared.post(SPIN_URL, json={"sessionId": "visitor-2"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["spinsRemainingToday"] == 9


def test_connection_address_is_not_stored_as_the_user_ip(api, store) -> None:
    _client_from("10.0.0.5").post(SPIN_URL, json={"sessionId": "visitor-1"})

    assert store.list_all()[0].user_ip is None


def test_missing_session_id_is_a_400(api) -> None:
    response = api.post(SPIN_URL, json={"userIp": "203.0.113.7"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "validation_error"
    assert error["details"][0]["field"] == "sessionId"


def test_blank_session_id_is_a_400(api) -> None:
    response = api.post(SPIN_URL, json={"sessionId": "   "})

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["code"] == "REQUIRED"


def test_invalid_ip_is_a_400(api) -> None:
    response = api.post(SPIN_URL, json={"sessionId": "sess-1", "userIp": "999.1.1.1"})

    assert response.status_code == 400
    assert response.json()["error"]["details"][0] == {
        "field": "userIp",
        "message": "User IP must be a valid IPv4 address",
        "code": "INVALID_IP",
    }


def test_disabled_wheel_is_a_503(api, store, winning_selector, clock) -> None:
    app.dependency_overrides[get_spin_service] = lambda: SpinService(
        store, winning_selector, clock, wheel_enabled=False
    )

    response = api.post(SPIN_URL, json={"sessionId": "sess-1"})

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "WHEEL_DISABLED"


def test_wheel_config(api) -> None:
    body = api.get("/api/v1/wheel/config").json()

    assert body["isEnabled"] is True
    assert body["maxSpinsPerSession"] == 3
    assert body["maxSpinsPerDay"] == 10
    assert body["cooldownBetweenSpins"] == 300_000
    assert body["minDiscount"] == 5
    assert body["maxDiscount"] == 50
    assert [section["section"] for section in body["sections"]][-1] == "TRY_AGAIN"
    assert sum(section["probability"] for section in body["sections"]) == pytest.approx(100)


def test_history_after_a_spin(api) -> None:
    api.post(SPIN_URL, json={"sessionId": "sess-1", "userId": "user-1"})

    body = api.get("/api/v1/wheel/history/sess-1", params={"userId": "user-1"}).json()

    assert body["sessionId"] == "sess-1"
    assert body["totalSpins"] == 1
    assert body["totalWins"] == 1
    assert body["totalDiscountEarned"] == 5
    assert body["canSpin"] is False
    assert body["spinsRemainingToday"] == 9
    assert body["spins"][0]["expiresAt"] is not None


def test_stats(api) -> None:
    api.post(SPIN_URL, json={"sessionId": "sess-1"})
    api.post(SPIN_URL, json={"sessionId": "sess-2"})

    body = api.get("/api/v1/wheel/stats").json()

    assert body["totalSpins"] == 2
    assert body["winRate"] == 100.0
    assert body["averageDiscount"] == 5.0
    assert body["sectionCounts"]["DISCOUNT_5"] == 2
    assert body["uniqueSessions"] == 2


def test_stats_within_a_time_window(api, clock) -> None:
    api.post(SPIN_URL, json={"sessionId": "sess-1"})
    clock.advance(hours=2)
    api.post(SPIN_URL, json={"sessionId": "sess-2"})

    body = api.get("/api/v1/wheel/stats", params={"from": "2025-03-10T13:00:00Z"}).json()
    naive = api.get("/api/v1/wheel/stats", params={"to": "2025-03-10T13:00:00"}).json()

    assert body["totalSpins"] == 1
    assert naive["totalSpins"] == 1


def test_stats_with_an_inverted_window_is_a_400(api) -> None:
    response = api.get(
        "/api/v1/wheel/stats",
        params={"from": "2025-03-10T13:00:00Z", "to": "2025-03-10T12:00:00Z"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["code"] == "INVALID_RANGE"


def test_reset_requires_the_admin_key(api) -> None:
    api.post(SPIN_URL, json={"sessionId": "sess-1"})

    denied = api.post("/api/v1/wheel/reset", json={"sessionId": "sess-1", "adminKey": "guess"})
    assert denied.status_code == 403

    allowed = api.post("/api/v1/wheel/reset", json={"sessionId": "sess-1", "adminKey": ADMIN_KEY})
    assert allowed.status_code == 200
    assert allowed.json()["excludedSpins"] == 1

    # Reset clears the cooldown as well as the caps.
    assert api.post(SPIN_URL, json={"sessionId": "sess-1"}).status_code == 200


def test_validate_code(api) -> None:
    valid = api.post("/api/v1/discounts/validate", json={"code": "intel25abc"}).json()
    invalid = api.post("/api/v1/discounts/validate", json={"code": "INTEL99ABC"}).json()

    assert valid["valid"] is True
    assert valid["percentage"] == 25
    assert invalid["valid"] is False
    assert invalid["reason"] == "invalid_percentage"


def test_redeem_twice(api) -> None:
    code = api.post(SPIN_URL, json={"sessionId": "sess-1"}).json()["discountCode"]

    first = api.post("/api/v1/discounts/redeem", json={"code": code})
    second = api.post("/api/v1/discounts/redeem", json={"code": code})

    assert first.status_code == 200
    assert first.json()["redeemed"] is True
    assert first.json()["discountPercentage"] == 5
    assert second.status_code == 200
    assert second.json()["redeemed"] is False
    assert second.json()["reason"] == "already_redeemed"


def test_redeem_unknown_code(api) -> None:
    body = api.post("/api/v1/discounts/redeem", json={"code": "INTEL10DEADBEEF"}).json()

    assert body["redeemed"] is False
    assert body["reason"] == "not_found"
