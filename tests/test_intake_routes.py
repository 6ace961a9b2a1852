"""Tests for the intake API routes and their preset rate limits."""

import pytest
from fastapi.testclient import TestClient

from throttlegate.core.config import AppSettings, settings
from throttlegate.core.rate_limit import (
    RateLimiter,
    build_preset_limiters,
    email_key_generator,
    get_store,
    ip_key_generator,
    rate_limiters,
)
from throttlegate.main import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def registration_payload() -> dict:
    return {"name": "Ada Lovelace", "email": "ada@example.com", "password": "correct-horse"}


@pytest.fixture
def support_payload() -> dict:
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "subject": "Cannot download report",
        "description": "The download button does nothing when clicked.",
        "urgency": "medium",
        "category": "technical",
    }


@pytest.fixture
def sales_payload() -> dict:
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "organization": "Analytical Engines Ltd",
        "organizationSize": "11-50",
        "interestedModules": ["k12", "post-secondary"],
        "message": "We would like a demo for our district.",
        "inquiryType": "demo",
    }


class TestPresetLimiters:
    def test_all_presets_are_limiters(self) -> None:
        for preset in (
            rate_limiters.registration,
            rate_limiters.resend_verification,
            rate_limiters.support,
            rate_limiters.sales,
        ):
            assert isinstance(preset, RateLimiter)
            assert preset.policy.window_ms == 60 * 60 * 1000

    def test_preset_limits_and_identities(self) -> None:
        assert rate_limiters.registration.policy.limit == 5
        assert rate_limiters.registration.policy.key_generator is ip_key_generator
        assert rate_limiters.resend_verification.policy.limit == 3
        assert rate_limiters.resend_verification.policy.key_generator is email_key_generator
        assert rate_limiters.support.policy.limit == 10
        assert rate_limiters.sales.policy.limit == 10

    def test_presets_follow_configuration(self) -> None:
        cfg = AppSettings(
            registration_rate_limit=2,
            resend_verification_rate_limit=1,
            support_sales_rate_limit=4,
            rate_limit_window_seconds=60,
        )

        presets = build_preset_limiters(cfg)

        assert presets.registration.policy.limit == 2
        assert presets.resend_verification.policy.limit == 1
        assert presets.support.policy.limit == 4
        assert presets.sales.policy.limit == 4
        assert presets.sales.policy.window_ms == 60_000


class TestRegistration:
    def test_allows_five_then_throttles(self, client, registration_payload) -> None:
        for expected_remaining in ("4", "3", "2", "1", "0"):
            resp = client.post("/api/auth/register", json=registration_payload)
            assert resp.status_code == 201
            assert resp.headers["X-RateLimit-Remaining"] == expected_remaining

        blocked = client.post("/api/auth/register", json=registration_payload)

        assert blocked.status_code == 429
        assert "registration" in blocked.json()["message"]
        assert "X-Request-ID" in blocked.headers

    def test_invalid_payload_is_rejected(self, client) -> None:
        resp = client.post("/api/auth/register", json={"email": "not-an-email"})

        assert resp.status_code == 422


class TestResendVerification:
    def test_limits_per_email(self, client) -> None:
        for _ in range(3):
            resp = client.post("/api/auth/resend-verification", json={"email": "test@example.com"})
            assert resp.status_code == 202

        blocked = client.post("/api/auth/resend-verification", json={"email": "test@example.com"})
        assert blocked.status_code == 429
        assert "verification" in blocked.json()["message"]

        other = client.post("/api/auth/resend-verification", json={"email": "other@example.com"})
        assert other.status_code == 202
        assert other.headers["X-RateLimit-Remaining"] == "2"

    def test_invalid_payload_is_counted_and_carries_headers(self, client) -> None:
        resp = client.post("/api/auth/resend-verification", json={"email": "not-an-email"})

        assert resp.status_code == 422
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "2"
        assert resp.headers["X-RateLimit-Reset"].endswith("Z")
        assert get_store().get("/api/auth/resend-verification:email:not-an-email").count == 1


class TestSupportAndSales:
    def test_support_throttles_after_ten(self, client, support_payload) -> None:
        for _ in range(10):
            assert client.post("/api/support/request", json=support_payload).status_code == 201

        blocked = client.post("/api/support/request", json=support_payload)

        assert blocked.status_code == 429
        assert blocked.json()["message"] == "Too many support requests. Please try again in an hour."

    def test_sales_counter_is_separate_from_support(self, client, support_payload, sales_payload) -> None:
        for _ in range(10):
            client.post("/api/support/request", json=support_payload)
        assert client.post("/api/support/request", json=support_payload).status_code == 429

        resp = client.post("/api/sales/inquiry", json=sales_payload)

        assert resp.status_code == 201
        assert resp.headers["X-RateLimit-Remaining"] == "9"

    def test_sales_validation(self, client, sales_payload) -> None:
        sales_payload["interestedModules"] = []

        assert client.post("/api/sales/inquiry", json=sales_payload).status_code == 422


class TestRateLimitSwitch:
    def test_disabled_presets_admit_everything(self, client, registration_payload, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

        for _ in range(7):
            resp = client.post("/api/auth/register", json=registration_payload)
            assert resp.status_code == 201
            assert "X-RateLimit-Limit" not in resp.headers


def test_health_is_not_limited(client) -> None:
    for _ in range(20):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers
