"""Tests for the access gateway middleware."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from crosslink.app.middleware.access import AccessGateway, ExternalAccessMiddleware
from crosslink.app.middleware.rate_limit import FixedWindowRateLimiter

from conftest import API_KEY, FakeClock, MutableAccessSettings

RESET_ISO = "2023-11-14T22:14:20.000Z"


def build_app(limiter, access_settings, handler_calls):
    app = FastAPI()
    gateway = AccessGateway(limiter, settings_loader=access_settings)
    app.add_middleware(ExternalAccessMiddleware, gateway=gateway)

    @app.get("/api/external/divisions")
    async def divisions():
        handler_calls.append("divisions")
        return {"data": [{"id": 1, "name": "North"}]}

    @app.get("/api/external/missing")
    async def missing():
        handler_calls.append("missing")
        return JSONResponse(status_code=404, content={"error": "Division not found"})

    @app.get("/public")
    async def public():
        handler_calls.append("public")
        return {"ok": True}

    return app


@pytest.fixture
def handler_calls():
    return []


@pytest.fixture
def gateway_client(limiter, access_settings, handler_calls):
    return TestClient(build_app(limiter, access_settings, handler_calls))


class TestCredentialRejections:
    """Requests stopped by the key check."""

    def test_missing_key_returns_401(self, gateway_client, handler_calls):
        resp = gateway_client.get("/api/external/divisions")
        assert resp.status_code == 401
        assert resp.json() == {"error": "API key required. Provide X-API-Key header."}
        assert handler_calls == []

    def test_invalid_key_returns_401(self, gateway_client, handler_calls):
        resp = gateway_client.get("/api/external/divisions", headers={"X-API-Key": "nope"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized - Invalid API key"}
        assert handler_calls == []

    def test_misconfigured_server_returns_500(self, gateway_client, access_settings, handler_calls):
        access_settings.api_key = ""
        resp = gateway_client.get("/api/external/divisions", headers={"X-API-Key": API_KEY})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Server configuration error"}
        assert handler_calls == []

    def test_invalid_keys_do_not_consume_rate_limit(self, gateway_client, limiter):
        for _ in range(10):
            resp = gateway_client.get("/api/external/divisions", headers={"X-API-Key": "bad"})
            assert resp.status_code == 401
        assert len(limiter) == 0

        resp = gateway_client.get("/api/external/divisions", headers={"X-API-Key": API_KEY})
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Remaining"] == "2"

    def test_header_name_case_insensitive(self, gateway_client):
        resp = gateway_client.get("/api/external/divisions", headers={"x-api-key": API_KEY})
        assert resp.status_code == 200


class TestAdmission:
    """Requests that pass."""

    def test_valid_key_reaches_handler_with_headers(self, gateway_client, handler_calls):
        resp = gateway_client.get("/api/external/divisions", headers={"X-API-Key": API_KEY})
        assert resp.status_code == 200
        assert resp.json() == {"data": [{"id": 1, "name": "North"}]}
        assert handler_calls == ["divisions"]
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "2"
        assert resp.headers["X-RateLimit-Reset"] == RESET_ISO

    def test_error_responses_not_decorated(self, gateway_client):
        resp = gateway_client.get("/api/external/missing", headers={"X-API-Key": API_KEY})
        assert resp.status_code == 404
        assert "X-RateLimit-Limit" not in resp.headers

    def test_unprotected_paths_pass_through(self, gateway_client, handler_calls, access_settings):
        resp = gateway_client.get("/public")
        assert resp.status_code == 200
        assert handler_calls == ["public"]
        assert "X-RateLimit-Limit" not in resp.headers
        assert access_settings.loads == 0

    def test_key_rotation_applies_without_restart(self, gateway_client, access_settings):
        headers = {"X-API-Key": API_KEY}
        assert gateway_client.get("/api/external/divisions", headers=headers).status_code == 200

        access_settings.api_key = "rotated-key"
        assert gateway_client.get("/api/external/divisions", headers=headers).status_code == 401
        resp = gateway_client.get("/api/external/divisions", headers={"X-API-Key": "rotated-key"})
        assert resp.status_code == 200


class TestRateLimiting:
    """Requests stopped by the limiter."""

    def test_limit_exceeded_returns_429(self, gateway_client, handler_calls):
        headers = {"X-API-Key": API_KEY}
        remaining = [
            gateway_client.get("/api/external/divisions", headers=headers).headers["X-RateLimit-Remaining"]
            for _ in range(3)
        ]
        assert remaining == ["2", "1", "0"]

        resp = gateway_client.get("/api/external/divisions", headers=headers)
        assert resp.status_code == 429
        assert resp.json() == {"error": "Rate limit exceeded", "resetAt": RESET_ISO}
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "0"
        assert resp.headers["X-RateLimit-Reset"] == RESET_ISO
        assert len(handler_calls) == 3

    def test_new_window_after_reset(self, gateway_client, clock):
        headers = {"X-API-Key": API_KEY}
        for _ in range(3):
            gateway_client.get("/api/external/divisions", headers=headers)
        assert gateway_client.get("/api/external/divisions", headers=headers).status_code == 429

        clock.advance(61)
        resp = gateway_client.get("/api/external/divisions", headers=headers)
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Remaining"] == "2"


class TestDevelopmentMode:
    """Development conveniences."""

    @pytest.fixture
    def dev_settings(self):
        return MutableAccessSettings(app_env="development")

    def test_loopback_without_key_bypasses_both_checks(self, dev_settings, handler_calls):
        limiter = FixedWindowRateLimiter(max_requests=1, clock=FakeClock())
        client = TestClient(
            build_app(limiter, dev_settings, handler_calls), base_url="http://localhost:3000"
        )
        for _ in range(5):
            resp = client.get("/api/external/divisions")
            assert resp.status_code == 200
            assert resp.headers["X-RateLimit-Limit"] == "1"
        assert len(limiter) == 0

    def test_remote_without_key_still_rejected(self, dev_settings, limiter, handler_calls):
        client = TestClient(build_app(limiter, dev_settings, handler_calls))
        assert client.get("/api/external/divisions").status_code == 401

    def test_loopback_with_wrong_key_rejected(self, dev_settings, limiter, handler_calls):
        client = TestClient(
            build_app(limiter, dev_settings, handler_calls), base_url="http://localhost:3000"
        )
        resp = client.get("/api/external/divisions", headers={"X-API-Key": "wrong"})
        assert resp.status_code == 401

    def test_unset_key_allowed_with_warning(self, limiter, handler_calls):
        dev_settings = MutableAccessSettings(api_key="", app_env="development")
        client = TestClient(build_app(limiter, dev_settings, handler_calls))
        with patch("crosslink.app.middleware.access.logger") as mock_logger:
            resp = client.get("/api/external/divisions", headers={"X-API-Key": "anything"})
        assert resp.status_code == 200
        mock_logger.warning.assert_called_once()
        assert len(limiter) == 1
