"""Shared fixtures for crosslink tests."""

from datetime import datetime
from typing import Any, Mapping, Optional

import pytest
from fastapi.testclient import TestClient

from crosslink.app.core.config import AccessSettings
from crosslink.app.db.dependencies import get_work_request_lookup
from crosslink.app.main import create_app
from crosslink.app.middleware.rate_limit import FixedWindowRateLimiter

API_KEY = "test-secret-key"
START_TIME = 1_700_000_000.0  # 2023-11-14T22:13:20Z


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWorkRequestLookup:
    """In-memory work request summaries."""

    def __init__(self, rows: Optional[Mapping[int, Mapping[str, Any]]] = None):
        self.rows = dict(rows or {})
        self.calls: list[int] = []
        self.error: Optional[Exception] = None

    async def fetch_summary(self, work_request_id: int) -> Optional[Mapping[str, Any]]:
        self.calls.append(work_request_id)
        if self.error is not None:
            raise self.error
        return self.rows.get(work_request_id)


class MutableAccessSettings:
    """Settings loader whose values tests can change between requests."""

    def __init__(self, api_key: str = API_KEY, app_env: str = "production"):
        self.api_key = api_key
        self.app_env = app_env
        self.loads = 0

    def __call__(self) -> AccessSettings:
        self.loads += 1
        return AccessSettings(
            _env_file=None,
            external_api_key=self.api_key,
            app_env=self.app_env,
        )


def make_work_request(work_request_id: int = 42) -> dict[str, Any]:
    return {
        "id": work_request_id,
        "description": "Blocked storm drain",
        "status_id": 2,
        "status": "In Progress",
        "request_date": datetime(2024, 3, 1, 9, 30),
        "created_date": datetime(2024, 3, 1, 9, 45),
        "complaint_type": "Drainage",
        # Not part of the summary; must never be returned
        "address": "12 Example Road",
        "contact_number": "0300-0000000",
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)


@pytest.fixture
def access_settings() -> MutableAccessSettings:
    return MutableAccessSettings()


@pytest.fixture
def lookup() -> FakeWorkRequestLookup:
    return FakeWorkRequestLookup({42: make_work_request(42)})


@pytest.fixture
def app(limiter, access_settings, lookup):
    application = create_app(limiter=limiter, settings_loader=access_settings)
    application.dependency_overrides[get_work_request_lookup] = lambda: lookup
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
