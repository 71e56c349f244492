"""Tests for work request verification."""

import pytest
from sqlalchemy.exc import OperationalError

from crosslink.app.db.dependencies import get_work_request_lookup
from crosslink.app.exceptions import MalformedIdentifierError, MissingIdentifierError
from crosslink.app.services.verification import (
    VerificationResult,
    extract_work_request_id,
    parse_work_request_id,
    verify_work_request,
)

from conftest import API_KEY, FakeWorkRequestLookup, make_work_request

VERIFY_URL = "/api/external/work-requests/verify"
HEADERS = {"X-API-Key": API_KEY}


class TestParseWorkRequestId:
    """Identifier validation."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(42, 42), ("42", 42), (" 7 ", 7), (0, 0), ("0", 0), (12.0, 12)],
    )
    def test_valid(self, raw, expected):
        assert parse_work_request_id(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        with pytest.raises(MissingIdentifierError) as exc_info:
            parse_work_request_id(raw)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "work_request_id is required"

    @pytest.mark.parametrize("raw", ["abc", "12.5", "4e2", "12abc", True, [1], 12.5, "١٢", "9" * 5000])
    def test_malformed(self, raw):
        with pytest.raises(MalformedIdentifierError) as exc_info:
            parse_work_request_id(raw)
        assert exc_info.value.message == "Invalid work_request_id format"

    def test_alias(self):
        assert extract_work_request_id({"workRequestId": 5}) == 5
        assert extract_work_request_id({"work_request_id": 6, "workRequestId": 5}) == 6
        assert extract_work_request_id({}) is None


class TestVerifyService:
    """verify_work_request against an in-memory lookup."""

    @pytest.mark.asyncio
    async def test_existing(self, lookup):
        result = await verify_work_request(lookup, "42")
        assert result.exists is True
        assert result.valid is True
        assert result.error is None
        assert result.data.id == 42
        assert result.data.complaint_type == "Drainage"
        assert lookup.calls == [42]

    @pytest.mark.asyncio
    async def test_not_found(self, lookup):
        result = await verify_work_request(lookup, "999999")
        assert result == VerificationResult(exists=False, valid=False, data=None)

    @pytest.mark.asyncio
    async def test_malformed_never_looks_up(self, lookup):
        with pytest.raises(MalformedIdentifierError):
            await verify_work_request(lookup, "abc")
        assert lookup.calls == []

    @pytest.mark.asyncio
    async def test_summary_excludes_other_columns(self, lookup):
        result = await verify_work_request(lookup, 42)
        dumped = result.data.model_dump()
        assert "address" not in dumped
        assert "contact_number" not in dumped

    @pytest.mark.asyncio
    async def test_repeated_calls_identical(self, lookup):
        first = await verify_work_request(lookup, 42)
        second = await verify_work_request(lookup, "42")
        assert first == second


class TestVerifyEndpoint:
    """POST /api/external/work-requests/verify."""

    def test_existing(self, client, lookup):
        resp = client.post(VERIFY_URL, json={"work_request_id": 42}, headers=HEADERS)

        assert resp.status_code == 200
        body = resp.json()
        assert body["exists"] is True
        assert body["valid"] is True
        assert body["error"] is None
        assert body["data"] == {
            "id": 42,
            "description": "Blocked storm drain",
            "status": "In Progress",
            "status_id": 2,
            "request_date": "2024-03-01T09:30:00",
            "created_date": "2024-03-01T09:45:00",
            "complaint_type": "Drainage",
        }
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "2"
        assert "X-Request-ID" in resp.headers

    def test_camel_case_alias(self, client):
        resp = client.post(VERIFY_URL, json={"workRequestId": "42"}, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["exists"] is True

    def test_not_found(self, client):
        resp = client.post(VERIFY_URL, json={"work_request_id": "999999"}, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {"exists": False, "valid": False, "data": None, "error": None}

    def test_malformed_id(self, client, lookup):
        resp = client.post(VERIFY_URL, json={"work_request_id": "abc"}, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid work_request_id format"}
        assert lookup.calls == []

    def test_oversized_id(self, client, lookup):
        resp = client.post(VERIFY_URL, json={"work_request_id": "9" * 5000}, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid work_request_id format"}
        assert lookup.calls == []

    @pytest.mark.parametrize("payload", [{}, {"work_request_id": ""}, {"work_request_id": None}])
    def test_missing_id(self, client, payload, lookup):
        resp = client.post(VERIFY_URL, json=payload, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json() == {"error": "work_request_id is required"}
        assert lookup.calls == []

    def test_non_object_body(self, client):
        resp = client.post(VERIFY_URL, content=b"not json", headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json() == {"error": "work_request_id is required"}

        resp = client.post(VERIFY_URL, json=[42], headers=HEADERS)
        assert resp.status_code == 400

    def test_database_error(self, client, lookup):
        lookup.error = OperationalError("SELECT 1", {}, Exception("connection lost"))
        resp = client.post(VERIFY_URL, json={"work_request_id": 42}, headers=HEADERS)
        assert resp.status_code == 500
        assert resp.json() == {"exists": False, "valid": False, "error": "Internal server error"}
        assert "X-RateLimit-Limit" not in resp.headers

    def test_requires_key(self, client, lookup):
        resp = client.post(VERIFY_URL, json={"work_request_id": 42})
        assert resp.status_code == 401
        assert lookup.calls == []

    def test_idempotent_within_budget(self, client):
        bodies = [
            client.post(VERIFY_URL, json={"work_request_id": 42}, headers=HEADERS).json()
            for _ in range(3)
        ]
        assert bodies[0] == bodies[1] == bodies[2]

        resp = client.post(VERIFY_URL, json={"work_request_id": 42}, headers=HEADERS)
        assert resp.status_code == 429

    def test_date_only_columns(self, app, client):
        row = make_work_request(7)
        row["request_date"] = row["request_date"].date()
        row["created_date"] = None
        app.dependency_overrides.clear()
        app.dependency_overrides[get_work_request_lookup] = lambda: FakeWorkRequestLookup({7: row})
        resp = client.post(VERIFY_URL, json={"work_request_id": 7}, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["data"]["request_date"] == "2024-03-01"
        assert resp.json()["data"]["created_date"] is None
