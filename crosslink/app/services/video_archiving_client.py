"""Client for the video-archiving system's cross-system API.

Used by the e-filing side to search work requests and to verify a work
request ID before linking a file to it.
"""

from typing import Any, Optional

import httpx

from crosslink.app.core.config import Settings, settings as default_settings
from crosslink.app.core.utils import is_numeric_id
from crosslink.app.exceptions import MalformedIdentifierError, MissingIdentifierError
from crosslink.app.services.peer_client import PeerClient, failure_envelope
from crosslink.app.services.verification import WORK_REQUEST_ID_FIELD, parse_work_request_id

SEARCH_SCOPE = "efiling"
DEFAULT_SEARCH_LIMIT = 100
MAX_SEARCH_LIMIT = 500


def _page_number(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if not is_numeric_id(value):
        raise ValueError(f"not an integer: {value!r}")
    return int(value.strip()) if isinstance(value, str) else int(value)


def _verification_failure(message: str) -> dict[str, Any]:
    return {
        "success": False,
        "exists": False,
        "valid": False,
        "data": None,
        "error": message,
    }


class VideoArchivingClient(PeerClient):
    """Work requests from video archiving."""

    peer_name = "video_archiving"

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "VideoArchivingClient":
        settings = settings or default_settings
        return cls(
            base_url=settings.video_archiving_api_url,
            api_key=settings.video_archiving_api_key,
            timeout=settings.peer_timeout,
            http_client=http_client,
        )

    async def search_work_requests(
        self,
        search: Optional[str] = None,
        status: Optional[Any] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> dict[str, Any]:
        """Search work requests.

        Args:
            search: Free-text filter
            status: Status ID or status name
            limit: Page size, 100 by default, clamped to 1..500
            offset: Pagination offset
        """
        try:
            page_size = _page_number(limit)
            page_offset = _page_number(offset)
        except ValueError:
            return failure_envelope("limit and offset must be integers")

        query_params: dict[str, Any] = {"scope": SEARCH_SCOPE}
        if search:
            query_params["search"] = search
        if status:
            query_params["status"] = str(status)
        if page_size:
            query_params["limit"] = min(max(page_size, 1), MAX_SEARCH_LIMIT)
        else:
            query_params["limit"] = DEFAULT_SEARCH_LIMIT
        if page_offset and page_offset > 0:
            query_params["offset"] = page_offset
        return await self.call("/work-requests", query_params=query_params)

    async def get_work_request_by_id(self, work_request_id: Optional[Any]) -> dict[str, Any]:
        if not work_request_id:
            return failure_envelope("Work request ID is required")
        return await self.call(f"/work-requests/{work_request_id}")

    async def verify_work_request(self, work_request_id: Any) -> dict[str, Any]:
        """Confirm a work request exists on the video-archiving side.

        The ID is checked locally first; a missing or non-numeric ID never
        reaches the network.

        Returns:
            {"success", "exists", "valid", "data", "error"}
        """
        try:
            parsed_id = parse_work_request_id(work_request_id)
        except (MissingIdentifierError, MalformedIdentifierError) as exc:
            return _verification_failure(exc.message)

        envelope = await self.call(
            "/work-requests/verify",
            method="POST",
            body={WORK_REQUEST_ID_FIELD: parsed_id},
        )
        if not envelope["success"]:
            return _verification_failure(envelope["error"] or "Verification failed")

        exists = bool(envelope.get("exists"))
        return {
            "success": True,
            "exists": exists,
            "valid": bool(envelope.get("valid")),
            "data": envelope.get("data") if exists else None,
            "error": envelope.get("error"),
        }

    async def test_connection(self) -> bool:
        result = await self.search_work_requests(limit=1)
        return result["success"] is True
