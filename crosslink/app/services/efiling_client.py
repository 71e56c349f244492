"""Client for the e-filing system's cross-system API.

Used by the video-archiving side to read divisions and zones.
"""

from typing import Any, Optional

import httpx

from crosslink.app.core.config import Settings, settings as default_settings
from crosslink.app.services.peer_client import PeerClient, failure_envelope


class EFilingClient(PeerClient):
    """Divisions and zones from e-filing."""

    peer_name = "efiling"

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "EFilingClient":
        settings = settings or default_settings
        return cls(
            base_url=settings.efiling_api_url,
            api_key=settings.efiling_api_key,
            timeout=settings.peer_timeout,
            http_client=http_client,
        )

    async def get_divisions(
        self,
        active: Optional[bool] = None,
        department_id: Optional[int] = None,
    ) -> dict[str, Any]:
        query_params: dict[str, Any] = {}
        if active is not None:
            query_params["active"] = bool(active)
        if department_id:
            query_params["department_id"] = department_id
        return await self.call("/divisions", query_params=query_params)

    async def get_division_by_id(self, division_id: Optional[int]) -> dict[str, Any]:
        if not division_id:
            return failure_envelope("Division ID is required")
        return await self.call("/divisions", query_params={"id": division_id})

    async def get_zones(self, active: Optional[bool] = None) -> dict[str, Any]:
        query_params: dict[str, Any] = {}
        if active is not None:
            query_params["active"] = bool(active)
        return await self.call("/zones", query_params=query_params)

    async def get_zone_by_id(self, zone_id: Optional[int]) -> dict[str, Any]:
        if not zone_id:
            return failure_envelope("Zone ID is required")
        return await self.call("/zones", query_params={"id": zone_id})

    async def test_connection(self) -> bool:
        result = await self.get_divisions(active=True)
        return result["success"] is True
