"""Outbound client for the peer system's cross-system API.

Both sides of the integration call each other through this client. Callers
always get an envelope back and check ``success``; transport errors,
timeouts, error statuses and unreadable payloads never propagate as
exceptions.

Success:  {"success": True, "data": <payload["data"] or payload>, ...payload}
          (the whole payload is used when "data" is absent or null)
Failure:  {"success": False, "error": <message>, "data": None}
"""

import asyncio
from typing import Any, Mapping, Optional

import httpx

from crosslink.app.core.http_client import create_http_client, get_http_client
from crosslink.app.core.logging import get_log_context, get_logger
from crosslink.app.exceptions import (
    ClientError,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from crosslink.app.middleware.auth import API_KEY_HEADER

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


def failure_envelope(message: str) -> dict[str, Any]:
    return {"success": False, "error": message or "Unknown error", "data": None}


def success_envelope(payload: Any) -> dict[str, Any]:
    """Wrap a peer payload, accepting both data-wrapped and flat shapes."""
    if isinstance(payload, Mapping):
        data = payload.get("data")
        if data is None:
            data = payload
        return {**payload, "success": True, "data": data}
    return {"success": True, "data": payload}


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class PeerClient:
    """Calls one peer system's gateway-protected endpoints.

    The shared pooled client from the app lifespan is used when available;
    otherwise a short-lived client is opened per call. Every call is bounded
    by ``timeout`` seconds.
    """

    peer_name = "peer"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Peer API root, e.g. http://localhost:5000/api/external
            api_key: Sent as X-API-Key when non-empty
            timeout: Upper bound in seconds for each call
            http_client: Explicit client to use instead of the shared one
            transport: Transport for per-call clients (tests)
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client
        self._transport = transport

    def build_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    @staticmethod
    def build_params(query_params: Optional[Mapping[str, Any]]) -> dict[str, str]:
        """Drop unset values and render the rest as query strings."""
        if not query_params:
            return {}
        return {
            key: _query_value(value)
            for key, value in query_params.items()
            if value is not None and value != ""
        }

    def build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        return headers

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        query_params: Optional[Mapping[str, Any]] = None,
        body: Optional[Any] = None,
    ) -> dict[str, Any]:
        """Call a peer endpoint and return an envelope.

        Args:
            endpoint: Path below base_url, e.g. "/divisions"
            method: HTTP method
            query_params: Appended as a query string
            body: Sent as JSON for methods other than GET

        Returns:
            Success or failure envelope; never raises for peer failures
        """
        method = method.upper()
        try:
            payload = await self._send(endpoint, method, query_params, body)
        except ClientError as exc:
            logger.warning(
                f"{self.peer_name} API error ({endpoint}): {exc.message}",
                extra=get_log_context(
                    peer=self.peer_name,
                    path=endpoint,
                    status_code=getattr(exc, "upstream_status", None),
                ),
            )
            return failure_envelope(exc.message)
        except Exception as exc:
            logger.exception(
                f"Unexpected error calling {self.peer_name} API ({endpoint})",
                extra=get_log_context(peer=self.peer_name, path=endpoint),
            )
            return failure_envelope(str(exc))

        return success_envelope(payload)

    async def _send(
        self,
        endpoint: str,
        method: str,
        query_params: Optional[Mapping[str, Any]],
        body: Optional[Any],
    ) -> Any:
        request_kwargs: dict[str, Any] = {
            "params": self.build_params(query_params),
            "headers": self.build_headers(),
            "timeout": self.timeout,
        }
        if body is not None and method != "GET":
            request_kwargs["json"] = body

        url = self.build_url(endpoint)
        try:
            # httpx timeouts are per phase; this deadline covers the whole exchange
            async with asyncio.timeout(self.timeout):
                client = self._http_client or get_http_client()
                if client is not None:
                    response = await client.request(method, url, **request_kwargs)
                else:
                    async with create_http_client(
                        timeout=self.timeout, transport=self._transport
                    ) as owned:
                        response = await owned.request(method, url, **request_kwargs)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamUnavailableError(
                f"Request to {self.peer_name} timed out after {self.timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(
                f"Could not reach {self.peer_name}: {str(exc) or type(exc).__name__}"
            ) from exc

        if not response.is_success:
            raise UpstreamUnavailableError(
                self._error_message(response), upstream_status=response.status_code
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamMalformedError(
                f"Invalid JSON response from {self.peer_name}"
            ) from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error_data = response.json()
        except ValueError:
            return "Unknown error"
        if isinstance(error_data, Mapping) and error_data.get("error"):
            return str(error_data["error"])
        return f"API request failed with status {response.status_code}"

    def get_api_config(self) -> dict[str, Any]:
        """Describe the client's configuration without revealing the key."""
        return {
            "api_url": self.base_url,
            "has_api_key": bool(self.api_key),
            "api_key_set": "***" if self.api_key else "Not set",
            "timeout": self.timeout,
        }
