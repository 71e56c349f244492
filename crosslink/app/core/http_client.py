"""Shared HTTP client management for outbound peer calls.

The shared client is opened in the application lifespan and reused by the
peer clients for connection pooling. Every client created here carries a
bounded timeout; nothing in crosslink waits on a peer indefinitely.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from crosslink.app.core.config import settings


_shared_http_client: httpx.AsyncClient | None = None


def _default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


def _default_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )


def get_http_client() -> httpx.AsyncClient | None:
    """Return the shared HTTP client, or None outside the app lifespan."""
    return _shared_http_client


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client.

    Used in the FastAPI lifespan:

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client():
                yield
    """
    global _shared_http_client

    _shared_http_client = httpx.AsyncClient(
        timeout=_default_timeout(), limits=_default_limits()
    )

    try:
        yield _shared_http_client
    finally:
        if _shared_http_client is not None:
            await _shared_http_client.aclose()
            _shared_http_client = None


def create_http_client(**kwargs) -> httpx.AsyncClient:
    """Create a new HTTP client with default settings.

    The returned client should be closed when done:
        async with create_http_client() as client:
            ...

    Args:
        **kwargs: Overrides. ``timeout`` sets a single overall timeout;
            ``transport`` replaces the network transport (tests).
    """
    timeout_override = kwargs.get("timeout")
    if timeout_override is not None:
        timeout = httpx.Timeout(timeout_override)
    else:
        timeout = _default_timeout()

    config = {
        "timeout": timeout,
        "limits": _default_limits(),
    }
    if kwargs.get("transport") is not None:
        config["transport"] = kwargs["transport"]
    return httpx.AsyncClient(**config)
