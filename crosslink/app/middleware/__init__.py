"""Middleware package for crosslink."""

from crosslink.app.middleware.access import AccessGateway, ExternalAccessMiddleware
from crosslink.app.middleware.auth import validate_credential
from crosslink.app.middleware.rate_limit import FixedWindowRateLimiter
from crosslink.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "AccessGateway",
    "ExternalAccessMiddleware",
    "FixedWindowRateLimiter",
    "RequestIdMiddleware",
    "get_request_id",
    "validate_credential",
]
