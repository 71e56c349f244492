"""Access gateway for cross-system endpoints.

Every request under the protected prefix passes the API key check and then
the rate limiter before any route code runs. Key validation comes first so a
bad key never uses up a rate limit slot.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from crosslink.app.core.config import AccessSettings, load_access_settings
from crosslink.app.core.logging import credential_fingerprint, get_log_context, get_logger
from crosslink.app.exceptions import (
    CredentialInvalidError,
    CredentialMissingError,
    CrosslinkException,
    RateLimitExceededError,
    ServerMisconfiguredError,
)
from crosslink.app.middleware.auth import (
    CREDENTIAL_REQUIRED,
    CredentialOutcome,
    get_api_key,
    is_development_bypass,
    is_loopback_request,
    validate_credential,
)
from crosslink.app.middleware.rate_limit import FixedWindowRateLimiter, RateLimitSnapshot

logger = get_logger(__name__)


@dataclass(frozen=True)
class Admission:
    """A request that passed the gateway."""
    credential: Optional[str]


class AccessGateway:
    """Composes API key validation and rate limiting into one decision.

    The limiter is owned by the gateway and injected at construction; the
    settings loader is called on every request so key rotation applies
    without a restart.
    """

    def __init__(
        self,
        limiter: FixedWindowRateLimiter,
        settings_loader: Callable[[], AccessSettings] = load_access_settings,
    ):
        self.limiter = limiter
        self._settings_loader = settings_loader

    async def admit(self, headers: Headers, request_id: Optional[str] = None) -> Admission:
        """Check a request's key and count it against its window.

        Raises:
            CredentialMissingError: No key presented
            CredentialInvalidError: Key does not match
            ServerMisconfiguredError: No key configured outside development
            RateLimitExceededError: Window is full
        """
        access = self._settings_loader()
        credential = get_api_key(headers)
        loopback = is_loopback_request(headers)
        bypass = is_development_bypass(credential, loopback, access.is_development)
        log_context = get_log_context(
            request_id=request_id,
            credential_id=credential_fingerprint(credential),
        )

        decision = validate_credential(
            credential, loopback, access.is_development, access.expected_api_key
        )
        if decision.outcome is CredentialOutcome.MISCONFIGURED:
            logger.error(
                "EXTERNAL_API_KEY (or VIDEO_ARCHIVING_API_KEY) is not set; "
                "refusing cross-system request",
                extra=log_context,
            )
            raise ServerMisconfiguredError()
        if decision.outcome is CredentialOutcome.DENY:
            logger.info(f"Rejected cross-system request: {decision.reason}", extra=log_context)
            if decision.reason == CREDENTIAL_REQUIRED:
                raise CredentialMissingError()
            raise CredentialInvalidError()

        if credential and access.expected_api_key is None:
            logger.warning(
                "EXTERNAL_API_KEY (or VIDEO_ARCHIVING_API_KEY) is not set; "
                "allowing request in development mode",
                extra=log_context,
            )

        result = await self.limiter.admit(credential, bypass=bypass)
        if not result.allowed:
            logger.info("Rate limit exceeded", extra=log_context)
            raise RateLimitExceededError(limit=result.limit, reset_at=result.reset_at)

        return Admission(credential=credential)

    def snapshot(self, admission: Admission) -> RateLimitSnapshot:
        return self.limiter.peek(admission.credential)


class ExternalAccessMiddleware(BaseHTTPMiddleware):
    """Middleware to guard cross-system endpoints.

    Requests outside ``protected_prefixes`` are passed through untouched.
    Rejections are answered here as ``{"error": ...}`` responses; admitted
    requests that succeed get X-RateLimit-* headers.
    """

    def __init__(
        self,
        app,
        gateway: AccessGateway,
        protected_prefixes: Sequence[str] = ("/api/external",),
    ):
        super().__init__(app)
        self.gateway = gateway
        self.protected_prefixes = tuple(p.rstrip("/") for p in protected_prefixes)

    def _is_protected(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self.protected_prefixes
        )

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request through the gateway."""
        if not self._is_protected(request.url.path):
            return await call_next(request)

        request_id = getattr(request.state, "request_id", None)
        try:
            admission = await self.gateway.admit(request.headers, request_id=request_id)
        except RateLimitExceededError as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response(),
                headers=exc.headers(),
            )
        except CrosslinkException as exc:
            return JSONResponse(status_code=exc.status_code, content=exc.to_response())

        request.state.admission = admission
        response = await call_next(request)

        if response.status_code < 400:
            response.headers.update(self.gateway.snapshot(admission).headers())

        return response
