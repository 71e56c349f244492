from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crosslink.app.api.external import router as external_router
from crosslink.app.core.config import AccessSettings, load_access_settings, settings
from crosslink.app.core.http_client import init_http_client
from crosslink.app.core.logging import get_logger, setup_logging
from crosslink.app.db.async_session import close_async_engine
from crosslink.app.exceptions import CrosslinkException
from crosslink.app.middleware.access import AccessGateway, ExternalAccessMiddleware
from crosslink.app.middleware.rate_limit import FixedWindowRateLimiter
from crosslink.app.middleware.request_id import RequestIdMiddleware, get_request_id


def create_app(
    limiter: Optional[FixedWindowRateLimiter] = None,
    settings_loader: Callable[[], AccessSettings] = load_access_settings,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        limiter: Rate limit store for this app; one is created from settings
            when omitted
        settings_loader: Source of per-request access settings

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    if limiter is None:
        limiter = FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    gateway = AccessGateway(limiter, settings_loader=settings_loader)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Open the shared HTTP client for peer calls; dispose the DB pool on exit."""
        async with init_http_client() as http_client:
            logger.info(
                "Application startup complete",
                extra={
                    "environment": settings.app_env,
                    "rate_limit": f"{limiter.max_requests}/{limiter.window_seconds}s",
                },
            )
            yield {"http_client": http_client}

        await close_async_engine()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Crosslink",
        description="Cross-system API between e-filing and video archiving",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(
        ExternalAccessMiddleware,
        gateway=gateway,
        protected_prefixes=(settings.protected_path_prefix,),
    )

    app.add_middleware(RequestIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
        max_age=600,
    )

    app.include_router(external_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness check; reports whether an inbound API key is configured."""
        access = settings_loader()
        return {
            "status": "ok",
            "environment": access.app_env,
            "api_key_configured": access.expected_api_key is not None,
        }

    @app.exception_handler(CrosslinkException)
    async def crosslink_exception_handler(request: Request, exc: CrosslinkException) -> JSONResponse:
        """Render crosslink errors as {"error": message}."""
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        The traceback is only logged. In debug mode the exception message is
        returned as well.
        """
        request_id = get_request_id(request)

        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )

        content: dict[str, Any] = {
            "error": "Internal server error",
            "request_id": request_id,
        }
        if settings.debug:
            content["message"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
