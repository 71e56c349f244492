"""API endpoints package for crosslink."""

from crosslink.app.api.external import router as external_router

__all__ = [
    "external_router",
]
