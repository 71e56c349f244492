"""Core utilities for the crosslink application."""

from crosslink.app.core.config import (
    AccessSettings,
    Settings,
    load_access_settings,
    settings,
)
from crosslink.app.core.logging import get_logger, setup_logging

__all__ = [
    "AccessSettings",
    "Settings",
    "load_access_settings",
    "settings",
    "get_logger",
    "setup_logging",
]
