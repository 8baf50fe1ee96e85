"""Core infrastructure: configuration, logging, variables, caching."""

from chainlook.core.config import ChainlookSettings, load_settings
from chainlook.core.logging import configure_logging, get_logger
from chainlook.core.variables import MISSING, apply_variables

__all__ = [
    "MISSING",
    "ChainlookSettings",
    "apply_variables",
    "configure_logging",
    "get_logger",
    "load_settings",
]
