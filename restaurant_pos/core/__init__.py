"""
Core module initialization.
Exports configuration, logging utilities and service errors.
"""

from restaurant_pos.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from restaurant_pos.core.errors import POSError, NotFoundError, ConflictError, ValidationError

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "POSError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
]
