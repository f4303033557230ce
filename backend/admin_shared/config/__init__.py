"""
Configuration module: Settings, logging, constants.
"""

from admin_shared.config.settings import settings, get_settings, DATABASE_URL
from admin_shared.config.logging import get_logger, setup_logging
from admin_shared.config.constants import (
    Roles,
    Actions,
    OrderDirection,
    Params,
    Limits,
    MANAGEMENT_ROLES,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "Roles",
    "Actions",
    "OrderDirection",
    "Params",
    "Limits",
    "MANAGEMENT_ROLES",
]
