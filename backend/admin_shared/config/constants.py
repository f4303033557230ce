"""
Centralized constants for the resource admin backend.

Usage:
    from admin_shared.config.constants import Roles, Limits, OrderDirection

    if role in MANAGEMENT_ROLES:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """Admin user role constants."""

    ADMIN: Final[str] = "ADMIN"
    EDITOR: Final[str] = "EDITOR"
    VIEWER: Final[str] = "VIEWER"

    ALL: Final[list[str]] = [ADMIN, EDITOR, VIEWER]


MANAGEMENT_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.EDITOR})
ALL_ROLES: Final[frozenset[str]] = frozenset(Roles.ALL)


# =============================================================================
# Resource Actions
# =============================================================================


class Actions:
    """Action names passed to the authorization capability."""

    INDEX: Final[str] = "index"
    SHOW: Final[str] = "show"
    NEW: Final[str] = "new"
    CREATE: Final[str] = "create"
    EDIT: Final[str] = "edit"
    UPDATE: Final[str] = "update"
    DESTROY: Final[str] = "destroy"

    READ: Final[frozenset[str]] = frozenset({INDEX, SHOW})
    WRITE: Final[frozenset[str]] = frozenset({NEW, CREATE, EDIT, UPDATE})

    BATCH_PREFIX: Final[str] = "batch_action_"

    @classmethod
    def batch(cls, name: str) -> str:
        """Authorization action name for a batch action."""
        return f"{cls.BATCH_PREFIX}{name}"


# =============================================================================
# Ordering
# =============================================================================


class OrderDirection(str, Enum):
    """Sort direction. Anything that is not 'desc' is ascending."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: object) -> "OrderDirection":
        if isinstance(value, str) and value.strip().lower() == cls.DESC.value:
            return cls.DESC
        return cls.ASC


# =============================================================================
# Request parameter names
# =============================================================================


class Params:
    """Query parameter keys read by the parameter parser."""

    FILTER: Final[str] = "filter"
    SCOPE: Final[str] = "scope"
    ORDER: Final[str] = "order"
    PAGE: Final[str] = "page"
    PER_PAGE: Final[str] = "per_page"
    BATCH_ACTION: Final[str] = "batch_action"
    ID: Final[str] = "id"
    FORMAT: Final[str] = "format"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Pagination and parsing limits."""

    DEFAULT_PAGE: Final[int] = 1
    DEFAULT_PAGE_SIZE: Final[int] = 25
    MAX_PAGE_SIZE: Final[int] = 200

    # Upper bound on ids accepted in a single batch request
    MAX_BATCH_IDS: Final[int] = 1000

    # Signed 64-bit range accepted for integer columns and ids
    MIN_INTEGER: Final[int] = -(2**63)
    MAX_INTEGER: Final[int] = 2**63 - 1

    RANGE_SEPARATOR: Final[str] = ".."
    LIST_SEPARATOR: Final[str] = ","
