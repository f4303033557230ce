"""
Utilities: exception hierarchy.
"""

from admin_shared.utils.exceptions import (
    AppException,
    NotFoundError,
    UnknownResourceError,
    ForbiddenError,
    AuthenticationError,
    UnsupportedActionError,
    ValidationFailedError,
    InternalError,
    DatabaseError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "UnknownResourceError",
    "ForbiddenError",
    "AuthenticationError",
    "UnsupportedActionError",
    "ValidationFailedError",
    "InternalError",
    "DatabaseError",
]
