"""
Centralized HTTP exceptions for consistent error handling.

Only NotFound, Forbidden, UnsupportedAction and ValidationFailed reach the
boundary as distinct outcomes. Malformed refinement input is never raised;
it degrades to a no-op inside the refinement pipeline.

Usage:
    from admin_shared.utils.exceptions import NotFoundError, ForbiddenError

    raise NotFoundError("Article", article_id)
    raise ForbiddenError("batch_action_destroy", resource="article")
"""

from typing import Any

from fastapi import HTTPException, status

from admin_shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: Any,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        message = detail if isinstance(detail, str) else self.__class__.__name__
        log_fn(message, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Article", 123)
        raise NotFoundError("Article", "my-slug", lookup="slug")
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class UnknownResourceError(NotFoundError):
    """No resource service registered under the requested key."""

    def __init__(self, key: str, **log_context: Any):
        self.key = key
        AppException.__init__(
            self,
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown resource '{key}'",
            log_level="warning",
            resource=key,
            **log_context,
        )
        self.entity = "Resource"
        self.entity_id = key


# =============================================================================
# 401 / 403 Errors
# =============================================================================


class AuthenticationError(AppException):
    """Authentication is enabled and the request carries no admin user (401)."""

    def __init__(self, detail: str = "Not authenticated", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            log_level="warning",
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("destroy")
        raise ForbiddenError("batch_action_publish", record_id=3)
    """

    def __init__(self, action: str | None = None, **log_context: Any):
        if action:
            detail = f"Not authorized to {action}"
        else:
            detail = "Access denied"

        self.action = action
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level="warning",
            action=action,
            **log_context,
        )


# =============================================================================
# 400 / 422 Errors
# =============================================================================


class UnsupportedActionError(AppException):
    """
    Batch action name not declared for the resource type (400).

    Reported distinctly from ForbiddenError: nothing was authorized or run.
    """

    def __init__(self, action: str, resource: str | None = None, **log_context: Any):
        if resource:
            detail = f"Batch action '{action}' is not supported for {resource}"
        else:
            detail = f"Batch action '{action}' is not supported"

        self.action = action
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            action=action,
            resource=resource,
            **log_context,
        )


class ValidationFailedError(AppException):
    """
    Create/update rejected by the entity's own validation (422).

    The detail is the entity error map: {attribute: [messages]}.
    """

    def __init__(self, errors: dict[str, list[str]], **log_context: Any):
        self.errors = errors
        super().__init__(
            status_code=422,  # Unprocessable Content
            detail={"errors": errors},
            log_level="info",
            fields=sorted(errors),
            **log_context,
        )


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).
    """

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class DatabaseError(InternalError):
    """Database operation failed."""

    def __init__(self, operation: str, **log_context: Any):
        detail = f"Database error during {operation}. Please try again."
        super().__init__(detail, operation=operation, **log_context)
