"""
FastAPI dependencies for the resource endpoints.

Authentication is an external collaborator: applications override
``get_admin_user`` (``app.dependency_overrides[get_admin_user] = ...``) to
return the authenticated user dict, e.g. ``{"sub": 1, "roles": ["ADMIN"]}``.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from admin_shared.config.settings import settings
from admin_shared.infrastructure.db import get_db
from admin_shared.utils.exceptions import AuthenticationError
from resource_admin.resources.authorization import Authorizer, RolePolicyAuthorizer
from resource_admin.resources.controller import ResourceController
from resource_admin.resources.registry import ResourceEntry, ResourceRegistry


def get_registry(request: Request) -> ResourceRegistry:
    """Registry the application was built with."""
    return request.app.state.registry


def get_admin_user() -> dict | None:
    """Authenticated admin user. No authentication backend is wired by default."""
    return None


def require_admin_user(user: dict | None = Depends(get_admin_user)) -> dict | None:
    """Require a user when authentication is enabled."""
    if settings.authentication_enabled and user is None:
        raise AuthenticationError()
    return user


def get_resource_entry(
    resource: str,
    registry: ResourceRegistry = Depends(get_registry),
) -> ResourceEntry:
    return registry.get(resource)


def get_authorizer(
    entry: ResourceEntry = Depends(get_resource_entry),
    user: dict | None = Depends(require_admin_user),
) -> Authorizer | None:
    """Role-based authorizer for the resource, or None when authorization is disabled."""
    if not settings.authorization_enabled:
        return None
    return RolePolicyAuthorizer(user, entry.policy)


def get_controller(
    entry: ResourceEntry = Depends(get_resource_entry),
    db: Session = Depends(get_db),
    user: dict | None = Depends(require_admin_user),
    authorizer: Authorizer | None = Depends(get_authorizer),
) -> ResourceController:
    """Controller adapter for the resource named in the path."""
    return ResourceController(entry, db, admin_user=user, authorizer=authorizer)
