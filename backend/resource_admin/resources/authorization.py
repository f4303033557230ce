"""
Authorization capability.

The resource layer only ever calls ``authorize(subject, action)``; it either
returns or raises ForbiddenError. Policy evaluation is pluggable: any object
implementing the Authorizer protocol can be passed to the controller
adapter. RolePolicyAuthorizer is the built-in role-based implementation.

Actions passed in are the controller action names (index, show, new,
create, edit, update, destroy) and ``batch_action_<name>`` for batch
actions. The subject is the Result Set for ``index`` and the record
otherwise.

Usage:
    policy = ResourcePolicy(
        write_roles=frozenset({Roles.ADMIN, Roles.EDITOR}),
        record_rule=lambda user, record, action: record.author_id == user["sub"],
    )
    authorizer = RolePolicyAuthorizer(user, policy)
    authorizer.authorize(article, "update")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from admin_shared.config.constants import Actions, ALL_ROLES, MANAGEMENT_ROLES, Roles
from admin_shared.utils.exceptions import ForbiddenError

RecordRule = Callable[[dict, Any, str], bool]


@runtime_checkable
class Authorizer(Protocol):
    """Authorization capability consulted by the controller adapter."""

    def authorize(self, subject: Any, action: str) -> None:
        """Return if allowed, raise ForbiddenError otherwise."""
        ...


@dataclass(frozen=True)
class ResourcePolicy:
    """
    Roles allowed to perform each action on one resource type.

    ``batch_roles`` overrides the roles for individual batch actions; batch
    actions without an entry use ``destroy_roles`` for ``destroy`` and
    ``write_roles`` for everything else. ``record_rule`` is an additional
    per-subject check applied to every non-admin request.
    """

    read_roles: frozenset[str] = ALL_ROLES
    write_roles: frozenset[str] = MANAGEMENT_ROLES
    destroy_roles: frozenset[str] = frozenset({Roles.ADMIN})
    batch_roles: Mapping[str, frozenset[str]] = field(default_factory=dict)
    record_rule: RecordRule | None = None

    def roles_for(self, action: str) -> frozenset[str]:
        if action in Actions.READ:
            return self.read_roles
        if action in Actions.WRITE:
            return self.write_roles
        if action == Actions.DESTROY:
            return self.destroy_roles
        if action.startswith(Actions.BATCH_PREFIX):
            name = action[len(Actions.BATCH_PREFIX):]
            if name in self.batch_roles:
                return self.batch_roles[name]
            return self.destroy_roles if name == Actions.DESTROY else self.write_roles
        return frozenset()


class RolePolicyAuthorizer:
    """
    Role-based authorizer for one resource type.

    ADMIN may do everything. Other users need one of the roles the policy
    lists for the action, and must pass the policy's record rule.
    """

    def __init__(self, user: dict | None, policy: ResourcePolicy | None = None):
        self._user = user or {}
        self._roles = frozenset(self._user.get("roles", []))
        self._policy = policy or ResourcePolicy()

    @property
    def policy(self) -> ResourcePolicy:
        return self._policy

    @property
    def is_admin(self) -> bool:
        return Roles.ADMIN in self._roles

    def can(self, subject: Any, action: str) -> bool:
        if self.is_admin:
            return True
        if not self._roles & self._policy.roles_for(action):
            return False
        rule = self._policy.record_rule
        if rule is not None and not rule(self._user, subject, action):
            return False
        return True

    def authorize(self, subject: Any, action: str) -> None:
        if not self.can(subject, action):
            raise ForbiddenError(
                action,
                user_id=self._user.get("sub"),
                subject=type(subject).__name__,
            )
