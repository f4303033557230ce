"""
Batch Action Dispatcher.

Executes a named batch action against a set of target records as a unit:

1. The action name is resolved against the resource type's declared batch
   actions (UnsupportedActionError if undeclared).
2. Target ids are resolved through the service's base collection.
3. When an authorizer is configured, every target is authorized for
   ``batch_action_<name>`` before anything runs; one denial aborts the
   whole batch with ForbiddenError.
4. The handler receives all target records and reports success or failure
   for the batch as a whole. A handler that reports failure or raises has
   its uncommitted session changes rolled back.

Known limitation: handlers report a single flag; there is no per-record
partial-success reporting.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Sequence

from admin_shared.config.constants import Actions
from admin_shared.config.logging import get_logger
from admin_shared.utils.exceptions import UnsupportedActionError
from resource_admin.resources.authorization import Authorizer
from resource_admin.resources.descriptor import BatchActionDef
from resource_admin.resources.params import BatchRequest, parse_batch_ids

if TYPE_CHECKING:
    from resource_admin.resources.service import ResourceService

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchOutcome:
    """Result of a batch dispatch: whether it ran, and which records it touched."""

    action: str | None
    performed: bool
    ids: tuple[Any, ...] = ()
    location: str | None = None

    @property
    def count(self) -> int:
        return len(self.ids)

    @classmethod
    def not_performed(cls, action: str | None) -> "BatchOutcome":
        return cls(action=action, performed=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_action": self.action,
            "performed": self.performed,
            "count": self.count,
            "ids": list(self.ids),
            "location": self.location,
        }


class BatchActionRedirects(ABC):
    """
    Optional capability for resource services: choose where the client goes
    after a successful batch action. Returning None keeps the default.
    """

    @abstractmethod
    def redirect_after_batch_action(self, action: str, outcome: BatchOutcome) -> str | None:
        ...


# =============================================================================
# Built-in handlers
# =============================================================================


def destroy_records(service: "ResourceService", records: Sequence[Any]) -> bool:
    """Delete every target in one transaction."""
    return service.destroy_many(records)


def destroy_action(**options: Any) -> BatchActionDef:
    """The standard ``destroy`` batch action."""
    options.setdefault("confirm", True)
    return BatchActionDef(Actions.DESTROY, destroy_records, **options)


# =============================================================================
# Dispatcher
# =============================================================================


class BatchActionDispatcher:
    """
    Resolve and run batch actions for one resource service.

    Usage:
        dispatcher = BatchActionDispatcher(service, authorizer)
        outcome = dispatcher.dispatch("destroy", "1,2,3")
        if outcome.performed:
            outcome.count, outcome.ids
    """

    def __init__(self, service: "ResourceService", authorizer: Authorizer | None = None):
        self._service = service
        self._authorizer = authorizer

    def resolve(self, action: str) -> BatchActionDef:
        """
        Raises:
            UnsupportedActionError: If the resource type does not declare it.
        """
        definition = self._service.batch_action_definition(action)
        if definition is None:
            raise UnsupportedActionError(action, self._service.resource_name)
        return definition

    def dispatch(self, action: str | None, ids: Sequence[Any] | str) -> BatchOutcome:
        """
        Run ``action`` on the records identified by ``ids``.

        ``ids`` may be a comma-separated string or a sequence of ids. A
        missing action name or an empty/malformed id list runs nothing.

        Raises:
            UnsupportedActionError: Unknown action name.
            ForbiddenError: Any target is not authorized; nothing runs.
        """
        if not action:
            return BatchOutcome.not_performed(None)

        definition = self.resolve(action)

        target_ids = parse_batch_ids(ids)
        if not target_ids:
            logger.info("Batch action has no valid targets", action=action, resource=self._service.resource_name)
            return BatchOutcome.not_performed(action)

        records = self._service.find_many(target_ids)
        if not records:
            logger.info("Batch action targets not found", action=action, resource=self._service.resource_name)
            return BatchOutcome.not_performed(action)

        if self._authorizer is not None:
            authorization_action = Actions.batch(action)
            for record in records:
                self._authorizer.authorize(record, authorization_action)

        # Read ids before the handler runs; deleted records are detached afterwards
        primary_key = self._service.descriptor.primary_key.key
        record_ids = tuple(getattr(record, primary_key) for record in records)

        try:
            performed = definition.handler(self._service, records)
        except Exception:
            self._service.db.rollback()
            logger.error(
                "Batch action raised",
                action=action,
                resource=self._service.resource_name,
                count=len(record_ids),
                exc_info=True,
            )
            raise

        if not performed:
            self._service.db.rollback()
            logger.info(
                "Batch action failed",
                action=action,
                resource=self._service.resource_name,
                count=len(record_ids),
            )
            return BatchOutcome.not_performed(action)

        logger.info(
            "Batch action performed",
            action=action,
            resource=self._service.resource_name,
            count=len(record_ids),
        )
        outcome = BatchOutcome(action=action, performed=True, ids=record_ids)

        if isinstance(self._service, BatchActionRedirects):
            outcome = replace(
                outcome,
                location=self._service.redirect_after_batch_action(action, outcome),
            )
        return outcome

    def dispatch_request(self, request: BatchRequest) -> BatchOutcome:
        return self.dispatch(request.action, request.ids)
