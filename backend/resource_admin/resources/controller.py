"""
Generic Controller Adapter.

Framework-independent boundary between a request and the resource layer:
builds the resource service for the requested type, drives the CRUD and
batch calls, consults the authorization capability and filters submitted
attributes down to the permitted (form) attributes. Rendering is left to
the caller (see resource_admin.routers.resources).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import inspect
from sqlalchemy.orm import MANYTOONE, Session

from admin_shared.config.constants import Actions, Params
from resource_admin.resources.authorization import Authorizer
from resource_admin.resources.batch import BatchActionDispatcher, BatchOutcome
from resource_admin.resources.descriptor import ResourceDescriptor
from resource_admin.resources.export import export_csv
from resource_admin.resources.params import parse_batch_request, parse_refinement
from resource_admin.resources.refinement import ResultSet
from resource_admin.resources.registry import ResourceEntry


@dataclass(frozen=True)
class IndexResult:
    """What a listing hands to rendering."""

    resources: ResultSet
    scope_counts: dict[str, int]
    batch_actions: list[str]
    confirm_batch_actions: list[str]


def permitted_attributes(descriptor: ResourceDescriptor) -> list[str]:
    """
    Writable attribute names: the form attributes, with ``belongs_to``
    (many-to-one) relationship names replaced by their foreign key columns.
    """
    mapper = inspect(descriptor.model)
    relationships = mapper.relationships
    permitted: list[str] = []

    for attribute in descriptor.form:
        if attribute in relationships.keys() and relationships[attribute].direction is MANYTOONE:
            for column in relationships[attribute].local_columns:
                permitted.append(mapper.get_property_by_column(column).key)
        else:
            permitted.append(attribute)

    return list(dict.fromkeys(permitted))


class ResourceController:
    """
    One request's worth of resource handling.

    Usage:
        controller = ResourceController(registry.get("articles"), db, authorizer=authorizer)
        index = controller.index({"scope": "published"})
        article, created = controller.create({"article": {"title": "Hello"}})
    """

    def __init__(
        self,
        entry: ResourceEntry,
        db: Session,
        *,
        admin_user: dict | None = None,
        authorizer: Authorizer | None = None,
    ):
        self._entry = entry
        self._authorizer = authorizer
        self._service = entry.service_class(db, admin_user=admin_user)

    @property
    def key(self) -> str:
        return self._entry.key

    @property
    def service(self):
        return self._service

    @property
    def authorization_enabled(self) -> bool:
        return self._authorizer is not None

    def authorize(self, subject: Any, action: str) -> None:
        if self._authorizer is not None:
            self._authorizer.authorize(subject, action)

    # =========================================================================
    # Actions
    # =========================================================================

    def index(self, params: Mapping[str, Any] | None = None) -> IndexResult:
        resources = self._service.resources(parse_refinement(params))
        self.authorize(resources, Actions.INDEX)
        return IndexResult(
            resources=resources,
            scope_counts=self._service.scope_counts(),
            batch_actions=self._service.batch_actions_for_scope(resources.scope),
            confirm_batch_actions=self._service.batch_actions_for_scope(resources.scope, confirm=True),
        )

    def export(self, params: Mapping[str, Any] | None = None) -> str:
        spec = parse_refinement(params)
        self.authorize(self._service.resources(spec), Actions.INDEX)
        return export_csv(self._service, spec)

    def show(self, identifier: Any) -> Any:
        resource = self._service.find(identifier)
        self.authorize(resource, Actions.SHOW)
        return resource

    def new(self) -> Any:
        resource = self._service.build(None)
        self.authorize(resource, Actions.NEW)
        return resource

    def create(self, params: Mapping[str, Any] | None) -> tuple[Any, bool]:
        resource = self._service.build(self.resource_params(params))
        self.authorize(resource, Actions.CREATE)
        return resource, self._service.create(resource)

    def update(self, identifier: Any, params: Mapping[str, Any] | None) -> tuple[Any, bool]:
        resource = self._service.find(identifier)
        self.authorize(resource, Actions.UPDATE)
        return resource, self._service.update(resource, self.resource_params(params))

    def destroy(self, identifier: Any) -> bool:
        resource = self._service.find(identifier)
        self.authorize(resource, Actions.DESTROY)
        return self._service.destroy(resource)

    def batch_action(self, params: Mapping[str, Any] | None, id_list: Any = None) -> BatchOutcome:
        """
        Run the batch action named by ``batch_action`` on the ids in
        ``id_list`` (or the ``id`` parameter). Without a ``batch_action``
        parameter nothing runs.
        """
        merged = dict(params or {})
        if id_list is not None:
            merged[Params.ID] = id_list
        request = parse_batch_request(merged)
        if not request.requested:
            return BatchOutcome.not_performed(None)
        dispatcher = BatchActionDispatcher(self._service, self._authorizer)
        return dispatcher.dispatch_request(request)

    # =========================================================================
    # Parameters
    # =========================================================================

    def permitted_attributes(self) -> list[str]:
        return permitted_attributes(self._service.descriptor)

    def resource_params(self, params: Mapping[str, Any] | None) -> dict[str, Any]:
        """
        Submitted attributes restricted to the permitted ones.

        Attributes may be nested under the resource's param key
        (``{"article": {...}}``) or given flat.
        """
        if not params:
            return {}
        nested = params.get(self._service.descriptor.param_key)
        source = nested if isinstance(nested, Mapping) else params
        return {name: source[name] for name in self.permitted_attributes() if name in source}
