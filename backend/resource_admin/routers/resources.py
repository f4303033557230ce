"""
Generic resource endpoints.

Every registered resource type is served by the same routes, keyed by the
``{resource}`` path segment:

    GET    /{resource}                  list (JSON, or CSV with ?format=csv)
    GET    /{resource}/new              blank form record
    GET    /{resource}/{id}             show
    POST   /{resource}                  create
    PATCH  /{resource}/{id}             update, or batch action when
                                        batch_action is given ({id} = "1,2,3")
    DELETE /{resource}/{id}             destroy
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status

from admin_shared.config.constants import Params
from admin_shared.config.logging import get_logger
from admin_shared.utils.exceptions import DatabaseError, ValidationFailedError
from resource_admin.dependencies import get_controller, get_registry
from resource_admin.resources.controller import ResourceController
from resource_admin.resources.params import nest_params
from resource_admin.resources.registry import ResourceRegistry
from resource_admin.routers.schemas import (
    BatchActionOutput,
    ResourceListOutput,
    ResourceSummaryOutput,
)
from resource_admin.resources.serializers import serialize

logger = get_logger(__name__)

router = APIRouter(tags=["resources"])


def _query_params(request: Request) -> dict[str, Any]:
    return nest_params(request.query_params.multi_items())


@router.get("/", response_model=list[ResourceSummaryOutput])
def list_resource_types(
    registry: ResourceRegistry = Depends(get_registry),
) -> list[ResourceSummaryOutput]:
    """Registered resource types and their declarations."""
    summaries = []
    for entry in registry:
        descriptor = entry.descriptor
        summaries.append(
            ResourceSummaryOutput(
                key=entry.key,
                name=descriptor.resource_name,
                index=list(descriptor.index),
                show=list(descriptor.show),
                form=list(descriptor.form),
                export=list(descriptor.export),
                scopes=list(descriptor.scopes),
                default_scope=descriptor.default_scope,
                filters={name: f.kind.value for name, f in descriptor.filters.items()},
                filter_choices={
                    name: list(f.choices) for name, f in descriptor.filters.items() if f.choices
                },
                orderable=list(descriptor.orderable),
                batch_actions=list(descriptor.batch_actions),
                confirm_batch_actions=[
                    name for name, action in descriptor.batch_actions.items() if action.confirm
                ],
            )
        )
    return summaries


@router.get("/{resource}", response_model=None)
def list_resources(
    request: Request,
    controller: ResourceController = Depends(get_controller),
) -> ResourceListOutput | Response:
    """List one page of records. Supports filter/scope/order/page parameters."""
    params = _query_params(request)

    if params.get(Params.FORMAT) == "csv":
        return Response(
            content=controller.export(params),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{controller.key}.csv"'},
        )

    index = controller.index(params)
    attributes = controller.service.attrs_for_index()
    return ResourceListOutput(
        items=[serialize(record, attributes) for record in index.resources],
        pagination=index.resources.to_dict(),
        scope=index.resources.scope,
        scopes=index.scope_counts,
        batch_actions=index.batch_actions,
        confirm_batch_actions=index.confirm_batch_actions,
    )


@router.get("/{resource}/new")
def new_resource(
    controller: ResourceController = Depends(get_controller),
) -> dict[str, Any]:
    """Blank record with the form attributes."""
    resource = controller.new()
    return serialize(resource, controller.service.attrs_for_form())


@router.get("/{resource}/{resource_id}")
def show_resource(
    resource_id: str,
    controller: ResourceController = Depends(get_controller),
) -> dict[str, Any]:
    resource = controller.show(resource_id)
    return serialize(resource, controller.service.attrs_for_show())


@router.post("/{resource}", status_code=status.HTTP_201_CREATED)
def create_resource(
    payload: dict[str, Any] | None = Body(default=None),
    controller: ResourceController = Depends(get_controller),
) -> dict[str, Any]:
    """Create a record. 422 with the error map when validation fails."""
    resource, created = controller.create(payload)
    if not created:
        raise ValidationFailedError(resource.errors, resource=controller.key)
    return serialize(resource, controller.service.attrs_for_show())


@router.patch("/{resource}/{resource_id}", response_model=None)
def update_resource(
    resource_id: str,
    request: Request,
    payload: dict[str, Any] | None = Body(default=None),
    controller: ResourceController = Depends(get_controller),
) -> dict[str, Any] | BatchActionOutput:
    """
    Update a record, or run a batch action when ``batch_action`` is given
    (query string or body); ``resource_id`` is then the id list.
    """
    params = {**(payload or {}), **_query_params(request)}
    if params.get(Params.BATCH_ACTION):
        outcome = controller.batch_action(params, resource_id)
        return BatchActionOutput(**outcome.to_dict())

    resource, updated = controller.update(resource_id, payload or {})
    if not updated:
        raise ValidationFailedError(resource.errors, resource=controller.key, resource_id=resource_id)
    return serialize(resource, controller.service.attrs_for_show())


@router.delete("/{resource}/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
def destroy_resource(
    resource_id: str,
    controller: ResourceController = Depends(get_controller),
) -> Response:
    if not controller.destroy(resource_id):
        raise DatabaseError(f"destroy {controller.key}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
