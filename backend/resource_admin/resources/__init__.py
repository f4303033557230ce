"""
Resource layer: uniform list/show/create/update/destroy and batch actions
for any ORM model, with composable query refinement.

Provides:
- ResourceDescriptor: static per-resource-type metadata
- Parameter parsing: RefinementSpec, BatchRequest
- Refinement pipeline: scope -> filter -> order -> paginate
- ResourceService: per-resource-type facade
- BatchActionDispatcher: named bulk actions with all-or-nothing authorization
- ResourceRegistry: key -> service class
- ResourceController: framework-independent request adapter
"""

from .descriptor import (
    ResourceDescriptor,
    ScopeDef,
    FilterDef,
    FilterKind,
    BatchActionDef,
)
from .params import (
    RefinementSpec,
    OrderSpec,
    PageSpec,
    BatchRequest,
    nest_params,
    parse_refinement,
    parse_batch_ids,
    parse_batch_request,
)
from .refinement import (
    ResultSet,
    apply_scope,
    apply_filters,
    apply_order,
    apply_pagination,
    refine,
    refine_query,
)
from .service import ResourceService
from .authorization import Authorizer, ResourcePolicy, RolePolicyAuthorizer
from .batch import (
    BatchActionDispatcher,
    BatchActionRedirects,
    BatchOutcome,
    destroy_action,
    destroy_records,
)
from .registry import ResourceRegistry, ResourceEntry, load_registry, registry
from .controller import ResourceController, IndexResult, permitted_attributes
from .export import export_csv, iter_export_rows

__all__ = [
    # Descriptor
    "ResourceDescriptor",
    "ScopeDef",
    "FilterDef",
    "FilterKind",
    "BatchActionDef",
    # Parameters
    "RefinementSpec",
    "OrderSpec",
    "PageSpec",
    "BatchRequest",
    "nest_params",
    "parse_refinement",
    "parse_batch_ids",
    "parse_batch_request",
    # Pipeline
    "ResultSet",
    "apply_scope",
    "apply_filters",
    "apply_order",
    "apply_pagination",
    "refine",
    "refine_query",
    # Service
    "ResourceService",
    # Authorization
    "Authorizer",
    "ResourcePolicy",
    "RolePolicyAuthorizer",
    # Batch actions
    "BatchActionDispatcher",
    "BatchActionRedirects",
    "BatchOutcome",
    "destroy_action",
    "destroy_records",
    # Registry
    "ResourceRegistry",
    "ResourceEntry",
    "load_registry",
    "registry",
    # Controller adapter
    "ResourceController",
    "IndexResult",
    "permitted_attributes",
    # Export
    "export_csv",
    "iter_export_rows",
]
