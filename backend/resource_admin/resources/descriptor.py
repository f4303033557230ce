"""
Resource Descriptor: static per-resource-type metadata.

A descriptor is built once, when the resource type is declared, and is shared
read-only by every ResourceService instance of that type. It lists the
attributes shown in each context (index/show/form/export) and the refinement
capabilities the type supports: named scopes, filterable fields, orderable
fields and batch actions.

Usage:
    descriptor = ResourceDescriptor(
        model=Article,
        index=("title", "published"),
        show=("title", "body", "published", "author"),
        form=("title", "body", "published", "author"),
        export=("id", "title", "published"),
        scopes=[
            ScopeDef("all", lambda q: q, default=True),
            ScopeDef("published", lambda q: q.where(Article.published.is_(True))),
        ],
        filters=[FilterDef("title", FilterKind.CONTAINS)],
        orderable=("title", "created_at"),
        default_order=(("created_at", OrderDirection.DESC),),
        batch_actions=[destroy_action()],
    )
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Sequence

from sqlalchemy import Select, inspect
from sqlalchemy.orm import InstrumentedAttribute

from admin_shared.config.constants import OrderDirection
from resource_admin.models.base import ValidationMixin

if TYPE_CHECKING:
    from resource_admin.resources.service import ResourceService


ScopeFn = Callable[[Select], Select]
FilterFn = Callable[[Select, Any], Select]
BatchHandler = Callable[["ResourceService", Sequence[Any]], bool]


class FilterKind(str, Enum):
    """How a declared filter turns a request value into a predicate."""

    EXACT = "exact"
    CONTAINS = "contains"
    RANGE = "range"
    MULTISELECT = "multiselect"


@dataclass(frozen=True)
class ScopeDef:
    """A named, parameterless predicate transform on the collection."""

    name: str
    apply: ScopeFn
    default: bool = False


@dataclass(frozen=True)
class FilterDef:
    """
    A filterable field.

    ``field`` names the mapped column when it differs from the parameter name.
    ``apply`` replaces the built-in predicate for custom filters; it receives
    the collection and the raw (non-blank) value.
    """

    name: str
    kind: FilterKind = FilterKind.EXACT
    field: str | None = None
    apply: FilterFn | None = None
    choices: tuple[Any, ...] = ()

    @property
    def column_name(self) -> str:
        return self.field or self.name


@dataclass(frozen=True)
class BatchActionDef:
    """
    A named action applied to a set of records at once.

    ``only``/``except_`` restrict the scopes in which the action is offered.
    ``confirm`` is presentation metadata.
    """

    name: str
    handler: BatchHandler
    confirm: bool = False
    only: tuple[str, ...] = ()
    except_: tuple[str, ...] = ()

    def available_in(self, scope: str | None) -> bool:
        if self.only and scope not in self.only:
            return False
        if self.except_ and scope in self.except_:
            return False
        return True


def _index_by_name(items: Iterable[Any] | Mapping[str, Any], kind: str) -> Mapping[str, Any]:
    if isinstance(items, Mapping):
        items = items.values()
    indexed: dict[str, Any] = {}
    for item in items:
        if item.name in indexed:
            raise ValueError(f"Duplicate {kind} '{item.name}'")
        indexed[item.name] = item
    return MappingProxyType(indexed)


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass(frozen=True, eq=False)
class ResourceDescriptor:
    """Immutable metadata for one resource type."""

    model: type
    index: tuple[str, ...] = ()
    show: tuple[str, ...] = ()
    form: tuple[str, ...] = ()
    export: tuple[str, ...] = ()
    scopes: Mapping[str, ScopeDef] = field(default_factory=dict)
    filters: Mapping[str, FilterDef] = field(default_factory=dict)
    orderable: tuple[str, ...] = ()
    default_order: tuple[tuple[str, OrderDirection], ...] = ()
    per_page: int | None = None
    batch_actions: Mapping[str, BatchActionDef] = field(default_factory=dict)
    slug_field: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        for attr in ("index", "show", "form", "export", "orderable"):
            object.__setattr__(self, attr, tuple(getattr(self, attr)))

        object.__setattr__(self, "scopes", _index_by_name(self.scopes, "scope"))
        object.__setattr__(self, "filters", _index_by_name(self.filters, "filter"))
        object.__setattr__(
            self, "batch_actions", _index_by_name(self.batch_actions, "batch action")
        )
        object.__setattr__(
            self,
            "default_order",
            tuple((name, OrderDirection.parse(direction)) for name, direction in self.default_order),
        )

        defaults = [scope.name for scope in self.scopes.values() if scope.default]
        if len(defaults) > 1:
            raise ValueError(f"More than one default scope: {', '.join(defaults)}")

        if self.per_page is not None and self.per_page < 1:
            raise ValueError("per_page must be a positive integer")

        if not (isinstance(self.model, type) and issubclass(self.model, ValidationMixin)):
            raise TypeError(
                f"{self.model!r} must inherit ValidationMixin to be administered as a resource"
            )

    # =========================================================================
    # Naming
    # =========================================================================

    @property
    def resource_name(self) -> str:
        """Human-readable name of the resource type."""
        return self.name or self.model.__name__

    @property
    def param_key(self) -> str:
        """Key under which submitted attributes may be nested (e.g. 'article')."""
        return _snake_case(self.model.__name__)

    # =========================================================================
    # Scopes
    # =========================================================================

    @property
    def default_scope(self) -> str | None:
        for scope in self.scopes.values():
            if scope.default:
                return scope.name
        return None

    # =========================================================================
    # Columns
    # =========================================================================

    def column(self, name: str) -> InstrumentedAttribute | None:
        """Mapped column attribute for ``name``, or None if not a column."""
        mapper = inspect(self.model)
        if name not in mapper.column_attrs.keys():
            return None
        return getattr(self.model, name)

    @property
    def primary_key(self) -> InstrumentedAttribute:
        mapper = inspect(self.model)
        key = mapper.get_property_by_column(mapper.primary_key[0]).key
        return getattr(self.model, key)

    # =========================================================================
    # Batch actions
    # =========================================================================

    def batch_actions_for_scope(self, scope: str | None) -> list[BatchActionDef]:
        """Batch actions offered while listing ``scope``."""
        return [action for action in self.batch_actions.values() if action.available_in(scope)]
