"""
Query Refinement Pipeline.

Composes scope, filter, order and pagination onto a base collection, always
in that order:

    scope -> filter -> order -> paginate

Each step is a stateless transform ``(query, spec_fragment, descriptor) ->
query`` over a SQLAlchemy ``Select``. Select objects are immutable, so the
base collection is never modified. Malformed or unknown input turns the step
into a no-op for that dimension; it is logged at debug level, never raised.

Usage:
    result = refine(db, select(Article), parse_refinement(params), descriptor)
    result.items, result.total_count, result.total_pages
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterator, Mapping, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from admin_shared.config.constants import Limits, OrderDirection
from admin_shared.config.logging import get_logger
from admin_shared.config.settings import settings
from resource_admin.resources.descriptor import (
    FilterDef,
    FilterKind,
    ResourceDescriptor,
    ScopeDef,
)
from resource_admin.resources.params import (
    OrderSpec,
    PageSpec,
    RefinementSpec,
    is_blank,
    parse_int,
)

logger = get_logger(__name__)

_TRUE_VALUES = frozenset({"true", "t", "1", "yes", "y", "on"})
_FALSE_VALUES = frozenset({"false", "f", "0", "no", "n", "off"})


class _Invalid:
    """Marker for a value that cannot be coerced to the column type."""

    def __repr__(self) -> str:
        return "<invalid>"


INVALID = _Invalid()


# =============================================================================
# Result Set
# =============================================================================


@dataclass(frozen=True)
class ResultSet:
    """
    One page of the refined collection plus pagination metadata.

    ``total_count`` counts every record matching scope and filters, not just
    the records on this page.
    """

    items: tuple[Any, ...]
    page: int
    per_page: int
    total_count: int
    scope: str | None = None

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.per_page) if self.total_count else 0

    @property
    def has_next(self) -> bool:
        return 1 <= self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return 1 < self.page <= self.total_pages

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        """Pagination metadata for responses."""
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total": self.total_count,
            "pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


# =============================================================================
# Value coercion
# =============================================================================


def in_integer_range(value: int) -> bool:
    return Limits.MIN_INTEGER <= value <= Limits.MAX_INTEGER


def coerce_value(column: InstrumentedAttribute, value: Any) -> Any:
    """
    Convert a raw request value to the column's Python type.

    Returns INVALID when the value cannot represent a column value,
    including integers outside the signed 64-bit range.
    """
    coerced = _coerce(column, value)
    if isinstance(coerced, int) and not isinstance(coerced, bool) and not in_integer_range(coerced):
        return INVALID
    return coerced


def _coerce(column: InstrumentedAttribute, value: Any) -> Any:
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    if isinstance(value, python_type) and not (
        python_type is not bool and isinstance(value, bool)
    ):
        return value

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if python_type in (float, Decimal):
            return python_type(value)
        if python_type is int and float(value).is_integer():
            return int(value)
        if python_type is str:
            return str(value)
        return INVALID

    if not isinstance(value, str):
        return INVALID

    text = value.strip()

    if python_type is bool:
        lowered = text.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        return INVALID

    if python_type is int:
        parsed = parse_int(text)
        return INVALID if parsed is None else parsed

    try:
        if python_type is float:
            return float(text)
        if python_type is Decimal:
            return Decimal(text)
        if python_type is datetime:
            return datetime.fromisoformat(text)
        if python_type is date:
            return date.fromisoformat(text)
        if issubclass(python_type, Enum):
            return python_type(text)
    except (ValueError, InvalidOperation):
        return INVALID

    return text


# =============================================================================
# Scope step
# =============================================================================


def resolve_scope(name: str | None, descriptor: ResourceDescriptor) -> ScopeDef | None:
    """
    The scope to apply for a requested name.

    Absent or undeclared names fall back to the declared default scope
    (None when no scope is flagged as default).
    """
    if name is not None:
        scope = descriptor.scopes.get(name)
        if scope is not None:
            return scope
        logger.debug("Ignoring unknown scope", scope=name, resource=descriptor.resource_name)

    default = descriptor.default_scope
    return descriptor.scopes[default] if default is not None else None


def apply_scope(query: Select, name: str | None, descriptor: ResourceDescriptor) -> Select:
    scope = resolve_scope(name, descriptor)
    if scope is None:
        return query
    return scope.apply(query)


# =============================================================================
# Filter step
# =============================================================================


def _range_bounds(value: Any) -> tuple[Any, Any]:
    if isinstance(value, Mapping):
        return value.get("min"), value.get("max")
    if isinstance(value, str):
        if Limits.RANGE_SEPARATOR in value:
            low, _, high = value.partition(Limits.RANGE_SEPARATOR)
            return low, high
        return value, value
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return value, value


def _multiselect_values(value: Any) -> list[Any]:
    if isinstance(value, str):
        return [token for token in value.split(Limits.LIST_SEPARATOR) if token.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [token for token in value if not is_blank(token)]
    return [value]


def _apply_filter(
    query: Select,
    definition: FilterDef,
    value: Any,
    descriptor: ResourceDescriptor,
) -> Select:
    if definition.apply is not None:
        return definition.apply(query, value)

    column = descriptor.column(definition.column_name)
    if column is None:
        logger.debug(
            "Filter does not map to a column",
            filter=definition.name,
            resource=descriptor.resource_name,
        )
        return query

    if definition.kind is FilterKind.CONTAINS:
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            return query
        return query.where(column.icontains(str(value).strip(), autoescape=True))

    if definition.kind is FilterKind.RANGE:
        low, high = _range_bounds(value)
        low = INVALID if is_blank(low) else coerce_value(column, low)
        high = INVALID if is_blank(high) else coerce_value(column, high)
        if low is not INVALID:
            query = query.where(column >= low)
        if high is not INVALID:
            query = query.where(column <= high)
        return query

    if definition.kind is FilterKind.MULTISELECT:
        values = [coerce_value(column, raw) for raw in _multiselect_values(value)]
        values = [item for item in values if item is not INVALID]
        if not values:
            return query
        return query.where(column.in_(values))

    coerced = coerce_value(column, value)
    if coerced is INVALID:
        logger.debug(
            "Ignoring malformed filter value",
            filter=definition.name,
            resource=descriptor.resource_name,
        )
        return query
    return query.where(column == coerced)


def apply_filters(
    query: Select,
    filters: Mapping[str, Any],
    descriptor: ResourceDescriptor,
) -> Select:
    """Apply every declared, non-blank filter. Filters combine with AND."""
    for name, value in filters.items():
        if is_blank(value):
            continue
        definition = descriptor.filters.get(name)
        if definition is None:
            logger.debug("Ignoring unknown filter", filter=name, resource=descriptor.resource_name)
            continue
        query = _apply_filter(query, definition, value, descriptor)
    return query


# =============================================================================
# Order step
# =============================================================================


def resolve_order(
    order: OrderSpec | None,
    descriptor: ResourceDescriptor,
) -> list[tuple[InstrumentedAttribute, OrderDirection]]:
    """
    Columns to sort by, in priority order.

    A requested field must be declared orderable; otherwise the declared
    default order is used, and with none declared the result is empty
    (primary key order).
    """
    if order is not None:
        column = descriptor.column(order.field) if order.field in descriptor.orderable else None
        if column is not None:
            return [(column, order.direction)]
        logger.debug("Ignoring unknown order field", field=order.field, resource=descriptor.resource_name)

    resolved = []
    for name, direction in descriptor.default_order:
        column = descriptor.column(name)
        if column is not None:
            resolved.append((column, direction))
    return resolved


def apply_order(
    query: Select,
    order: OrderSpec | None,
    descriptor: ResourceDescriptor,
) -> Select:
    """
    Sort the collection. The primary key is appended ascending as a
    tie-breaker so records equal on the sort field keep identifier order.
    """
    primary_key = descriptor.primary_key
    clauses = []
    keys = set()
    for column, direction in resolve_order(order, descriptor):
        clauses.append(column.desc() if direction is OrderDirection.DESC else column.asc())
        keys.add(column.key)

    if primary_key.key not in keys:
        clauses.append(primary_key.asc())

    return query.order_by(None).order_by(*clauses)


# =============================================================================
# Pagination step
# =============================================================================


def resolve_per_page(page: PageSpec, descriptor: ResourceDescriptor) -> int:
    """Requested size (capped), else the descriptor's, else the configured default."""
    if page.per_page is not None:
        return min(page.per_page, settings.max_per_page)
    return descriptor.per_page or settings.default_per_page


def apply_pagination(query: Select, page: PageSpec, descriptor: ResourceDescriptor) -> Select:
    """Slice the ordered collection to the requested page."""
    per_page = resolve_per_page(page, descriptor)
    if page.number < 1:
        return query.limit(0)
    return query.limit(per_page).offset((page.number - 1) * per_page)


def count_rows(db: Session, query: Select) -> int:
    """Total rows of a collection, ignoring its ordering."""
    subquery = query.order_by(None).subquery()
    return db.scalar(select(func.count()).select_from(subquery)) or 0


def paginate(
    db: Session,
    query: Select,
    page: PageSpec,
    descriptor: ResourceDescriptor,
    *,
    scope: str | None = None,
) -> ResultSet:
    """
    Execute one page of an ordered collection.

    Page numbers below 1 or past the last page give an empty page; the total
    count is still reported.
    """
    per_page = resolve_per_page(page, descriptor)
    total = count_rows(db, query)
    last_page = math.ceil(total / per_page) if total else 0

    if page.number < 1 or page.number > last_page:
        items: Sequence[Any] = ()
    else:
        items = db.scalars(apply_pagination(query, page, descriptor)).all()

    return ResultSet(
        items=tuple(items),
        page=page.number,
        per_page=per_page,
        total_count=total,
        scope=scope,
    )


# =============================================================================
# Pipeline
# =============================================================================


def refine_query(base: Select, spec: RefinementSpec, descriptor: ResourceDescriptor) -> Select:
    """scope -> filter -> order, without pagination."""
    query = apply_scope(base, spec.scope, descriptor)
    query = apply_filters(query, spec.filters, descriptor)
    return apply_order(query, spec.order, descriptor)


def refine(
    db: Session,
    base: Select,
    spec: RefinementSpec,
    descriptor: ResourceDescriptor,
) -> ResultSet:
    """Run the full pipeline and execute the requested page."""
    scope = resolve_scope(spec.scope, descriptor)
    query = refine_query(base, spec, descriptor)
    return paginate(
        db,
        query,
        spec.page,
        descriptor,
        scope=scope.name if scope is not None else None,
    )
