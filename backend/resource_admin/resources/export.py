"""
Tabular export of a refined collection.

Columns are the resource type's export attributes. Every record matching
scope and filters is exported, in list order, without pagination.
"""

from __future__ import annotations

import csv
import io
from typing import Any, Iterator, Mapping

from admin_shared.config.constants import Limits
from resource_admin.resources.params import RefinementSpec, parse_refinement
from resource_admin.resources.refinement import refine_query
from resource_admin.resources.serializers import serialize_attribute
from resource_admin.resources.service import ResourceService


def export_value(value: Any) -> Any:
    """Flatten a value for a CSV cell. Relationships arrive as related ids."""
    if value is None:
        return ""
    if isinstance(value, list):
        return Limits.LIST_SEPARATOR.join(str(export_value(item)) for item in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def iter_export_rows(
    service: ResourceService,
    spec: RefinementSpec | Mapping[str, Any] | None = None,
) -> Iterator[list[Any]]:
    """Header row, then one row per record."""
    if not isinstance(spec, RefinementSpec):
        spec = parse_refinement(spec)

    columns = service.attrs_for_export()
    yield columns

    query = refine_query(service.resources_relation(), spec, service.descriptor)
    for record in service.db.scalars(query):
        yield [export_value(serialize_attribute(record, column)) for column in columns]


def export_csv(
    service: ResourceService,
    spec: RefinementSpec | Mapping[str, Any] | None = None,
) -> str:
    """Render the export as CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    for row in iter_export_rows(service, spec):
        writer.writerow(row)
    return buffer.getvalue()
