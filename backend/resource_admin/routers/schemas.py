"""
Pydantic response schemas for the resource endpoints.
"""

from typing import Any

from pydantic import BaseModel, Field


class PaginationOutput(BaseModel):
    """Pagination metadata of a listing."""

    page: int
    per_page: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class ResourceListOutput(BaseModel):
    """One page of a resource listing."""

    items: list[dict[str, Any]]
    pagination: PaginationOutput
    scope: str | None = None
    scopes: dict[str, int] = Field(default_factory=dict)
    batch_actions: list[str] = Field(default_factory=list)
    confirm_batch_actions: list[str] = Field(default_factory=list)


class BatchActionOutput(BaseModel):
    """Outcome of a batch action request."""

    batch_action: str | None
    performed: bool
    count: int = 0
    ids: list[Any] = Field(default_factory=list)
    location: str | None = None


class ResourceSummaryOutput(BaseModel):
    """Registered resource type and its declarations."""

    key: str
    name: str
    index: list[str]
    show: list[str]
    form: list[str]
    export: list[str]
    scopes: list[str]
    default_scope: str | None
    filters: dict[str, str]
    filter_choices: dict[str, list[Any]] = Field(default_factory=dict)
    orderable: list[str]
    batch_actions: list[str]
    confirm_batch_actions: list[str] = Field(default_factory=list)
