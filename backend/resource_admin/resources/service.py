"""
Resource Service: the per-resource-type facade.

Architecture:
    Controller adapter -> ResourceService -> refinement pipeline -> Select

A resource type is declared by subclassing ResourceService and assigning an
immutable ResourceDescriptor. Instances are cheap and request-scoped: each
request builds its own service around its own session.

Usage:
    class ArticleService(ResourceService):
        descriptor = ResourceDescriptor(
            model=Article,
            index=("title", "published"),
            form=("title", "body", "author"),
            scopes=[ScopeDef("published", published_scope)],
        )

    service = ArticleService(db, admin_user=user)
    page = service.resources({"scope": "published", "page": "2"})
    article = service.find(42)
    if not service.update(article, {"title": "New"}):
        article.errors
"""

from __future__ import annotations

from typing import Any, ClassVar, Mapping, Sequence

from sqlalchemy import Select, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_shared.config.logging import get_logger
from admin_shared.infrastructure.db import safe_commit
from admin_shared.utils.exceptions import NotFoundError
from resource_admin.models.base import ValidationMixin
from resource_admin.resources.descriptor import BatchActionDef, ResourceDescriptor
from resource_admin.resources.params import RefinementSpec, parse_refinement
from resource_admin.resources.refinement import (
    INVALID,
    ResultSet,
    coerce_value,
    count_rows,
    refine,
)

logger = get_logger(__name__)

BASE_ERROR_KEY = "base"


class ResourceService:
    """
    Uniform CRUD, listing and attribute-list access for one resource type.

    Subclasses must define ``descriptor``. They may override
    ``resources_relation`` to narrow the base collection (every listing,
    lookup and batch target resolution goes through it).
    """

    descriptor: ClassVar[ResourceDescriptor]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        descriptor = cls.__dict__.get("descriptor")
        if descriptor is not None and not isinstance(descriptor, ResourceDescriptor):
            raise TypeError(f"{cls.__name__}.descriptor must be a ResourceDescriptor")

    def __init__(self, db: Session, *, admin_user: dict | None = None):
        if not isinstance(getattr(type(self), "descriptor", None), ResourceDescriptor):
            raise TypeError(f"{type(self).__name__} does not declare a descriptor")
        self._db = db
        self._admin_user = admin_user

    @property
    def db(self) -> Session:
        """Database session."""
        return self._db

    @property
    def admin_user(self) -> dict | None:
        """Authenticated admin user, when authentication is enabled."""
        return self._admin_user

    @property
    def resource_class(self) -> type:
        return self.descriptor.model

    @property
    def resource_name(self) -> str:
        return self.descriptor.resource_name

    # =========================================================================
    # Read Operations
    # =========================================================================

    def resources_relation(self) -> Select:
        """The base collection: all records of the resource type."""
        return select(self.resource_class)

    def resources(self, spec: RefinementSpec | Mapping[str, Any] | None = None) -> ResultSet:
        """
        Run the refinement pipeline over ``resources_relation``.

        Accepts a parsed RefinementSpec or a raw parameter map.
        """
        if not isinstance(spec, RefinementSpec):
            spec = parse_refinement(spec)
        return refine(self._db, self.resources_relation(), spec, self.descriptor)

    def scope_counts(self) -> dict[str, int]:
        """Record count of every declared scope over the unfiltered base collection."""
        base = self.resources_relation()
        return {
            name: count_rows(self._db, scope.apply(base))
            for name, scope in self.descriptor.scopes.items()
        }

    def find(self, identifier: Any) -> Any:
        """
        Look up one record.

        Resource types declaring a ``slug_field`` are looked up by slug first,
        then by primary key.

        Raises:
            NotFoundError: If nothing matches.
        """
        entity = None
        slug_field = self.descriptor.slug_field
        if slug_field is not None:
            column = self.descriptor.column(slug_field)
            if column is not None:
                entity = self._db.scalar(
                    self.resources_relation().where(column == str(identifier)).limit(1)
                )

        if entity is None:
            primary_key = self.descriptor.primary_key
            value = coerce_value(primary_key, identifier)
            if value is not INVALID:
                entity = self._db.scalar(self.resources_relation().where(primary_key == value))

        if entity is None:
            raise NotFoundError(self.resource_name, identifier)
        return entity

    def find_many(self, ids: Sequence[Any]) -> list[Any]:
        """Records for the given ids, in primary key order. Unknown or invalid ids are skipped."""
        primary_key = self.descriptor.primary_key
        values = [coerce_value(primary_key, identifier) for identifier in ids]
        values = [value for value in values if value is not INVALID]
        if not values:
            return []
        query = self.resources_relation().where(primary_key.in_(values)).order_by(primary_key)
        return list(self._db.scalars(query).all())

    # =========================================================================
    # Write Operations
    # =========================================================================

    def build(self, attrs: Mapping[str, Any] | None = None) -> Any:
        """Construct an unsaved record, optionally pre-populated. Never persists."""
        entity = self.resource_class()
        if attrs:
            self._assign_attributes(entity, attrs)
        return entity

    def create(self, entity: Any) -> bool:
        """
        Persist a built record.

        Returns False when validation or the database rejects it; the errors
        are then on ``entity.errors`` and nothing is persisted.
        """
        if not self._validate(entity):
            logger.info(
                "Create rejected by validation",
                resource=self.resource_name,
                fields=sorted(entity.errors),
            )
            return False

        self._db.add(entity)
        if not self._commit(entity, "create"):
            return False

        self._db.refresh(entity)
        return True

    def update(self, entity: Any, attrs: Mapping[str, Any]) -> bool:
        """
        Apply attributes and persist.

        A rejected update detaches the entity from the session, so the
        attempted values stay on the instance (for re-rendering) but are
        never flushed.
        """
        self._assign_attributes(entity, attrs)

        if not self._validate(entity):
            logger.info(
                "Update rejected by validation",
                resource=self.resource_name,
                fields=sorted(entity.errors),
            )
            if entity in self._db:
                self._db.expunge(entity)
            return False

        if not self._commit(entity, "update"):
            return False

        self._db.refresh(entity)
        return True

    def destroy(self, entity: Any) -> bool:
        """Delete the record permanently. Does not re-check existence."""
        self._db.delete(entity)
        return self._commit(entity, "destroy")

    def destroy_many(self, records: Sequence[Any]) -> bool:
        """Delete every record in a single transaction."""
        for record in records:
            self._db.delete(record)
        try:
            safe_commit(self._db)
        except SQLAlchemyError:
            logger.error(
                "Failed to destroy records",
                resource=self.resource_name,
                count=len(records),
                exc_info=True,
            )
            return False
        return True

    # =========================================================================
    # Attribute lists
    # =========================================================================

    def attrs_for_index(self) -> list[str]:
        return list(self.descriptor.index)

    def attrs_for_show(self) -> list[str]:
        return list(self.descriptor.show)

    def attrs_for_form(self) -> list[str]:
        return list(self.descriptor.form)

    def attrs_for_export(self) -> list[str]:
        return list(self.descriptor.export)

    # =========================================================================
    # Batch actions
    # =========================================================================

    def batch_action_definition(self, name: str) -> BatchActionDef | None:
        return self.descriptor.batch_actions.get(name)

    def batch_actions_for_scope(self, scope: str | None, *, confirm: bool | None = None) -> list[str]:
        """Batch actions offered in ``scope``; ``confirm`` narrows them by that flag."""
        return [
            action.name
            for action in self.descriptor.batch_actions_for_scope(scope)
            if confirm is None or action.confirm is confirm
        ]

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _assign_attributes(self, entity: Any, attrs: Mapping[str, Any]) -> None:
        mapper = inspect(self.resource_class)
        assignable = set(mapper.column_attrs.keys()) | set(mapper.relationships.keys())
        for name, value in attrs.items():
            if name not in assignable:
                logger.debug("Ignoring unknown attribute", resource=self.resource_name, attribute=name)
                continue
            setattr(entity, name, value)

    def _validate(self, entity: ValidationMixin) -> bool:
        valid = entity.is_valid()

        # Submitted strings are converted to column types; unconvertible
        # values become validation errors instead of database errors.
        mapper = inspect(self.resource_class)
        for name in mapper.column_attrs.keys():
            value = getattr(entity, name)
            if value is None or not isinstance(value, str):
                continue
            column = getattr(self.resource_class, name)
            coerced = coerce_value(column, value)
            if coerced is INVALID:
                entity.add_error(name, "is invalid")
                valid = False
            elif coerced != value:
                setattr(entity, name, coerced)

        return valid

    def _commit(self, entity: Any, operation: str) -> bool:
        try:
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to {operation} resource",
                resource=self.resource_name,
                error=str(e),
            )
            if isinstance(entity, ValidationMixin):
                entity.add_error(BASE_ERROR_KEY, f"could not {operation} record")
            return False
        return True
