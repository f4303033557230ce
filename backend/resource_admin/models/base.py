"""
Base class and mixins for ORM models administered as resources.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """
    Mixin providing created/updated timestamps.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )


class ValidationMixin:
    """
    Mixin giving a model its own validation and an error collection.

    Subclasses list mandatory attributes in ``__required__`` and may override
    ``validate()`` to add rules with ``add_error()``. Errors are kept on the
    instance (not persisted) and reset on every ``is_valid()`` call.

    Usage:
        class Article(ValidationMixin, Base):
            __required__ = ("title",)

            def validate(self) -> None:
                super().validate()
                if self.title and len(self.title) > 200:
                    self.add_error("title", "is too long")
    """

    __required__: tuple[str, ...] = ()

    @property
    def errors(self) -> dict[str, list[str]]:
        """Validation errors keyed by attribute name."""
        errors = getattr(self, "_validation_errors", None)
        if errors is None:
            errors = {}
            self._validation_errors = errors
        return errors

    def add_error(self, attribute: str, message: str) -> None:
        self.errors.setdefault(attribute, []).append(message)

    def validate(self) -> None:
        for attribute in self.__required__:
            value: Any = getattr(self, attribute, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                self.add_error(attribute, "can't be blank")

    def is_valid(self) -> bool:
        self.errors.clear()
        self.validate()
        return not self.errors
