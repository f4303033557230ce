"""
ORM base classes shared by administered models.
"""

from .base import Base, TimestampMixin, ValidationMixin

__all__ = [
    "Base",
    "TimestampMixin",
    "ValidationMixin",
]
