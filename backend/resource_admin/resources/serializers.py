"""
Render records as plain values restricted to an attribute list.

Shared by the JSON endpoints and the CSV export so both render
relationships the same way.
"""

from typing import Any, Iterable

from sqlalchemy import inspect


def serialize_attribute(record: Any, name: str) -> Any:
    """
    Column attributes render as their value; to-one relationships as the
    related primary key; collections as a list of primary keys.
    """
    mapper = inspect(type(record))
    if name in mapper.relationships.keys():
        related = getattr(record, name)
        if related is None:
            return None
        if mapper.relationships[name].uselist:
            return [_identity(item) for item in related]
        return _identity(related)
    return getattr(record, name, None)


def _identity(record: Any) -> Any:
    identity = inspect(record).identity
    if identity is None:
        return None
    return identity[0] if len(identity) == 1 else list(identity)


def serialize(record: Any, attributes: Iterable[str], *, include_id: bool = True) -> dict[str, Any]:
    """Dict of the given attributes, led by the primary key."""
    data: dict[str, Any] = {}
    if include_id:
        data["id"] = _identity(record)
    for name in attributes:
        data[name] = serialize_attribute(record, name)
    return data
