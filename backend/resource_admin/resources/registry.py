"""
Resource registry: explicit mapping of resource keys to service classes.

Populated at startup; the controller adapter looks resource types up by the
key in the request path.

Usage:
    registry = ResourceRegistry()
    registry.register("articles", ArticleService, policy=ResourcePolicy())

    @registry.resource("authors")
    class AuthorService(ResourceService):
        descriptor = ...
"""

from __future__ import annotations

import importlib
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, TypeVar

from admin_shared.config.logging import get_logger
from admin_shared.utils.exceptions import UnknownResourceError
from resource_admin.resources.authorization import ResourcePolicy
from resource_admin.resources.service import ResourceService

logger = get_logger(__name__)

ServiceT = TypeVar("ServiceT", bound=type[ResourceService])

_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")


@dataclass(frozen=True)
class ResourceEntry:
    """A registered resource type."""

    key: str
    service_class: type[ResourceService]
    policy: ResourcePolicy | None = None

    @property
    def descriptor(self):
        return self.service_class.descriptor


class ResourceRegistry:
    """Key -> resource service class."""

    def __init__(self) -> None:
        self._entries: dict[str, ResourceEntry] = {}

    def register(
        self,
        key: str,
        service_class: type[ResourceService],
        *,
        policy: ResourcePolicy | None = None,
    ) -> type[ResourceService]:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid resource key '{key}'")
        if key in self._entries:
            raise ValueError(f"Resource '{key}' is already registered")
        if not (isinstance(service_class, type) and issubclass(service_class, ResourceService)):
            raise TypeError(f"{service_class!r} is not a ResourceService subclass")
        if getattr(service_class, "descriptor", None) is None:
            raise TypeError(f"{service_class.__name__} does not declare a descriptor")

        self._entries[key] = ResourceEntry(key=key, service_class=service_class, policy=policy)
        logger.debug("Registered resource", resource=key, service=service_class.__name__)
        return service_class

    def resource(self, key: str, *, policy: ResourcePolicy | None = None) -> Callable[[ServiceT], ServiceT]:
        """Class decorator form of ``register``."""

        def decorator(service_class: ServiceT) -> ServiceT:
            self.register(key, service_class, policy=policy)
            return service_class

        return decorator

    def get(self, key: str) -> ResourceEntry:
        """
        Raises:
            UnknownResourceError: If nothing is registered under ``key``.
        """
        entry = self._entries.get(key)
        if entry is None:
            raise UnknownResourceError(key)
        return entry

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[ResourceEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


# Default registry used by the application factory
registry = ResourceRegistry()


def load_registry(modules: Iterable[str], default: ResourceRegistry | None = None) -> ResourceRegistry:
    """
    Import modules that register resource types and return their registry.

    A module exposing a ``registry`` attribute (a ResourceRegistry) provides
    it; otherwise registrations are expected on ``default`` (the module-level
    registry when not given).

    Raises:
        ImportError: If a module cannot be imported.
    """
    modules = list(modules)
    loaded = default if default is not None else registry
    for name in modules:
        module = importlib.import_module(name)
        candidate = getattr(module, "registry", None)
        if isinstance(candidate, ResourceRegistry):
            loaded = candidate
    logger.debug("Loaded resource modules", modules=modules, resources=loaded.keys())
    return loaded
