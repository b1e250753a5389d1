"""Inventory sources and the registry used to select them by name."""
from __future__ import annotations

import importlib
import pkgutil
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, Mapping, Protocol

from ..config import Settings
from ..models import AccountRef, NetworkRef, SubnetRef


class InventorySource(Protocol):
    """Read-only view of a cloud account hierarchy."""

    def list_accounts(self) -> Iterable[AccountRef]:
        ...

    def list_networks(self, account_id: str) -> Iterable[NetworkRef]:
        ...

    def list_subnets(
        self, account_id: str, resource_group: str, network_name: str
    ) -> Iterable[SubnetRef]:
        ...

    def get_firewall_group(
        self, account_id: str, resource_group: str, group_name: str
    ) -> Iterable[Mapping[str, Any]]:
        ...


SourceFactory = Callable[[Settings], InventorySource]


class SourceRegistry:
    """Registry that stores inventory source factories."""

    def __init__(self) -> None:
        self._factories: Dict[str, SourceFactory] = {}

    @staticmethod
    def _normalize(name: str) -> str:
        if not name:
            raise ValueError("Source name must be a non-empty string")
        return name.strip().lower()

    def register(self, name: str) -> Callable[[SourceFactory], SourceFactory]:
        """Return a decorator that registers *name* for the wrapped factory."""

        normalized = self._normalize(name)

        def decorator(func: SourceFactory) -> SourceFactory:
            if normalized in self._factories and self._factories[normalized] is not func:
                raise ValueError(f"Source '{name}' is already registered")
            self._factories[normalized] = func
            return func

        return decorator

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self._normalize(name) in self._factories

    def __getitem__(self, name: str) -> SourceFactory:
        return self._factories[self._normalize(name)]

    def keys(self) -> Iterator[str]:
        return iter(self._factories)

    def as_mapping(self) -> Mapping[str, SourceFactory]:
        return MappingProxyType(self._factories)


SOURCE_REGISTRY = SourceRegistry()
register_source = SOURCE_REGISTRY.register


def create_source(settings: Settings) -> InventorySource:
    """Build the inventory source named by ``settings.provider``."""

    if settings.provider not in SOURCE_REGISTRY:
        valid = ", ".join(sorted(SOURCE_REGISTRY.keys()))
        raise ValueError(f"Unknown provider '{settings.provider}'. Valid providers: {valid}")
    return SOURCE_REGISTRY[settings.provider](settings)


def _import_source_modules() -> None:
    """Import modules that register sources via decorators."""

    package_paths = getattr(__spec__, "submodule_search_locations", None)
    if not package_paths:
        return

    for module_info in pkgutil.iter_modules(package_paths):
        if module_info.name.startswith("_"):
            continue
        importlib.import_module(f"{__name__}.{module_info.name}")


_import_source_modules()

SOURCES: Mapping[str, SourceFactory] = SOURCE_REGISTRY.as_mapping()

__all__ = [
    "InventorySource",
    "SOURCES",
    "SOURCE_REGISTRY",
    "SourceFactory",
    "SourceRegistry",
    "create_source",
    "register_source",
]
