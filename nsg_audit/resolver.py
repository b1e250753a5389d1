"""Translate rule source ranges into names of known subnets."""
from __future__ import annotations

from .registry import SubnetRegistry


def resolve_source(registry: SubnetRegistry, value: str) -> str:
    """Return the ``account/network/subnet`` label for ``value`` when known.

    Only exact matches on the registry key resolve; ``10.0.1.0/25`` does not
    resolve against a registered ``10.0.1.0/24``.  Unknown values are returned
    unchanged.
    """

    record = registry.lookup(value)
    if record is None:
        return value
    return record.label()


class SourceResolver:
    """Callable bound to a registry, used while flattening a report."""

    def __init__(self, registry: SubnetRegistry) -> None:
        self._registry = registry

    def __call__(self, value: str) -> str:
        return resolve_source(self._registry, value)


__all__ = ["SourceResolver", "resolve_source"]
