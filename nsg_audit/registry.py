"""Registry of discovered subnets keyed by their address range."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterator, Optional

from .errors import RegistryFrozenError, SubnetCollisionError
from .models import SubnetRecord

logger = logging.getLogger(__name__)


class CollisionPolicy(str, Enum):
    """What to do when a subnet's address range is already registered."""

    OVERWRITE = "overwrite"
    WARN = "warn"
    ERROR = "error"


class SubnetRegistry:
    """Mapping of ``ip_range`` to :class:`SubnetRecord`.

    Later registrations of the same range replace earlier ones.  Iteration
    follows insertion order, so a registry built from the same walk always
    enumerates in the same order.
    """

    def __init__(self, policy: CollisionPolicy = CollisionPolicy.WARN) -> None:
        self._subnets: Dict[str, SubnetRecord] = {}
        self._policy = CollisionPolicy(policy)
        self._frozen = False

    @property
    def policy(self) -> CollisionPolicy:
        return self._policy

    @property
    def frozen(self) -> bool:
        return self._frozen

    def put(self, ip_range: str, record: SubnetRecord) -> None:
        """Register ``record`` under ``ip_range``, replacing any existing entry."""

        if self._frozen:
            raise RegistryFrozenError("Cannot modify a registry snapshot")

        existing = self._subnets.get(ip_range)
        if existing is not None and existing != record:
            if self._policy is CollisionPolicy.ERROR:
                raise SubnetCollisionError(
                    f"Address range {ip_range} is used by both {existing.label()} "
                    f"and {record.label()}"
                )
            if self._policy is CollisionPolicy.WARN:
                logger.warning(
                    "Address range %s of %s replaces %s",
                    ip_range,
                    record.label(),
                    existing.label(),
                )
        self._subnets[ip_range] = record

    def lookup(self, ip_range: str) -> Optional[SubnetRecord]:
        """Return the subnet registered under ``ip_range``, if any."""

        return self._subnets.get(ip_range)

    def all(self) -> Iterator[SubnetRecord]:
        """Iterate over registered subnets in insertion order."""

        return iter(list(self._subnets.values()))

    def snapshot(self) -> "SubnetRegistry":
        """Return a frozen copy of the registry for report generation."""

        copy = SubnetRegistry(self._policy)
        copy._subnets = dict(self._subnets)
        copy._frozen = True
        return copy

    def __contains__(self, ip_range: object) -> bool:
        return ip_range in self._subnets

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._subnets))

    def __len__(self) -> int:
        return len(self._subnets)


__all__ = ["CollisionPolicy", "SubnetRegistry"]
