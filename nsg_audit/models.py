"""Data models for discovered subnets and their inbound rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .errors import InputContractError


class RuleAction(str, Enum):
    """Outcome of a firewall rule."""

    ALLOW = "Allow"
    DENY = "Deny"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AccountRef:
    """A billable/administrative account (Azure subscription, AWS account)."""

    id: str
    display_name: str


@dataclass(frozen=True)
class NetworkRef:
    """A virtual network (Azure VNet, AWS VPC) inside an account."""

    id: str
    name: str
    resource_group: str


@dataclass(frozen=True)
class FirewallGroupRef:
    """Pointer to the firewall group attached to a subnet."""

    id: str
    resource_group: str
    name: str


@dataclass(frozen=True)
class SubnetRef:
    """A subnet as reported by an inventory source."""

    name: str
    address_range: Optional[str]
    firewall_group: Optional[FirewallGroupRef] = None


@dataclass(frozen=True)
class RuleRecord:
    """One normalized inbound firewall rule."""

    priority: int
    name: str
    source_addresses: Tuple[str, ...]
    destination_ports: Tuple[str, ...]
    action: RuleAction

    def __post_init__(self) -> None:
        if not self.source_addresses:
            raise InputContractError(f"Rule '{self.name}' has no source addresses")
        if not self.destination_ports:
            raise InputContractError(f"Rule '{self.name}' has no destination ports")


@dataclass(frozen=True)
class SubnetRecord:
    """Aggregation unit stored in the subnet registry, keyed by ``ip_range``."""

    account: str
    resource_group: str
    network_name: str
    subnet_name: str
    ip_range: str
    rules: Tuple[RuleRecord, ...] = field(default_factory=tuple)

    def label(self) -> str:
        """Return the ``account/network/subnet`` identifier used in reports."""

        return f"{self.account}/{self.network_name}/{self.subnet_name}"


@dataclass(frozen=True)
class ReportRow:
    """A single flattened (subnet, rule, source address) row."""

    subnet: str
    rule: str
    source: str
    action: str
    ports: str

    def values(self) -> Tuple[str, str, str, str, str]:
        """Return the cell values in column order."""

        return (self.subnet, self.rule, self.source, self.action, self.ports)


__all__ = [
    "AccountRef",
    "FirewallGroupRef",
    "NetworkRef",
    "ReportRow",
    "RuleAction",
    "RuleRecord",
    "SubnetRecord",
    "SubnetRef",
]
