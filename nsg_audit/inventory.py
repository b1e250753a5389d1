"""Walk an inventory source and aggregate subnets into a registry."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from .errors import InputContractError
from .models import AccountRef, NetworkRef, RuleRecord, SubnetRecord, SubnetRef
from .normalize import normalize_rules
from .registry import CollisionPolicy, SubnetRegistry
from .sources import InventorySource

logger = logging.getLogger(__name__)


def account_matches(account: AccountRef, account_filter: str) -> bool:
    """Return ``True`` when the account's display name contains ``account_filter``."""

    return account_filter in account.display_name


def _subnet_rules(
    source: InventorySource, account: AccountRef, subnet: SubnetRef
) -> Tuple[RuleRecord, ...]:
    group = subnet.firewall_group
    if group is None:
        return ()
    raw_rules = source.get_firewall_group(account.id, group.resource_group, group.name)
    return tuple(normalize_rules(raw_rules))


def _subnet_record(
    source: InventorySource, account: AccountRef, network: NetworkRef, subnet: SubnetRef
) -> SubnetRecord:
    if not subnet.address_range:
        raise InputContractError(
            f"Subnet {account.display_name}/{network.name}/{subnet.name} has no address range"
        )
    return SubnetRecord(
        account=account.display_name,
        resource_group=network.resource_group,
        network_name=network.name,
        subnet_name=subnet.name,
        ip_range=subnet.address_range,
        rules=_subnet_rules(source, account, subnet),
    )


def collect_subnet_registry(
    source: InventorySource,
    *,
    account_filter: str = "",
    policy: CollisionPolicy = CollisionPolicy.WARN,
    registry: Optional[SubnetRegistry] = None,
) -> SubnetRegistry:
    """Walk ``source`` once and return a frozen registry of every subnet found.

    Accounts whose display name does not contain ``account_filter`` are
    skipped.  Any error raised by the source or by rule normalization aborts
    the walk.
    """

    registry = registry if registry is not None else SubnetRegistry(policy)
    accounts = 0
    for account in source.list_accounts():
        if not account_matches(account, account_filter):
            logger.debug("Skipping account %s", account.display_name)
            continue
        accounts += 1
        for network in source.list_networks(account.id):
            for subnet in source.list_subnets(account.id, network.resource_group, network.name):
                record = _subnet_record(source, account, network, subnet)
                logger.debug("Collected %s (%d inbound rules)", record.label(), len(record.rules))
                registry.put(record.ip_range, record)

    logger.info("Collected %d subnet(s) from %d account(s)", len(registry), accounts)
    return registry.snapshot()


__all__ = ["account_matches", "collect_subnet_registry"]
