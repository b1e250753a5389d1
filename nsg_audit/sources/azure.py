"""Inventory source for Azure subscriptions and network security groups."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from azure.core.exceptions import AzureError
from azure.identity import AzureCliCredential, DefaultAzureCredential
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import SubscriptionClient

from ..config import Settings
from ..errors import InputContractError, InventorySourceError
from ..models import AccountRef, FirewallGroupRef, NetworkRef, SubnetRef
from . import register_source

logger = logging.getLogger(__name__)

NetworkClientFactory = Callable[[Any, str], Any]


def parse_resource_id(resource_id: str) -> Tuple[str, str, str]:
    """Return ``(subscription_id, resource_group, name)`` for an ARM resource ID.

    ``/subscriptions/<sub>/resourceGroups/<rg>/providers/<ns>/<type>/<name>``
    """

    parts = resource_id.split("/")
    if len(parts) < 5 or not parts[2] or not parts[4]:
        raise InputContractError(f"Malformed Azure resource ID '{resource_id}'")
    return parts[2], parts[4], parts[-1]


def _subnet_range(subnet: Any) -> Optional[str]:
    if subnet.address_prefix:
        return subnet.address_prefix
    prefixes = getattr(subnet, "address_prefixes", None) or []
    return prefixes[0] if prefixes else None


def _rule_as_mapping(rule: Any) -> Dict[str, Any]:
    return {
        "name": rule.name,
        "priority": rule.priority,
        "direction": rule.direction,
        "access": rule.access,
        "source_address_prefix": rule.source_address_prefix,
        "source_address_prefixes": rule.source_address_prefixes,
        "destination_port_range": rule.destination_port_range,
        "destination_port_ranges": rule.destination_port_ranges,
    }


class AzureInventorySource:
    """Walks subscriptions, virtual networks, subnets and their NSGs."""

    def __init__(
        self,
        credential: Any,
        *,
        subscription_client: Any = None,
        network_client_factory: NetworkClientFactory = NetworkManagementClient,
    ) -> None:
        self._credential = credential
        self._subscription_client = subscription_client
        self._network_client_factory = network_client_factory
        self._network_clients: Dict[str, Any] = {}

    def _network_client(self, subscription_id: str) -> Any:
        client = self._network_clients.get(subscription_id)
        if client is None:
            client = self._network_client_factory(self._credential, subscription_id)
            self._network_clients[subscription_id] = client
        return client

    def list_accounts(self) -> Iterator[AccountRef]:
        if self._subscription_client is None:
            self._subscription_client = SubscriptionClient(self._credential)
        try:
            for subscription in self._subscription_client.subscriptions.list():
                yield AccountRef(
                    id=subscription.subscription_id,
                    display_name=subscription.display_name or subscription.subscription_id,
                )
        except AzureError as exc:
            raise InventorySourceError(f"Failed to list Azure subscriptions: {exc}") from exc

    def list_networks(self, account_id: str) -> Iterator[NetworkRef]:
        client = self._network_client(account_id)
        try:
            for vnet in client.virtual_networks.list_all():
                _, resource_group, _ = parse_resource_id(vnet.id)
                yield NetworkRef(id=vnet.id, name=vnet.name, resource_group=resource_group)
        except AzureError as exc:
            raise InventorySourceError(
                f"Failed to list virtual networks in subscription {account_id}: {exc}"
            ) from exc

    def list_subnets(
        self, account_id: str, resource_group: str, network_name: str
    ) -> Iterator[SubnetRef]:
        client = self._network_client(account_id)
        try:
            for subnet in client.subnets.list(resource_group, network_name):
                group = None
                nsg = subnet.network_security_group
                if nsg is not None and nsg.id:
                    _, group_rg, group_name = parse_resource_id(nsg.id)
                    group = FirewallGroupRef(id=nsg.id, resource_group=group_rg, name=group_name)
                yield SubnetRef(
                    name=subnet.name,
                    address_range=_subnet_range(subnet),
                    firewall_group=group,
                )
        except AzureError as exc:
            raise InventorySourceError(
                f"Failed to list subnets of {resource_group}/{network_name}: {exc}"
            ) from exc

    def get_firewall_group(
        self, account_id: str, resource_group: str, group_name: str
    ) -> List[Dict[str, Any]]:
        client = self._network_client(account_id)
        try:
            group = client.network_security_groups.get(resource_group, group_name)
        except AzureError as exc:
            raise InventorySourceError(
                f"Failed to get network security group {resource_group}/{group_name}: {exc}"
            ) from exc
        return [_rule_as_mapping(rule) for rule in group.security_rules or []]


def _credential(settings: Settings) -> Any:
    if settings.azure_credential == "default":
        return DefaultAzureCredential()
    if settings.tenant_id:
        return AzureCliCredential(tenant_id=settings.tenant_id)
    return AzureCliCredential()


@register_source("azure")
def azure_source(settings: Settings) -> AzureInventorySource:
    """Create an :class:`AzureInventorySource` using the configured credential."""

    logger.debug("Using Azure %s credential", settings.azure_credential)
    return AzureInventorySource(_credential(settings))


__all__ = ["AzureInventorySource", "azure_source", "parse_resource_id"]
