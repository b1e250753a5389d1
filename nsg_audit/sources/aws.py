"""Inventory source for AWS accounts, VPC subnets and their network ACLs."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Settings
from ..errors import InventorySourceError
from ..models import AccountRef, FirewallGroupRef, NetworkRef, SubnetRef
from ..utils import safe_paginate, tag_value
from . import register_source

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_NUMBER = 32767
ALL_PROTOCOLS = "-1"
ORGANIZATIONS_UNAVAILABLE = {
    "AWSOrganizationsNotInUseException",
    "AccessDeniedException",
}


def _port_range(entry: dict) -> str:
    port_range = entry.get("PortRange")
    if entry.get("Protocol") == ALL_PROTOCOLS or not port_range:
        return "*"
    from_port = port_range.get("From")
    to_port = port_range.get("To")
    if from_port == to_port:
        return str(from_port)
    return f"{from_port}-{to_port}"


def subnet_range(subnet: dict) -> Optional[str]:
    """Return the IPv4 CIDR of ``subnet``, or its first IPv6 CIDR when IPv6-only."""

    if subnet.get("CidrBlock"):
        return subnet["CidrBlock"]
    for association in subnet.get("Ipv6CidrBlockAssociationSet", []):
        if association.get("Ipv6CidrBlock"):
            return association["Ipv6CidrBlock"]
    return None


def nacl_entry_to_rule(entry: dict) -> Dict[str, Any]:
    """Express a network ACL entry in the raw rule shape used by Azure NSGs."""

    number = entry["RuleNumber"]
    return {
        "name": "default" if number == DEFAULT_ENTRY_NUMBER else f"rule-{number}",
        "priority": number,
        "direction": "Outbound" if entry.get("Egress") else "Inbound",
        "access": "Allow" if entry.get("RuleAction") == "allow" else "Deny",
        "source_address_prefix": entry.get("CidrBlock") or entry.get("Ipv6CidrBlock"),
        "destination_port_range": _port_range(entry),
    }


class AwsInventorySource:
    """Walks organization accounts, VPCs, subnets and associated network ACLs.

    Member accounts are reached by assuming ``role_name``; the caller's own
    account uses ``session`` directly.  The region of the base session plays
    the part of the resource group.
    """

    def __init__(self, session: boto3.session.Session, role_name: str) -> None:
        if not session.region_name:
            raise InventorySourceError(
                "An AWS region is required. Pass --region or set AWS_REGION."
            )
        self._session = session
        self._role_name = role_name
        self._sessions: Dict[str, boto3.session.Session] = {}
        self._caller_account: Optional[str] = None
        self._vpc_ids: Dict[Tuple[str, str], str] = {}

    @property
    def region(self) -> str:
        return self._session.region_name

    def _caller_account_id(self) -> str:
        if self._caller_account is None:
            identity = self._session.client("sts").get_caller_identity()
            self._caller_account = identity["Account"]
        return self._caller_account

    def _account_session(self, account_id: str) -> boto3.session.Session:
        if account_id == self._caller_account_id():
            return self._session
        session = self._sessions.get(account_id)
        if session is None:
            role_arn = f"arn:aws:iam::{account_id}:role/{self._role_name}"
            logger.debug("Assuming %s", role_arn)
            credentials = self._session.client("sts").assume_role(
                RoleArn=role_arn, RoleSessionName="nsg-audit"
            )["Credentials"]
            session = boto3.Session(
                aws_access_key_id=credentials["AccessKeyId"],
                aws_secret_access_key=credentials["SecretAccessKey"],
                aws_session_token=credentials["SessionToken"],
                region_name=self.region,
            )
            self._sessions[account_id] = session
        return session

    def _ec2(self, account_id: str) -> Any:
        return self._account_session(account_id).client("ec2")

    def list_accounts(self) -> Iterator[AccountRef]:
        try:
            accounts = list(
                safe_paginate(self._session.client("organizations"), "list_accounts", "Accounts")
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") not in ORGANIZATIONS_UNAVAILABLE:
                raise InventorySourceError(f"Failed to list AWS accounts: {exc}") from exc
            logger.info("AWS Organizations unavailable; auditing the caller account only")
            try:
                account_id = self._caller_account_id()
            except (ClientError, BotoCoreError) as sts_exc:
                raise InventorySourceError(
                    f"Failed to identify the AWS caller account: {sts_exc}"
                ) from sts_exc
            yield AccountRef(id=account_id, display_name=account_id)
            return
        except BotoCoreError as exc:
            raise InventorySourceError(f"Failed to list AWS accounts: {exc}") from exc

        for account in accounts:
            if account.get("Status", "ACTIVE") != "ACTIVE":
                continue
            yield AccountRef(id=account["Id"], display_name=account.get("Name") or account["Id"])

    def list_networks(self, account_id: str) -> Iterator[NetworkRef]:
        try:
            vpcs = list(safe_paginate(self._ec2(account_id), "describe_vpcs", "Vpcs"))
        except (ClientError, BotoCoreError) as exc:
            raise InventorySourceError(
                f"Failed to describe VPCs in account {account_id}: {exc}"
            ) from exc

        for vpc in vpcs:
            vpc_id = vpc["VpcId"]
            name = tag_value(vpc.get("Tags")) or vpc_id
            self._vpc_ids[(account_id, name)] = vpc_id
            yield NetworkRef(id=vpc_id, name=name, resource_group=self.region)

    def list_subnets(
        self, account_id: str, resource_group: str, network_name: str
    ) -> Iterator[SubnetRef]:
        vpc_id = self._vpc_ids.get((account_id, network_name), network_name)
        vpc_filter = [{"Name": "vpc-id", "Values": [vpc_id]}]
        try:
            ec2 = self._ec2(account_id)
            subnet_acls: Dict[str, str] = {}
            for acl in safe_paginate(ec2, "describe_network_acls", "NetworkAcls", Filters=vpc_filter):
                for association in acl.get("Associations", []):
                    subnet_acls[association["SubnetId"]] = acl["NetworkAclId"]
            subnets = list(safe_paginate(ec2, "describe_subnets", "Subnets", Filters=vpc_filter))
        except (ClientError, BotoCoreError) as exc:
            raise InventorySourceError(
                f"Failed to describe subnets of {vpc_id} in account {account_id}: {exc}"
            ) from exc

        for subnet in subnets:
            subnet_id = subnet["SubnetId"]
            acl_id = subnet_acls.get(subnet_id)
            group = (
                FirewallGroupRef(id=acl_id, resource_group=resource_group, name=acl_id)
                if acl_id
                else None
            )
            yield SubnetRef(
                name=tag_value(subnet.get("Tags")) or subnet_id,
                address_range=subnet_range(subnet),
                firewall_group=group,
            )

    def get_firewall_group(
        self, account_id: str, resource_group: str, group_name: str
    ) -> List[Dict[str, Any]]:
        try:
            response = self._ec2(account_id).describe_network_acls(NetworkAclIds=[group_name])
        except (ClientError, BotoCoreError) as exc:
            raise InventorySourceError(
                f"Failed to describe network ACL {group_name}: {exc}"
            ) from exc

        rules: List[Dict[str, Any]] = []
        for acl in response.get("NetworkAcls", []):
            entries = sorted(acl.get("Entries", []), key=lambda entry: entry["RuleNumber"])
            rules.extend(nacl_entry_to_rule(entry) for entry in entries)
        return rules


@register_source("aws")
def aws_source(settings: Settings) -> AwsInventorySource:
    """Create an :class:`AwsInventorySource` from the configured profile and region."""

    try:
        session = boto3.Session(
            profile_name=settings.aws_profile, region_name=settings.aws_region
        )
    except BotoCoreError as exc:
        raise InventorySourceError(f"Failed to create AWS session: {exc}") from exc
    return AwsInventorySource(session, settings.aws_role_name)


__all__ = ["AwsInventorySource", "aws_source", "nacl_entry_to_rule", "subnet_range"]
