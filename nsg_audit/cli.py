"""Command line interface for the network security rule report."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import AZURE_CREDENTIAL_KINDS, Settings
from .inventory import collect_subnet_registry
from .registry import CollisionPolicy
from .report import export_rows_to_json, flatten_registry, print_report_summary, write_report
from .sources import SOURCES, create_source


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        description="Report inbound network security rules for every subnet in a cloud account hierarchy."
    )
    parser.add_argument(
        "--provider",
        choices=sorted(SOURCES),
        default=None,
        help="Inventory provider (default: $NSG_AUDIT_PROVIDER or azure)",
    )
    parser.add_argument(
        "--account-filter",
        default=None,
        help="Only audit accounts whose name contains this text "
        "(default: $SUBSCRIPTION_MUST_CONTAIN_STR)",
    )
    parser.add_argument("--tenant-id", default=None, help="Azure tenant ID (default: $AZURE_TENANT_ID)")
    parser.add_argument(
        "--azure-credential",
        choices=AZURE_CREDENTIAL_KINDS,
        default=None,
        help="Azure credential to use: the Azure CLI login or DefaultAzureCredential",
    )
    parser.add_argument("--profile", dest="aws_profile", default=None, help="AWS CLI profile to use")
    parser.add_argument("--region", dest="aws_region", default=None, help="AWS region to inventory")
    parser.add_argument(
        "--role-name",
        dest="aws_role_name",
        default=None,
        help="IAM role assumed in member accounts (default: OrganizationAccountAccessRole)",
    )
    parser.add_argument(
        "--output",
        dest="output_path",
        default=None,
        help="Path of the Excel workbook to write (default: NSG-QA.xlsx)",
    )
    parser.add_argument("--sheet", dest="sheet_name", default=None, help="Name of the report sheet")
    parser.add_argument(
        "--on-collision",
        dest="collision_policy",
        choices=[policy.value for policy in CollisionPolicy],
        default=None,
        help="How to handle two subnets sharing an address range (default: warn)",
    )
    parser.add_argument("--json", dest="json_path", help="Optional path to export report rows as JSON")
    parser.add_argument(
        "--print",
        dest="print_rows",
        action="store_true",
        help="Print the report rows to stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v for progress, -vv for debug output)",
    )
    return parser.parse_args(argv)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point used by ``python -m nsg_audit``."""

    args = parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = Settings.from_env().with_overrides(
            provider=args.provider,
            account_filter=args.account_filter,
            tenant_id=args.tenant_id,
            azure_credential=args.azure_credential,
            aws_profile=args.aws_profile,
            aws_region=args.aws_region,
            aws_role_name=args.aws_role_name,
            output_path=args.output_path,
            sheet_name=args.sheet_name,
            collision_policy=args.collision_policy,
        )
        source = create_source(settings)
        registry = collect_subnet_registry(
            source,
            account_filter=settings.account_filter,
            policy=settings.collision_policy,
        )
    except (RuntimeError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.print_rows:
        print_report_summary(flatten_registry(registry))

    try:
        path = write_report(registry, settings.output_path, sheet_name=settings.sheet_name)
    except RuntimeError as exc:
        print(f"Failed to write report: {exc}", file=sys.stderr)
        return 1
    print(f"Report for {len(registry)} subnet(s) written to {path}")

    if args.json_path:
        try:
            export_rows_to_json(flatten_registry(registry), args.json_path)
        except RuntimeError as exc:
            print(f"Failed to export JSON report: {exc}", file=sys.stderr)
            return 1
        print(f"Report rows exported to {args.json_path}")

    return 0


__all__ = ["main", "parse_args"]
