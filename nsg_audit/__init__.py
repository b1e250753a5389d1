"""Inbound network security rule inventory and report generation."""

from __future__ import annotations

from .cells import step_column, step_row
from .inventory import collect_subnet_registry
from .models import ReportRow, RuleAction, RuleRecord, SubnetRecord
from .normalize import normalize_rule, normalize_rules
from .registry import CollisionPolicy, SubnetRegistry
from .report import flatten_registry, layout_report_cells, write_report
from .resolver import resolve_source

__all__ = [
    "CollisionPolicy",
    "ReportRow",
    "RuleAction",
    "RuleRecord",
    "SubnetRecord",
    "SubnetRegistry",
    "collect_subnet_registry",
    "flatten_registry",
    "layout_report_cells",
    "normalize_rule",
    "normalize_rules",
    "resolve_source",
    "step_column",
    "step_row",
    "write_report",
]
