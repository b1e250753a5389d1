"""Flatten a subnet registry into spreadsheet rows and write the report."""
from __future__ import annotations

import json
from dataclasses import asdict
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from openpyxl import Workbook
from openpyxl.utils.exceptions import IllegalCharacterError
from openpyxl.worksheet.worksheet import Worksheet

from .cells import FIRST_COLUMN, split_address, step_column, step_row
from .errors import ReportWriteError
from .models import ReportRow, SubnetRecord
from .registry import SubnetRegistry
from .resolver import SourceResolver

DEFAULT_SHEET_NAME = "NSGRules"
DEFAULT_REPORT_PATH = "NSG-QA.xlsx"
PORT_SEPARATOR = ","
MAX_COLUMN_WIDTH = 60


def _subnet_rows(subnet: SubnetRecord, resolve: SourceResolver) -> Iterator[ReportRow]:
    label = subnet.label()
    for rule in subnet.rules:
        ports = PORT_SEPARATOR.join(rule.destination_ports)
        for source in rule.source_addresses:
            yield ReportRow(
                subnet=label,
                rule=rule.name,
                source=resolve(source),
                action=rule.action.value,
                ports=ports,
            )


def flatten_registry(registry: SubnetRegistry) -> Iterator[ReportRow]:
    """Yield one row per (subnet, rule, source address) in traversal order."""

    resolve = SourceResolver(registry)
    for subnet in registry.all():
        yield from _subnet_rows(subnet, resolve)


def layout_report_cells(
    registry: SubnetRegistry, start: str = f"{FIRST_COLUMN}1"
) -> Iterator[Tuple[str, str]]:
    """Yield ``(address, value)`` pairs for every populated report cell.

    Each row is written left to right with :func:`step_column` and followed by
    a :func:`step_row`.  Every subnet ends with one extra :func:`step_row`,
    leaving a blank row before the next subnet.
    """

    split_address(start)
    resolve = SourceResolver(registry)
    cell = start
    for subnet in registry.all():
        for row in _subnet_rows(subnet, resolve):
            values = row.values()
            yield cell, values[0]
            for value in values[1:]:
                cell = step_column(cell)
                yield cell, value
            cell = step_row(cell)
        cell = step_row(cell)


class SheetWriter(Protocol):
    """Minimal spreadsheet interface needed to persist the report."""

    def new_sheet(self, name: str) -> object:
        ...

    def set_cell(self, sheet: object, address: str, value: str) -> None:
        ...

    def set_active_sheet(self, sheet: object) -> None:
        ...

    def save_as(self, path: str) -> None:
        ...


class OpenpyxlSheetWriter:
    """:class:`SheetWriter` backed by an :mod:`openpyxl` workbook."""

    def __init__(self) -> None:
        self.workbook = Workbook()
        self._pristine = True
        self._widths: Dict[str, Dict[str, int]] = {}

    def new_sheet(self, name: str) -> Worksheet:
        if self._pristine:
            # Reuse the empty sheet every new workbook starts with.
            sheet = self.workbook.active
            sheet.title = name
            self._pristine = False
        else:
            sheet = self.workbook.create_sheet(title=name)
        self._widths[sheet.title] = {}
        return sheet

    def set_cell(self, sheet: Worksheet, address: str, value: str) -> None:
        sheet[address] = value
        column, _ = split_address(address)
        widths = self._widths.setdefault(sheet.title, {})
        widths[column] = max(widths.get(column, 0), len(str(value)))

    def set_active_sheet(self, sheet: Worksheet) -> None:
        self.workbook.active = sheet

    def save_as(self, path: str) -> None:
        for title, widths in self._widths.items():
            sheet = self.workbook[title]
            for column, width in widths.items():
                sheet.column_dimensions[column].width = min(width + 2, MAX_COLUMN_WIDTH)
        self.workbook.save(path)


def write_report(
    registry: SubnetRegistry,
    path: str = DEFAULT_REPORT_PATH,
    *,
    sheet_name: str = DEFAULT_SHEET_NAME,
    writer: Optional[SheetWriter] = None,
) -> str:
    """Write the flattened rule report for ``registry`` to ``path``.

    Raises :class:`ReportWriteError` if the sheet cannot be created, a cell
    value is rejected, or the workbook cannot be saved.
    """

    writer = writer or OpenpyxlSheetWriter()
    try:
        sheet = writer.new_sheet(sheet_name)
    except ValueError as exc:
        raise ReportWriteError(f"Failed to create sheet '{sheet_name}': {exc}") from exc

    for address, value in layout_report_cells(registry):
        try:
            writer.set_cell(sheet, address, value)
        except (IllegalCharacterError, ValueError) as exc:
            raise ReportWriteError(f"Failed to write cell {address}: {exc}") from exc

    writer.set_active_sheet(sheet)
    try:
        writer.save_as(path)
    except OSError as exc:
        raise ReportWriteError(f"Failed to save report to {path}: {exc}") from exc
    return path


def export_rows_to_json(rows: Iterable[ReportRow], path: str) -> str:
    """Write ``rows`` to ``path`` as a JSON array of objects."""

    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump([asdict(row) for row in rows], fh, indent=2)
    except OSError as exc:
        raise ReportWriteError(f"Failed to write JSON report to {path}: {exc}") from exc
    return path


def print_report_summary(rows: Iterable[ReportRow]) -> None:
    """Pretty-print report rows to stdout."""

    rows = list(rows)
    if not rows:
        print("No inbound rules found.")
        return

    header = f"{'Subnet':<40} {'Rule':<24} {'Action':<6} {'Ports':<16} Source"
    print(header)
    print("-" * len(header))
    lines: List[str] = []
    for row in rows:
        subnet = (row.subnet[:37] + "...") if len(row.subnet) > 40 else row.subnet
        rule = (row.rule[:21] + "...") if len(row.rule) > 24 else row.rule
        ports = (row.ports[:13] + "...") if len(row.ports) > 16 else row.ports
        lines.append(f"{subnet:<40} {rule:<24} {row.action:<6} {ports:<16} {row.source}")
    print("\n".join(lines))
    print(f"\n{len(rows)} rule row(s).")


__all__ = [
    "DEFAULT_REPORT_PATH",
    "DEFAULT_SHEET_NAME",
    "OpenpyxlSheetWriter",
    "SheetWriter",
    "export_rows_to_json",
    "flatten_registry",
    "layout_report_cells",
    "print_report_summary",
    "write_report",
]
