"""Tests for report flattening, cell layout and workbook output."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List, Tuple

import pytest
from openpyxl import load_workbook


PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


from nsg_audit.errors import ReportWriteError
from nsg_audit.models import ReportRow, RuleAction, RuleRecord, SubnetRecord
from nsg_audit.registry import SubnetRegistry
from nsg_audit.report import (
    export_rows_to_json,
    flatten_registry,
    layout_report_cells,
    print_report_summary,
    write_report,
)


def _rule(name: str, sources: Tuple[str, ...], ports: Tuple[str, ...] = ("443",)) -> RuleRecord:
    return RuleRecord(
        priority=100,
        name=name,
        source_addresses=sources,
        destination_ports=ports,
        action=RuleAction.ALLOW,
    )


def _registry(*subnets: SubnetRecord) -> SubnetRegistry:
    registry = SubnetRegistry()
    for subnet in subnets:
        registry.put(subnet.ip_range, subnet)
    return registry.snapshot()


def _subnet(name: str, ip_range: str, *rules: RuleRecord) -> SubnetRecord:
    return SubnetRecord(
        account="Acct",
        resource_group="rg",
        network_name="vnetX",
        subnet_name=name,
        ip_range=ip_range,
        rules=tuple(rules),
    )


def _two_by_two() -> SubnetRegistry:
    return _registry(
        _subnet("S1", "10.0.1.0/24", _rule("r1", ("1.1.1.1", "2.2.2.2"))),
        _subnet("S2", "10.0.2.0/24", _rule("r2", ("3.3.3.3", "4.4.4.4"))),
    )


def test_one_row_per_subnet_rule_and_source() -> None:
    """Two subnets with one rule of two sources each give four rows."""

    rows = list(flatten_registry(_two_by_two()))

    assert len(rows) == 4
    assert [row.source for row in rows] == ["1.1.1.1", "2.2.2.2", "3.3.3.3", "4.4.4.4"]


def test_ports_are_joined_into_one_cell() -> None:
    """Destination ports are comma-joined rather than split across rows."""

    registry = _registry(
        _subnet("S1", "10.0.1.0/24", _rule("web", ("Internet",), ("80", "443", "8000-8080")))
    )

    rows = list(flatten_registry(registry))

    assert rows == [
        ReportRow(
            subnet="Acct/vnetX/S1",
            rule="web",
            source="Internet",
            action="Allow",
            ports="80,443,8000-8080",
        )
    ]


def test_sources_referring_to_other_subnets_are_resolved() -> None:
    """A rule allowing another subnet's range reports that subnet's name."""

    registry = _registry(
        _subnet("S1", "10.0.1.0/24"),
        _subnet("S2", "10.0.2.0/24", _rule("r1", ("10.0.1.0/24",))),
    )

    (row,) = list(flatten_registry(registry))

    assert row.subnet == "Acct/vnetX/S2"
    assert row.source == "Acct/vnetX/S1"
    assert row.action == "Allow"
    assert row.ports == "443"


def test_layout_steps_columns_then_rows_with_subnet_separator() -> None:
    """Rows fill A to E and each subnet is followed by a blank row."""

    cells = dict(layout_report_cells(_two_by_two()))

    assert sorted({address[0] for address in cells}) == ["A", "B", "C", "D", "E"]
    assert sorted({int(address[1:]) for address in cells}) == [1, 2, 4, 5]
    assert cells["A1"] == "Acct/vnetX/S1"
    assert cells["B1"] == "r1"
    assert cells["C2"] == "2.2.2.2"
    assert cells["A4"] == "Acct/vnetX/S2"
    assert cells["E5"] == "443"


def test_subnet_without_rules_still_leaves_a_blank_row() -> None:
    """An empty subnet consumes one separator row and nothing else."""

    registry = _registry(
        _subnet("empty", "10.0.9.0/24"),
        _subnet("S1", "10.0.1.0/24", _rule("r1", ("1.1.1.1",))),
    )

    cells = dict(layout_report_cells(registry))

    assert "A1" not in cells
    assert cells["A2"] == "Acct/vnetX/S1"


def test_layout_honours_start_address() -> None:
    """Layout can begin from any valid address."""

    registry = _registry(_subnet("S1", "10.0.1.0/24", _rule("r1", ("1.1.1.1",))))

    addresses = [address for address, _ in layout_report_cells(registry, start="A3")]

    assert addresses == ["A3", "B3", "C3", "D3", "E3"]


class RecordingWriter:
    """In-memory sheet writer capturing calls for assertions."""

    def __init__(self, fail_on_save: bool = False) -> None:
        self.cells: Dict[str, str] = {}
        self.calls: List[str] = []
        self.fail_on_save = fail_on_save

    def new_sheet(self, name: str) -> str:
        self.calls.append(f"new_sheet:{name}")
        return name

    def set_cell(self, sheet: str, address: str, value: str) -> None:
        self.cells[address] = value

    def set_active_sheet(self, sheet: str) -> None:
        self.calls.append(f"active:{sheet}")

    def save_as(self, path: str) -> None:
        if self.fail_on_save:
            raise PermissionError(f"cannot write {path}")
        self.calls.append(f"save:{path}")


def test_write_report_uses_the_sheet_writer_in_order() -> None:
    """The sheet is created, filled, activated and saved exactly once."""

    writer = RecordingWriter()

    path = write_report(_two_by_two(), "out.xlsx", sheet_name="Rules", writer=writer)

    assert path == "out.xlsx"
    assert writer.calls == ["new_sheet:Rules", "active:Rules", "save:out.xlsx"]
    assert len(writer.cells) == 20


def test_write_report_wraps_save_failures() -> None:
    """Save errors surface as :class:`ReportWriteError`."""

    with pytest.raises(ReportWriteError, match="cannot write"):
        write_report(_two_by_two(), "out.xlsx", writer=RecordingWriter(fail_on_save=True))


def test_write_report_creates_workbook(tmp_path: Path) -> None:
    """The workbook contains a single active sheet with the report rows."""

    path = tmp_path / "NSG-QA.xlsx"

    write_report(_two_by_two(), str(path))

    workbook = load_workbook(path)
    assert workbook.sheetnames == ["NSGRules"]
    sheet = workbook.active
    assert sheet.title == "NSGRules"
    assert [cell.value for cell in sheet[1]] == ["Acct/vnetX/S1", "r1", "1.1.1.1", "Allow", "443"]
    assert all(cell.value is None for cell in sheet[3])
    assert sheet["A5"].value == "Acct/vnetX/S2"
    assert sheet.max_row == 5


def test_write_report_rejects_invalid_sheet_names(tmp_path: Path) -> None:
    """Sheet names openpyxl refuses surface as :class:`ReportWriteError`."""

    with pytest.raises(ReportWriteError):
        write_report(_two_by_two(), str(tmp_path / "x.xlsx"), sheet_name="bad/name")


def test_write_report_wraps_rejected_cell_values(tmp_path: Path) -> None:
    """Control characters openpyxl refuses surface as :class:`ReportWriteError`."""

    registry = _registry(_subnet("S\x01", "10.0.1.0/24", _rule("r1", ("1.1.1.1",))))
    output = tmp_path / "x.xlsx"

    with pytest.raises(ReportWriteError, match="cell A1"):
        write_report(registry, str(output))
    assert not output.exists()


def test_export_rows_to_json(tmp_path: Path) -> None:
    """Rows are exported as a list of objects keyed by column."""

    path = tmp_path / "rows.json"

    export_rows_to_json(flatten_registry(_two_by_two()), str(path))

    rows = json.loads(path.read_text(encoding="utf-8"))
    assert len(rows) == 4
    assert rows[0] == {
        "subnet": "Acct/vnetX/S1",
        "rule": "r1",
        "source": "1.1.1.1",
        "action": "Allow",
        "ports": "443",
    }


def test_print_report_summary(capsys: pytest.CaptureFixture[str]) -> None:
    """The console summary lists every row and a total."""

    print_report_summary(flatten_registry(_two_by_two()))

    out = capsys.readouterr().out
    assert "Acct/vnetX/S2" in out
    assert "4 rule row(s)." in out


def test_print_report_summary_without_rows(capsys: pytest.CaptureFixture[str]) -> None:
    """An empty report prints a short notice."""

    print_report_summary([])

    assert "No inbound rules found." in capsys.readouterr().out
