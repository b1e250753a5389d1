"""Cell-address stepping for the flattened report.

Addresses are derived only from the previous address: ``step_column`` moves
one column to the right on the same row and ``step_row`` moves to column
``A`` of the next row.
"""
from __future__ import annotations

from typing import Tuple

from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.utils.cell import coordinate_from_string
from openpyxl.utils.exceptions import CellCoordinatesException

FIRST_COLUMN = "A"


def split_address(address: str) -> Tuple[str, int]:
    """Return the column letters and row number of ``address``."""

    try:
        column, row = coordinate_from_string(address)
    except CellCoordinatesException as exc:
        raise ValueError(f"Invalid cell address {address!r}") from exc
    return column, row


def step_column(address: str) -> str:
    """Return the address one column to the right of ``address``.

    Columns beyond ``Z`` continue as ``AA``, ``AB`` and so on.
    """

    column, row = split_address(address)
    return f"{get_column_letter(column_index_from_string(column) + 1)}{row}"


def step_row(address: str) -> str:
    """Return the first cell of the row below ``address``."""

    _, row = split_address(address)
    return f"{FIRST_COLUMN}{row + 1}"


__all__ = ["FIRST_COLUMN", "split_address", "step_column", "step_row"]
