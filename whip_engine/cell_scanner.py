"""
cell_scanner.py — Walk every non-empty cell of a workbook.

Yields ScannedCell(sheet_name, cell_address, raw_value) in row-major order,
sheet by sheet, so callers get a deterministic stream. Rows past the
configured cap are not visited.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from openpyxl.utils import get_column_letter

from .config import ScanSettings
from .models import CellValue, Workbook


@dataclass(frozen=True)
class ScannedCell:
    sheet_name: str
    cell_address: str
    raw_value: CellValue
    row: int        # 0-based
    column: int     # 0-based


def cell_address(row: int, column: int) -> str:
    """0-based (row, column) → A1 address."""
    return f"{get_column_letter(column + 1)}{row + 1}"


def is_empty(value: CellValue) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    return False


def cell_text(value: CellValue) -> str:
    """String form of a cell; integral floats lose their trailing .0."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def scan_sheet(sheet_name: str, grid: list, max_rows: Optional[int] = None) -> Iterator[ScannedCell]:
    """Yield the non-empty cells of one sheet grid."""
    rows = grid if max_rows is None else grid[:max_rows]
    for r, row in enumerate(rows):
        if not row:
            continue
        for c, value in enumerate(row):
            if is_empty(value):
                continue
            yield ScannedCell(sheet_name, cell_address(r, c), value, r, c)


def scan_workbook(workbook: Workbook, settings: Optional[ScanSettings] = None) -> Iterator[ScannedCell]:
    """Yield the non-empty cells of every sheet, in sheet order."""
    settings = settings or ScanSettings()
    for name in workbook.sheet_names:
        yield from scan_sheet(name, workbook.rows(name), settings.max_rows_per_sheet)
