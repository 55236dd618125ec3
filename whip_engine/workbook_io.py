"""
workbook_io.py — Spreadsheet read/write boundary.

Thin openpyxl wrappers. read_workbook() turns .xlsx bytes (or a path) into
the engine's Workbook (cell grid + formula text per cell); write_workbook()
turns a list of OutputSheets back into .xlsx bytes with a styled header row.
Nothing in here knows about patterns or PreSal columns.
"""

import io
import numbers
import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Union

from openpyxl import Workbook as XLWorkbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .exceptions import WorkbookReadError
from .models import CellValue, OutputSheet, Workbook

logger = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True, color='FFFFFF')
HEADER_FILL = PatternFill(start_color='4472C4', end_color='4472C4', fill_type='solid')
MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50


# ═══════════════════════════════════════════════════════════════
#  READ
# ═══════════════════════════════════════════════════════════════

def read_workbook(source: Union[bytes, str, Path]) -> Workbook:
    """
    Decode an .xlsx workbook into sheet grids plus formula text.

    The file is opened twice: once with cached values (what the user saw)
    and once with formulas. Formula cells keep their cached value in the
    grid; the formula text goes to Workbook.formulas.

    Raises:
        WorkbookReadError: if the bytes/path cannot be opened as a workbook
    """
    try:
        values_wb = load_workbook(_as_stream(source), data_only=True)
        formula_wb = load_workbook(_as_stream(source), data_only=False)
    except Exception as e:
        raise WorkbookReadError(f"Failed to read workbook: {e}") from e

    workbook = Workbook()
    for ws in values_wb.worksheets:
        name = ws.title
        workbook.sheet_names.append(name)
        workbook.sheets[name] = [
            [to_cell_value(v) for v in row]
            for row in ws.iter_rows(values_only=True)
        ]

        formulas = {}
        for row in formula_wb[name].iter_rows():
            for cell in row:
                if cell.data_type == 'f' or (isinstance(cell.value, str) and cell.value.startswith('=')):
                    formulas[cell.coordinate] = str(cell.value).lstrip('=')
        workbook.formulas[name] = formulas

        logger.info(f"Sheet '{name}': {len(workbook.sheets[name])} rows, {len(formulas)} formulas")

    return workbook


def _as_stream(source: Union[bytes, str, Path]):
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source)
    return str(source)


def to_cell_value(value) -> CellValue:
    """Collapse an openpyxl cell value onto str | int | float | None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


# ═══════════════════════════════════════════════════════════════
#  WRITE
# ═══════════════════════════════════════════════════════════════

def write_workbook(sheets: list[OutputSheet]) -> bytes:
    """Write OutputSheets to .xlsx bytes. The first row of each sheet is styled as a header."""
    wb = XLWorkbook()
    wb.remove(wb.active)

    for sheet in sheets:
        ws = wb.create_sheet(title=sheet.name[:31])
        for row in sheet.rows:
            ws.append([_writable(v) for v in row])
        if sheet.rows:
            _style_header(ws, len(sheet.rows[0]))
            _fit_columns(ws, sheet.rows)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _writable(value):
    if value is None or isinstance(value, (str, numbers.Number)):
        return value
    return str(value)


def _style_header(ws, width: int):
    for col in range(1, width + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
    ws.freeze_panes = 'A2'


def _fit_columns(ws, rows: list):
    widths = {}
    for row in rows[:200]:
        for idx, value in enumerate(row, start=1):
            length = len(str(value)) if value is not None else 0
            widths[idx] = max(widths.get(idx, 0), length)
    for idx, width in widths.items():
        ws.column_dimensions[get_column_letter(idx)].width = min(max(width + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)
