"""
row_transformer.py — Apply transformation rules to source rows.

Builds the fixed-width PreSal Order Entry layout:
  - every column starts empty; ID = item number, Order QTY = 1
  - only the first few cells of a row are inspected (lookahead)
  - per cell, active rules are tried in priority order
  - a rule writes its target column only while that column is still
    empty (first writer wins per column per row)
  - a row with no matches is still emitted

Length values in a tail context (the cell text or its column header
mentions pigtail / tail length) are written to 'Tail Length (ft)' instead
of 'Length (ft)'.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from .cell_scanner import cell_text, is_empty
from .config import PRESAL_COLUMNS, PatternTables, ScanSettings
from .models import CellValue, TransformFunction, TransformationRule

logger = logging.getLogger(__name__)

LENGTH_COLUMN = 'Length (ft)'
TAIL_LENGTH_COLUMN = 'Tail Length (ft)'

_DECIMAL_RE = re.compile(r'\d+(?:\.\d+)?')
_INTEGER_RE = re.compile(r'\d+')
_RECEPTACLE_WORDS_RE = re.compile(r'receptacle|outlet', re.IGNORECASE)


# ═══════════════════════════════════════════════════════════════
#  DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════

@dataclass
class CanonicalSheet:
    """Header row plus fixed-width data rows, ready for the workbook writer."""
    headers: list
    rows: list = field(default_factory=list)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.headers)

    def as_grid(self) -> list:
        return [list(self.headers)] + [list(r) for r in self.rows]


@dataclass
class TransformResult:
    """Result from transforming every data sheet of a workbook."""
    df: pd.DataFrame = None
    total_rows: int = 0
    filled: dict = field(default_factory=dict)      # column -> non-empty count
    issues: list = field(default_factory=list)

    def fill_rate(self, column: str) -> float:
        if not self.total_rows:
            return 0.0
        return self.filled.get(column, 0) / self.total_rows


# ═══════════════════════════════════════════════════════════════
#  TRANSFORM FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def _number(text: str):
    m = _DECIMAL_RE.search(text)
    if not m:
        return None
    value = float(m.group(0))
    return int(value) if value.is_integer() else value


def apply_transform(text: str, function: TransformFunction):
    """
    Run one named value transform over a cell string.

    Number extraction falls back to the trimmed text when no digits are
    present; it never raises.
    """
    if function == TransformFunction.EXTRACT_NUMBER_UNIT:
        value = _number(text)
        return text.strip() if value is None else value

    if function in (TransformFunction.EXTRACT_VOLTAGE, TransformFunction.EXTRACT_CURRENT):
        m = _INTEGER_RE.search(text)
        return int(m.group(0)) if m else text.strip()

    if function == TransformFunction.NORMALIZE_RECEPTACLE:
        return _RECEPTACLE_WORDS_RE.sub('', text).strip() or text.strip()

    return text.strip()


# ═══════════════════════════════════════════════════════════════
#  ROW TRANSFORMER
# ═══════════════════════════════════════════════════════════════

class RowTransformer:
    """Compiled, priority-ordered rule set bound to a canonical column layout."""

    def __init__(self, rules: list[TransformationRule], columns: tuple = PRESAL_COLUMNS,
                 settings: Optional[ScanSettings] = None, tables: Optional[PatternTables] = None):
        self.columns = list(columns)
        self.index = {name: i for i, name in enumerate(self.columns)}
        self.settings = settings or ScanSettings()
        tables = tables or PatternTables()
        self._tail_re = re.compile(tables.tail_keywords, re.IGNORECASE)
        self._compiled = self._compile(rules)

    def _compile(self, rules: list[TransformationRule]) -> list:
        compiled = []
        for rule in sorted(rules, key=lambda r: r.priority, reverse=True):
            if not rule.is_active:
                continue
            if rule.target_column not in self.index:
                logger.debug(f"Rule '{rule.name}' targets '{rule.target_column}', not in layout")
                continue
            try:
                compiled.append((rule, re.compile(rule.source_pattern, re.IGNORECASE)))
            except re.error as e:
                logger.warning(f"Skipping rule '{rule.name}': bad pattern ({e})")
        return compiled

    def _target(self, rule: TransformationRule, text: str, header: str) -> str:
        if rule.target_column == LENGTH_COLUMN and TAIL_LENGTH_COLUMN in self.index:
            if self._tail_re.search(text) or (header and self._tail_re.search(header)):
                return TAIL_LENGTH_COLUMN
        return rule.target_column

    def transform_row(self, source_row: list, item_number: int = 1,
                      headers: Optional[list] = None) -> list:
        row = [''] * len(self.columns)
        if 'ID' in self.index:
            row[self.index['ID']] = item_number
        if 'Order QTY' in self.index:
            row[self.index['Order QTY']] = 1

        for i, value in enumerate(source_row[:self.settings.lookahead_cells]):
            if is_empty(value):
                continue
            text = cell_text(value)
            header = cell_text(headers[i]) if headers and i < len(headers) else ''
            for rule, regex in self._compiled:
                if not regex.search(text):
                    continue
                col = self.index[self._target(rule, text, header)]
                if row[col] == '':
                    row[col] = apply_transform(text, rule.transform_function)
        return row

    def transform_rows(self, rows: list, headers: Optional[list] = None,
                       start_item: int = 1) -> list:
        """
        Transform every non-blank source row.

        A row that raises is logged and skipped; item numbers stay contiguous.
        """
        out = []
        item = start_item
        for row in rows:
            if not row or all(is_empty(v) for v in row):
                continue
            try:
                out.append(self.transform_row(row, item, headers))
                item += 1
            except Exception as e:
                logger.warning(f"Skipping source row {item}: {e}")
        return out


def transform_row(source_row: list, rules: list[TransformationRule], item_number: int = 1,
                  headers: Optional[list] = None) -> list:
    """One-off convenience around RowTransformer for a single row."""
    return RowTransformer(rules).transform_row(source_row, item_number, headers)


# ═══════════════════════════════════════════════════════════════
#  QA CHECKS
# ═══════════════════════════════════════════════════════════════

def _blank(value: CellValue) -> bool:
    return str(value if value is not None else '').strip() in ('', 'nan', 'None')


def _as_float(value: CellValue) -> Optional[float]:
    if _blank(value):
        return None
    m = _DECIMAL_RE.search(str(value))
    return float(m.group(0)) if m else None


def _tail_exceeds_length(r) -> bool:
    tail, length = _as_float(r.get(TAIL_LENGTH_COLUMN)), _as_float(r.get(LENGTH_COLUMN))
    return tail is not None and length is not None and tail > length


def _non_positive_length(r) -> bool:
    value = r.get(LENGTH_COLUMN)
    if _blank(value):
        return False
    if isinstance(value, (int, float)):
        return value <= 0
    return str(value).strip().startswith('-') or _as_float(value) == 0


QA_RULES = [
    ('receptacle_missing',  lambda r: _blank(r.get('Receptacle Type')), 'Receptacle Type is empty'),
    ('length_missing',      lambda r: _blank(r.get(LENGTH_COLUMN)), 'Length (ft) is empty'),
    ('cable_missing',       lambda r: _blank(r.get('Cable/Conduit Type')), 'Cable/Conduit Type is empty'),
    ('tail_exceeds_length', _tail_exceeds_length, 'Tail length is longer than the whip'),
    ('length_not_positive', _non_positive_length, 'Length must be greater than zero'),
]


def run_qa(df: pd.DataFrame) -> list[dict]:
    """Run QA checks over canonical rows and return the flagged issues."""
    issues = []
    for i, row in df.iterrows():
        for key, fn, note in QA_RULES:
            try:
                flagged = fn(row)
            except Exception as e:
                logger.debug(f"QA rule {key} failed on row {i}: {e}")
                continue
            if flagged:
                issues.append({
                    'row': int(i) + 2,  # Excel row (1-indexed + header)
                    'flag': key,
                    'note': note,
                    'ID': row.get('ID', ''),
                })
    return issues


def count_filled(df: pd.DataFrame) -> dict:
    """Column → number of rows with a non-empty value."""
    return {col: int((df[col].astype(str).str.strip() != '').sum()) for col in df.columns}


def build_result(sheet: CanonicalSheet) -> TransformResult:
    df = sheet.to_dataframe()
    return TransformResult(
        df=df,
        total_rows=len(df),
        filled=count_filled(df) if len(df) else {c: 0 for c in sheet.headers},
        issues=run_qa(df),
    )
