"""
sheet_profiler.py — Per-sheet structure analysis.

Profiles each sheet before transformation:
  - row / column counts and formula count
  - header detection (first row mostly non-empty text)
  - primary data pattern, from the sheet name first, then from content

Also pulls the configuration scope (voltage, current, component count,
requirement sentences) out of the first instructions-style sheet.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from .models import Workbook


# ═══════════════════════════════════════════════════════════════
#  DETECTION PATTERNS
# ═══════════════════════════════════════════════════════════════

HEADER_TEXT_RATIO = 0.7

# Sheet-name keyword → primary data pattern (checked in order)
SHEET_NAME_PATTERNS = (
    ('instruction', 'instructions'),
    ('lookup', 'lookup_table'),
    ('bubble', 'bubble_format'),
    ('config', 'configuration'),
)

GENERAL_DATA = 'general_data'
RECEPTACLE_DATA = 'receptacle_data'
LENGTH_DATA = 'length_data'

# Patterns whose rows are not component rows
NON_DATA_PATTERNS = (GENERAL_DATA, 'instructions')

_RECEPTACLE_CONTENT_RE = re.compile(r'receptacle|outlet|connector|plug|nema|iec|L\d+-\d+R|\d+-\d+R', re.IGNORECASE)
_LENGTH_CONTENT_RE = re.compile(r'length|tail|pigtail|whip', re.IGNORECASE)

_INSTRUCTION_SHEET_RE = re.compile(r'instruction|scope|config|requirement', re.IGNORECASE)
_VOLTAGE_TEXT_RE = re.compile(r'\d+\s*V|voltage.*\d+', re.IGNORECASE)
_CURRENT_TEXT_RE = re.compile(r'\d+\s*A|current.*\d+|amp.*\d+', re.IGNORECASE)
_COUNT_TEXT_RE = re.compile(r'\d+.*component|component.*\d+|\d+.*whip|whip.*\d+', re.IGNORECASE)
_REQUIREMENT_RE = re.compile(r'require|must|shall|need|should', re.IGNORECASE)
_FIRST_INT_RE = re.compile(r'\d+')

MAX_REQUIREMENTS = 10
MAX_REQUIREMENT_LENGTH = 100


# ═══════════════════════════════════════════════════════════════
#  DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════

@dataclass
class SheetProfile:
    """Structure summary of one sheet."""
    name: str
    row_count: int
    column_count: int
    formula_count: int
    has_headers: bool
    primary_data_pattern: str

    @property
    def is_data_sheet(self) -> bool:
        """True when the sheet's rows should be transformed into Order Entry rows."""
        return self.primary_data_pattern not in NON_DATA_PATTERNS

    def summary(self) -> str:
        """Human-readable profile summary."""
        lines = [
            f"Sheet Profile: {self.name}",
            f"  Rows: {self.row_count}  Columns: {self.column_count}",
            f"  Formulas: {self.formula_count}",
            f"  Has headers: {self.has_headers}",
            f"  Primary pattern: {self.primary_data_pattern}",
        ]
        return '\n'.join(lines)


@dataclass
class InstructionsScope:
    """Configuration scope pulled from an instructions / scope sheet."""
    sheet_name: str
    configuration_scope: str = ''
    voltage: Optional[int] = None
    current: Optional[int] = None
    component_count: Optional[int] = None
    requirements: list = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
#  PROFILING
# ═══════════════════════════════════════════════════════════════

def _text_cells(grid: list, min_length: int = 1) -> list[str]:
    return [
        cell for row in grid for cell in (row or [])
        if isinstance(cell, str) and len(cell.strip()) >= min_length
    ]


def detect_headers(grid: list, column_count: int) -> bool:
    """First row counts as a header when more than 70% of the columns hold text."""
    if not grid or not grid[0]:
        return False
    text_count = sum(1 for cell in grid[0] if isinstance(cell, str) and cell.strip())
    return text_count > column_count * HEADER_TEXT_RATIO


def primary_data_pattern(grid: list, sheet_name: str) -> str:
    """
    Classify what a sheet mostly holds.

    The sheet name wins when it carries a known keyword; otherwise text
    cells are counted for receptacle vs length vocabulary.
    """
    lowered = sheet_name.lower()
    for keyword, pattern in SHEET_NAME_PATTERNS:
        if keyword in lowered:
            return pattern

    texts = _text_cells(grid)
    receptacle_hits = sum(1 for t in texts if _RECEPTACLE_CONTENT_RE.search(t))
    length_hits = sum(1 for t in texts if _LENGTH_CONTENT_RE.search(t))

    if receptacle_hits > length_hits:
        return RECEPTACLE_DATA
    if length_hits > 0:
        return LENGTH_DATA
    return GENERAL_DATA


def profile_sheet(name: str, grid: list, formulas: Optional[dict] = None) -> SheetProfile:
    column_count = max((len(row) for row in grid if row), default=0)
    return SheetProfile(
        name=name,
        row_count=len(grid),
        column_count=column_count,
        formula_count=len(formulas or {}),
        has_headers=detect_headers(grid, column_count),
        primary_data_pattern=primary_data_pattern(grid, name),
    )


def profile_workbook(workbook: Workbook) -> list[SheetProfile]:
    return [
        profile_sheet(name, workbook.rows(name), workbook.formulas.get(name))
        for name in workbook.sheet_names
    ]


# ═══════════════════════════════════════════════════════════════
#  INSTRUCTION SCOPE
# ═══════════════════════════════════════════════════════════════

def _first_positive_int(texts: list[str], trigger: re.Pattern) -> Optional[int]:
    for text in texts:
        if trigger.search(text):
            m = _FIRST_INT_RE.search(text)
            value = int(m.group(0)) if m else 0
            return value if value > 0 else None
    return None


def describe_scope(scope: InstructionsScope) -> str:
    parts = []
    if scope.voltage:
        parts.append(f"{scope.voltage}V system")
    if scope.current:
        parts.append(f"{scope.current}A capacity")
    if scope.component_count:
        parts.append(f"{scope.component_count} components")

    if not parts:
        return 'General electrical configuration with specific requirements'
    return f"Electrical configuration for {', '.join(parts)}"


def extract_instruction_scope(workbook: Workbook) -> Optional[InstructionsScope]:
    """
    Read the configuration scope from the first instructions-style sheet.

    Returns None when no sheet name mentions instruction/scope/config/requirement.
    """
    name = next((n for n in workbook.sheet_names if _INSTRUCTION_SHEET_RE.search(n)), None)
    if name is None:
        return None

    # Very short strings ("V", "A:") carry no scope information
    texts = _text_cells(workbook.rows(name), min_length=4)

    scope = InstructionsScope(sheet_name=name)
    scope.voltage = _first_positive_int(texts, _VOLTAGE_TEXT_RE)
    scope.current = _first_positive_int(texts, _CURRENT_TEXT_RE)
    scope.component_count = _first_positive_int(texts, _COUNT_TEXT_RE)
    scope.requirements = [
        t for t in texts
        if _REQUIREMENT_RE.search(t) and len(t) < MAX_REQUIREMENT_LENGTH
    ][:MAX_REQUIREMENTS]
    scope.configuration_scope = describe_scope(scope)
    return scope
