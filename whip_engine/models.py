"""
models.py — Shared data structures for the whip engine.

Everything here is produced once per analysis run and never persisted.
Frozen dataclasses are used for values that must not change after the
stage that creates them (matches, analyses, mappings, rules).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

# A single spreadsheet cell, after the reader has normalized exotic types to str
CellValue = Union[str, int, float, None]


# ═══════════════════════════════════════════════════════════════
#  ENUMS
# ═══════════════════════════════════════════════════════════════

class Category(str, Enum):
    """Semantic category of a recognized cell fragment."""
    RECEPTACLE = 'receptacle'
    CABLE = 'cable'
    LENGTH = 'length'
    VOLTAGE = 'voltage'
    CURRENT = 'current'
    WIRE_GAUGE = 'wireGauge'
    COLOR = 'color'
    GENERAL = 'general'


class TransformFunction(str, Enum):
    """Pure value transforms a TransformationRule can name."""
    EXTRACT_NUMBER_UNIT = 'extract-number-unit'
    EXTRACT_VOLTAGE = 'extract-voltage'
    EXTRACT_CURRENT = 'extract-current'
    NORMALIZE_RECEPTACLE = 'normalize-receptacle'
    DIRECT_MAPPING = 'direct-mapping'


# ═══════════════════════════════════════════════════════════════
#  WORKBOOK
# ═══════════════════════════════════════════════════════════════

@dataclass
class Workbook:
    """In-memory workbook as handed over by the spreadsheet reader."""
    sheet_names: list = field(default_factory=list)
    sheets: dict = field(default_factory=dict)      # sheet name -> list[list[CellValue]]
    formulas: dict = field(default_factory=dict)    # sheet name -> {A1 address: formula text}

    def rows(self, sheet_name: str) -> list:
        return self.sheets.get(sheet_name, [])


@dataclass
class OutputSheet:
    """One sheet for the workbook writer. First row is the header."""
    name: str
    rows: list = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
#  PATTERN PIPELINE
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PatternMatch:
    """One occurrence of a recognized category fragment in one cell."""
    id: str
    category: Category
    value: str
    cell_address: str
    sheet_name: str
    global_index: int


@dataclass(frozen=True)
class PatternAnalysis:
    """Aggregated view of every match sharing one normalized key."""
    pattern: str
    category: Category
    frequency: int
    variations: tuple
    standard_mapping: str
    confidence: float


@dataclass(frozen=True)
class NomenclatureMapping:
    """Canonical mapping for one semantic category."""
    original_terms: tuple
    standard_term: str
    category: Category
    mapping_rule: str
    confidence: float


@dataclass(frozen=True)
class TransformationRule:
    """Executable instruction for turning a cell value into a canonical column value."""
    name: str
    source_pattern: str
    target_column: str
    transform_function: TransformFunction
    priority: int
    is_active: bool = True

    def as_row(self) -> list:
        return [self.name, self.source_pattern, self.target_column,
                self.transform_function.value, self.priority,
                'yes' if self.is_active else 'no']


# ═══════════════════════════════════════════════════════════════
#  NATURAL LANGUAGE
# ═══════════════════════════════════════════════════════════════

@dataclass
class LengthRange:
    """Whip lengths to iterate: discrete list if given, else min..max by step."""
    min: int = 20
    max: int = 80
    step: int = 20
    discrete_lengths: Optional[list] = None

    def values(self) -> list[int]:
        if self.discrete_lengths:
            return list(self.discrete_lengths)
        if self.step <= 0:
            return [self.min] if self.min <= self.max else []
        return list(range(self.min, self.max + 1, self.step))


@dataclass
class NaturalLanguageSpecification:
    """Structured intent parsed from a free-text order description."""
    total_quantity: int = 0
    length_range: LengthRange = field(default_factory=LengthRange)
    conduit_type: str = 'LMZC'
    receptacle_type: str = 'CS8269A'
    colors: list = field(default_factory=lambda: ['Red', 'Orange', 'Blue', 'Yellow'])
    tail_length: str = '10'
    features: list = field(default_factory=list)

    def configuration_count(self) -> int:
        return len(self.length_range.values()) * len(self.colors)


@dataclass
class ParsedPattern:
    """One `receptacle, cable, whip length, tail length, color` pattern line."""
    receptacle: str = ''
    cable_conduit_type: str = ''
    whip_length: str = ''
    tail_length: str = ''
    label_color: str = ''
    quantity: int = 1
    has_quantity: bool = False

    def to_line(self) -> str:
        parts = [self.receptacle, self.cable_conduit_type, self.whip_length,
                 self.tail_length, self.label_color]
        while parts and not parts[-1]:
            parts.pop()
        return ', '.join(parts)
