"""
formula_analyzer.py — Static inspection of formula text.

Formulas are never evaluated. Each formula cell gets:
  - a complexity score (functions, references, operators, lookup/branch bonus)
  - its dependencies (cells, ranges, sheet-qualified references)
  - a purpose label and a coarse category
"""

import re
from dataclasses import dataclass, field

from .models import Workbook

_FUNCTION_RE = re.compile(r'[A-Z]+\(')
_CELL_REF_RE = re.compile(r'[A-Z]+\d+')
_RANGE_REF_RE = re.compile(r'[A-Z]+\d+:[A-Z]+\d+')
_SHEET_REF_RE = re.compile(r"[^!=(,+\-*/&\s]+![A-Z]+\d+")
_OPERATOR_RE = re.compile(r'[+\-*/]')
_HEAVY_FUNCTION_RE = re.compile(r'VLOOKUP|HLOOKUP|INDEX|MATCH|IF|SUMIF|COUNTIF', re.IGNORECASE)

# (substring triggers, purpose) checked in order on the upper-cased formula
PURPOSE_RULES = (
    (('VLOOKUP', 'HLOOKUP'), 'Data lookup and retrieval'),
    (('SUM', 'COUNT'), 'Aggregation and calculation'),
    (('IF', 'AND', 'OR'), 'Conditional logic and validation'),
    (('CONCATENATE', '&'), 'Text manipulation and formatting'),
    (('ROUND', 'ABS'), 'Numerical processing'),
)
GENERAL_PURPOSE = 'General calculation'

# (purpose keywords, category) checked in order
CATEGORY_RULES = (
    (('lookup',), 'lookup'),
    (('validation', 'logic'), 'validation'),
    (('calculation', 'processing'), 'calculation'),
    (('manipulation', 'formatting'), 'transformation'),
)


@dataclass
class ExpressionAnalysis:
    """One formula cell and what it appears to do."""
    id: str
    formula: str
    cell: str
    sheet: str
    complexity: int
    dependencies: list = field(default_factory=list)
    purpose: str = GENERAL_PURPOSE
    category: str = 'calculation'

    def as_row(self) -> list:
        return [self.sheet, self.cell, self.formula, self.complexity,
                ', '.join(self.dependencies), self.purpose, self.category]


def formula_complexity(formula: str) -> int:
    score = 1.0
    score += len(_FUNCTION_RE.findall(formula))
    score += len(_CELL_REF_RE.findall(formula)) * 0.5
    score += len(_OPERATOR_RE.findall(formula)) * 0.2
    if _HEAVY_FUNCTION_RE.search(formula):
        score += 2
    return int(score + 0.5)


def formula_dependencies(formula: str) -> list[str]:
    """Cell, range and sheet-qualified references, de-duplicated, first-seen order."""
    found = (_CELL_REF_RE.findall(formula)
             + _RANGE_REF_RE.findall(formula)
             + _SHEET_REF_RE.findall(formula))
    return list(dict.fromkeys(found))


def formula_purpose(formula: str) -> str:
    upper = formula.upper()
    for triggers, purpose in PURPOSE_RULES:
        if any(t in upper for t in triggers):
            return purpose
    return GENERAL_PURPOSE


def formula_category(purpose: str) -> str:
    lowered = purpose.lower()
    for keywords, category in CATEGORY_RULES:
        if any(k in lowered for k in keywords):
            return category
    return 'calculation'


def analyze_formula(formula: str, cell: str = '', sheet: str = '', index: int = 0) -> ExpressionAnalysis:
    purpose = formula_purpose(formula)
    return ExpressionAnalysis(
        id=f"expr_{index}",
        formula=formula,
        cell=cell,
        sheet=sheet,
        complexity=formula_complexity(formula),
        dependencies=formula_dependencies(formula),
        purpose=purpose,
        category=formula_category(purpose),
    )


def analyze_formulas(workbook: Workbook) -> list[ExpressionAnalysis]:
    """Analyze every formula in the workbook, sheet by sheet."""
    expressions = []
    for sheet in workbook.sheet_names:
        for cell, formula in workbook.formulas.get(sheet, {}).items():
            expressions.append(analyze_formula(formula, cell, sheet, len(expressions)))
    return expressions
