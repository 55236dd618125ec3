"""
pipeline.py — End-to-end orchestration.

    Workbook → scan/classify → aggregate → map → rules → transform → QA
             → multi-sheet output workbook

analyze_workbook() and transform_workbook() are pure functions of their
input: nothing is cached or persisted between calls. run_natural_language()
is the independent text entry point and yields rows in the same canonical
layout as the workbook transform.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union
from pathlib import Path

from .config import DEFAULT_CONFIG, PRESAL_COLUMNS, EngineConfig
from .exceptions import InvalidWorkbookError
from .formula_analyzer import analyze_formulas
from .models import (
    NomenclatureMapping,
    OutputSheet,
    PatternAnalysis,
    Workbook,
)
from .nomenclature_mapper import build_mappings, build_rules
from .pattern_aggregator import PatternAggregator, category_counts
from .pattern_classifier import PatternClassifier
from .receptacle_patterns import expand_input_patterns, patterns_to_presal_rows, split_input_text
from .row_transformer import CanonicalSheet, RowTransformer, TransformResult, build_result
from .sheet_profiler import InstructionsScope, extract_instruction_scope, profile_workbook
from .spec_parser import NaturalLanguageSpecParser
from .workbook_io import read_workbook, write_workbook

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything learned about one workbook in one run."""
    sheets: list = field(default_factory=list)          # list[SheetProfile]
    matches: list = field(default_factory=list)         # list[PatternMatch]
    patterns: list = field(default_factory=list)        # list[PatternAnalysis]
    mappings: list = field(default_factory=list)        # list[NomenclatureMapping]
    rules: list = field(default_factory=list)           # list[TransformationRule]
    expressions: list = field(default_factory=list)     # list[ExpressionAnalysis]
    instructions: Optional[InstructionsScope] = None

    def summary(self) -> str:
        active = sum(1 for r in self.rules if r.is_active)
        lines = [
            f"Sheets processed: {len(self.sheets)}",
            f"Pattern matches: {len(self.matches)}",
            f"Recurring patterns: {len(self.patterns)}",
            f"Nomenclature mappings: {len(self.mappings)}",
            f"Transformation rules: {len(self.rules)} ({active} active)",
            f"Formulas analyzed: {len(self.expressions)}",
        ]
        if self.instructions:
            lines.append(f"Scope: {self.instructions.configuration_scope}")
        return '\n'.join(lines)


# ═══════════════════════════════════════════════════════════════
#  ANALYSIS
# ═══════════════════════════════════════════════════════════════

def analyze_workbook(workbook: Workbook, config: Optional[EngineConfig] = None,
                     max_workers: Optional[int] = None) -> AnalysisResult:
    """
    Scan, classify, aggregate and map one workbook, then generate rules.

    Args:
        workbook: decoded Workbook (see workbook_io.read_workbook)
        config: EngineConfig; defaults to DEFAULT_CONFIG
        max_workers: scan sheets in a thread pool when > 1

    Raises:
        InvalidWorkbookError: if workbook is not a Workbook
    """
    if not isinstance(workbook, Workbook):
        raise InvalidWorkbookError(f"Expected a Workbook, got {type(workbook).__name__}")
    config = config or DEFAULT_CONFIG

    classifier = PatternClassifier(config.tables)
    aggregator = PatternAggregator(config.aggregation, config.tables)

    matches = classifier.classify_workbook(workbook, config.scan, max_workers)
    patterns = aggregator.aggregate(matches)
    mappings = build_mappings(patterns, config.mapping)
    rules = build_rules(mappings, config.mapping)

    result = AnalysisResult(
        sheets=profile_workbook(workbook),
        matches=matches,
        patterns=patterns,
        mappings=mappings,
        rules=rules,
        expressions=analyze_formulas(workbook),
        instructions=extract_instruction_scope(workbook),
    )
    logger.info(f"Analysis complete: {len(patterns)} patterns, {len(rules)} rules")
    return result


# ═══════════════════════════════════════════════════════════════
#  TRANSFORMATION
# ═══════════════════════════════════════════════════════════════

def transform_workbook(workbook: Workbook, analysis: Optional[AnalysisResult] = None,
                       config: Optional[EngineConfig] = None) -> TransformResult:
    """
    Build the PreSal Order Entry sheet from every data sheet.

    Instruction sheets and sheets with no recognizable content are skipped.
    Header rows are not transformed; their cells are used as tail-length
    context for the values beneath them.
    """
    config = config or DEFAULT_CONFIG
    analysis = analysis or analyze_workbook(workbook, config)
    transformer = RowTransformer(analysis.rules, PRESAL_COLUMNS, config.scan, config.tables)

    rows = []
    for profile in analysis.sheets:
        if not profile.is_data_sheet:
            logger.info(f"Sheet '{profile.name}' skipped ({profile.primary_data_pattern})")
            continue
        grid = workbook.rows(profile.name)[:config.scan.max_rows_per_sheet]
        headers = grid[0] if profile.has_headers and grid else None
        body = grid[1:] if headers is not None else grid
        rows.extend(transformer.transform_rows(body, headers, start_item=len(rows) + 1))

    result = build_result(CanonicalSheet(list(PRESAL_COLUMNS), rows))
    logger.info(f"Transformed {result.total_rows} rows, {len(result.issues)} QA issues")
    return result


def run_natural_language(text: str, config: Optional[EngineConfig] = None) -> CanonicalSheet:
    """Free text (natural language and/or pattern lines) → canonical PreSal rows."""
    config = config or DEFAULT_CONFIG
    parser = NaturalLanguageSpecParser(config.synonyms)
    lines = expand_input_patterns(split_input_text(text, parser), parser)
    rows = patterns_to_presal_rows(lines, PRESAL_COLUMNS, config.synonyms)
    return CanonicalSheet(list(PRESAL_COLUMNS), rows)


# ═══════════════════════════════════════════════════════════════
#  OUTPUT
# ═══════════════════════════════════════════════════════════════

PATTERN_HEADERS = ['Pattern', 'Category', 'Frequency', 'Variations', 'Standard Mapping', 'Confidence']
NOMENCLATURE_HEADERS = ['Category', 'Standard Term', 'Original Terms', 'Mapping Rule', 'Confidence']
RULE_HEADERS = ['Name', 'Source Pattern', 'Target Column', 'Transform Function', 'Priority', 'Active']
EXPRESSION_HEADERS = ['Sheet', 'Cell', 'Formula', 'Complexity', 'Dependencies', 'Purpose', 'Category']
QA_HEADERS = ['Row', 'Flag', 'Note', 'ID']


def _pattern_row(p: PatternAnalysis) -> list:
    return [p.pattern, p.category.value, p.frequency, ', '.join(p.variations),
            p.standard_mapping, round(p.confidence, 2)]


def _mapping_row(m: NomenclatureMapping) -> list:
    return [m.category.value, m.standard_term, ', '.join(m.original_terms),
            m.mapping_rule, round(m.confidence, 2)]


def order_entry_rows(result: TransformResult) -> list:
    if result.df is None:
        return [list(PRESAL_COLUMNS)]
    return [list(result.df.columns)] + result.df.astype(object).values.tolist()


def build_output_sheets(analysis: AnalysisResult, result: TransformResult) -> list[OutputSheet]:
    """Order Entry first, then the analysis tables, QA issues and a summary."""
    summary = [
        ['Metric', 'Value'],
        ['Sheets Processed', len(analysis.sheets)],
        ['Patterns Found', len(analysis.patterns)],
        ['Nomenclature Mappings', len(analysis.mappings)],
        ['Transformation Rules', len(analysis.rules)],
        ['Active Rules', sum(1 for r in analysis.rules if r.is_active)],
        ['Expressions Analyzed', len(analysis.expressions)],
        ['Order Entry Rows', result.total_rows],
        ['QA Issues', len(result.issues)],
    ]
    if analysis.instructions:
        summary.append(['Configuration Scope', analysis.instructions.configuration_scope])
    for category, count in category_counts(analysis.matches).items():
        if count:
            summary.append([f"Matches: {category.value}", count])

    return [
        OutputSheet('Order Entry', order_entry_rows(result)),
        OutputSheet('Patterns', [PATTERN_HEADERS] + [_pattern_row(p) for p in analysis.patterns]),
        OutputSheet('Nomenclature', [NOMENCLATURE_HEADERS] + [_mapping_row(m) for m in analysis.mappings]),
        OutputSheet('Transformation Rules', [RULE_HEADERS] + [r.as_row() for r in analysis.rules]),
        OutputSheet('Expressions', [EXPRESSION_HEADERS] + [e.as_row() for e in analysis.expressions]),
        OutputSheet('QA Issues', [QA_HEADERS] + [[i['row'], i['flag'], i['note'], i['ID']] for i in result.issues]),
        OutputSheet('Summary', summary),
    ]


def export_workbook(analysis: AnalysisResult, result: TransformResult) -> bytes:
    return write_workbook(build_output_sheets(analysis, result))


def process_file(source: Union[bytes, str, Path], config: Optional[EngineConfig] = None,
                 max_workers: Optional[int] = None) -> tuple[AnalysisResult, TransformResult, bytes]:
    """
    Read, analyze, transform and export in one call.

    Raises:
        WorkbookReadError: if the source cannot be decoded
    """
    workbook = read_workbook(source)
    analysis = analyze_workbook(workbook, config, max_workers)
    result = transform_workbook(workbook, analysis, config)
    return analysis, result, export_workbook(analysis, result)
