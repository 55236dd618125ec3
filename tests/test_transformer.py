"""
test_transformer.py — PreSal row transformation and QA checks.

Usage:
    pytest tests/test_transformer.py
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from whip_engine.config import BUILTIN_RULES, PRESAL_COLUMNS, ScanSettings
from whip_engine.models import TransformFunction, TransformationRule
from whip_engine.row_transformer import (
    CanonicalSheet,
    RowTransformer,
    apply_transform,
    build_result,
    run_qa,
    transform_row,
)

COL = {name: i for i, name in enumerate(PRESAL_COLUMNS)}


def rule(name, pattern, target, fn=TransformFunction.DIRECT_MAPPING, priority=5, active=True):
    return TransformationRule(name, pattern, target, fn, priority, active)


def blank_row(item=1):
    row = [''] * len(PRESAL_COLUMNS)
    row[COL['ID']] = item
    row[COL['Order QTY']] = 1
    return row


# ═══════════════════════════════════════════════════════════════
#  TRANSFORM FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def test_extract_number_unit():
    assert apply_transform('50ft', TransformFunction.EXTRACT_NUMBER_UNIT) == 50
    assert apply_transform('12.5 feet', TransformFunction.EXTRACT_NUMBER_UNIT) == 12.5
    assert apply_transform(' n/a ', TransformFunction.EXTRACT_NUMBER_UNIT) == 'n/a'


def test_extract_voltage_and_current():
    assert apply_transform('480V', TransformFunction.EXTRACT_VOLTAGE) == 480
    assert apply_transform('120/208 VAC', TransformFunction.EXTRACT_VOLTAGE) == 120
    assert apply_transform('30 amps', TransformFunction.EXTRACT_CURRENT) == 30


def test_normalize_receptacle_strips_words():
    assert apply_transform('L5-20R Receptacle', TransformFunction.NORMALIZE_RECEPTACLE) == 'L5-20R'
    assert apply_transform('outlet 5-20R', TransformFunction.NORMALIZE_RECEPTACLE) == '5-20R'
    assert apply_transform('Receptacle', TransformFunction.NORMALIZE_RECEPTACLE) == 'Receptacle'


def test_direct_mapping_trims():
    assert apply_transform('  MMC ', TransformFunction.DIRECT_MAPPING) == 'MMC'


# ═══════════════════════════════════════════════════════════════
#  ROW TRANSFORM
# ═══════════════════════════════════════════════════════════════

def test_row_has_fixed_width_and_defaults():
    row = transform_row(['nothing useful'], list(BUILTIN_RULES), item_number=7)
    assert len(row) == len(PRESAL_COLUMNS)
    assert row == blank_row(7)


def test_first_writer_wins_per_column():
    high = rule('high', r'L5-20R', 'Receptacle Type', priority=20)
    low = rule('low', r'L5', 'Receptacle Type', TransformFunction.NORMALIZE_RECEPTACLE, priority=5)
    row = transform_row(['L5-20R receptacle'], [low, high])
    assert row[COL['Receptacle Type']] == 'L5-20R receptacle'


def test_later_cell_does_not_overwrite_filled_column():
    row = transform_row(['50ft', '75ft'], list(BUILTIN_RULES))
    assert row[COL['Length (ft)']] == 50


def test_inactive_rules_are_ignored():
    row = transform_row(['MMC'], [rule('off', 'MMC', 'Cable/Conduit Type', active=False)])
    assert row[COL['Cable/Conduit Type']] == ''


def test_rules_targeting_unknown_columns_are_skipped():
    row = transform_row(['Red'], [rule('color', 'red', 'Other')])
    assert row == blank_row()


def test_lookahead_bounds_the_cells_inspected():
    source = [''] * 10 + ['50ft']
    assert transform_row(source, list(BUILTIN_RULES))[COL['Length (ft)']] == ''

    transformer = RowTransformer(list(BUILTIN_RULES), settings=ScanSettings(lookahead_cells=11))
    assert transformer.transform_row(source)[COL['Length (ft)']] == 50


def test_tail_context_from_header_or_cell_text():
    headers = ['Receptacle', 'Whip Length', 'Pigtail Length']
    row = transform_row(['L5-20R', '50ft', '6ft'], list(BUILTIN_RULES), headers=headers)
    assert row[COL['Receptacle Type']] == 'L5-20R'
    assert row[COL['Length (ft)']] == 50
    assert row[COL['Tail Length (ft)']] == 6

    row = transform_row(['pigtail 8ft', '40 ft'], list(BUILTIN_RULES))
    assert row[COL['Tail Length (ft)']] == 8
    assert row[COL['Length (ft)']] == 40


def test_bad_rule_pattern_is_skipped():
    bad = rule('bad', '(unclosed', 'Cable/Conduit Type', priority=99)
    row = transform_row(['MMC', '480V'], [bad] + list(BUILTIN_RULES))
    assert row[COL['Voltage (V)']] == 480


def test_transform_rows_skips_blank_rows_and_numbers_items():
    rows = RowTransformer(list(BUILTIN_RULES)).transform_rows(
        [['50ft'], [None, '  '], [], ['480V']], start_item=3)
    assert [r[COL['ID']] for r in rows] == [3, 4]


# ═══════════════════════════════════════════════════════════════
#  RESULT + QA
# ═══════════════════════════════════════════════════════════════

def _row(receptacle='', cable='', length='', tail=''):
    row = blank_row()
    row[COL['Receptacle Type']] = receptacle
    row[COL['Cable/Conduit Type']] = cable
    row[COL['Length (ft)']] = length
    row[COL['Tail Length (ft)']] = tail
    return row


def test_qa_flags():
    sheet = CanonicalSheet(list(PRESAL_COLUMNS), [
        _row('L5-20R', 'MMC', 50, 6),
        _row('', 'MMC', 10, 12),
        _row('L5-20R', '', 0, ''),
    ])
    issues = run_qa(sheet.to_dataframe())
    flags = {(i['row'], i['flag']) for i in issues}
    assert (2, 'receptacle_missing') not in flags
    assert (3, 'receptacle_missing') in flags
    assert (3, 'tail_exceeds_length') in flags
    assert (4, 'cable_missing') in flags
    assert (4, 'length_not_positive') in flags
    assert not any(row == 2 for row, _ in flags)


def test_build_result_counts():
    sheet = CanonicalSheet(list(PRESAL_COLUMNS), [_row('L5-20R', 'MMC', 50, 6), _row('L6-30R')])
    result = build_result(sheet)
    assert result.total_rows == 2
    assert result.filled['Receptacle Type'] == 2
    assert result.filled['Cable/Conduit Type'] == 1
    assert result.fill_rate('Length (ft)') == 0.5
    assert list(result.df.columns) == list(PRESAL_COLUMNS)


def test_empty_sheet_result():
    result = build_result(CanonicalSheet(list(PRESAL_COLUMNS), []))
    assert result.total_rows == 0
    assert result.issues == []
    assert result.fill_rate('ID') == 0.0
