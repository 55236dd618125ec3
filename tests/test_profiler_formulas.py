"""
test_profiler_formulas.py — Sheet profiles, instruction scope and formula inspection.

Usage:
    pytest tests/test_profiler_formulas.py
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from whip_engine.formula_analyzer import (
    analyze_formula,
    analyze_formulas,
    formula_complexity,
    formula_dependencies,
)
from whip_engine.models import Workbook
from whip_engine.sheet_profiler import (
    detect_headers,
    extract_instruction_scope,
    primary_data_pattern,
    profile_sheet,
    profile_workbook,
)

WHIPS = [
    ['Receptacle', 'Cable', 'Whip Length'],
    ['L5-20R', 'MMC', '50ft'],
    ['L6-30R', 'LFMC', '25ft'],
]

INSTRUCTIONS = [
    ['System voltage: 480V'],
    ['Rated current 50A'],
    ['Provide 25 power whips'],
    ['All whips must be labeled'],
    ['V'],
]


# ═══════════════════════════════════════════════════════════════
#  SHEET PROFILES
# ═══════════════════════════════════════════════════════════════

def test_detect_headers():
    assert detect_headers(WHIPS, 3)
    assert not detect_headers([['L5-20R', 50, 6]], 3)
    assert not detect_headers([], 0)


def test_primary_pattern_from_sheet_name():
    assert primary_data_pattern(WHIPS, 'Install Instructions') == 'instructions'
    assert primary_data_pattern(WHIPS, 'Lookup') == 'lookup_table'
    assert primary_data_pattern(WHIPS, 'Config 2') == 'configuration'


def test_primary_pattern_from_content():
    assert primary_data_pattern(WHIPS, 'Sheet1') == 'receptacle_data'
    assert primary_data_pattern([['Whip', 'Tail'], ['50', '6']], 'Sheet1') == 'length_data'
    assert primary_data_pattern([['Qty', 'Notes']], 'Sheet1') == 'general_data'
    assert primary_data_pattern([], 'Sheet1') == 'general_data'


def test_profile_sheet():
    profile = profile_sheet('Whips', WHIPS, {'D2': 'B2*2'})
    assert (profile.row_count, profile.column_count, profile.formula_count) == (3, 3, 1)
    assert profile.has_headers
    assert profile.is_data_sheet
    assert 'Primary pattern: receptacle_data' in profile.summary()


def test_instruction_and_general_sheets_are_not_data():
    wb = Workbook(sheet_names=['Instructions', 'Blank'], sheets={'Instructions': INSTRUCTIONS, 'Blank': []})
    assert [p.is_data_sheet for p in profile_workbook(wb)] == [False, False]


# ═══════════════════════════════════════════════════════════════
#  INSTRUCTION SCOPE
# ═══════════════════════════════════════════════════════════════

def test_instruction_scope():
    wb = Workbook(sheet_names=['Whips', 'Instructions'], sheets={'Whips': WHIPS, 'Instructions': INSTRUCTIONS})
    scope = extract_instruction_scope(wb)
    assert scope.sheet_name == 'Instructions'
    assert (scope.voltage, scope.current, scope.component_count) == (480, 50, 25)
    assert scope.requirements == ['All whips must be labeled']
    assert scope.configuration_scope == 'Electrical configuration for 480V system, 50A capacity, 25 components'


def test_instruction_scope_without_numbers():
    wb = Workbook(sheet_names=['Scope'], sheets={'Scope': [['Labels shall be printed']]})
    scope = extract_instruction_scope(wb)
    assert scope.voltage is None
    assert scope.configuration_scope == 'General electrical configuration with specific requirements'


def test_no_instruction_sheet():
    assert extract_instruction_scope(Workbook(sheet_names=['Whips'], sheets={'Whips': WHIPS})) is None


# ═══════════════════════════════════════════════════════════════
#  FORMULAS
# ═══════════════════════════════════════════════════════════════

def test_sum_formula():
    expr = analyze_formula('SUM(B2:B3)', 'B4', 'Totals')
    assert expr.complexity == 3
    assert expr.dependencies == ['B2', 'B3', 'B2:B3']
    assert expr.purpose == 'Aggregation and calculation'
    assert expr.category == 'calculation'


def test_formula_categories():
    assert analyze_formula('IF(A1>5,"ok","bad")').category == 'validation'
    assert analyze_formula('A1&" "&B1').category == 'transformation'
    assert analyze_formula('VLOOKUP(A2,Rates!A2:B9,2,0)').category == 'lookup'
    assert analyze_formula('ROUND(A1,0)').category == 'calculation'
    assert analyze_formula('A1*2').purpose == 'General calculation'


def test_lookup_bonus_and_sheet_refs():
    assert formula_complexity('IF(A1>5,"ok","bad")') == 5
    assert formula_dependencies('VLOOKUP(A2,Rates!A2:B9,2,0)') == ['A2', 'B9', 'A2:B9', 'Rates!A2']


def test_analyze_workbook_formulas_in_sheet_order():
    wb = Workbook(
        sheet_names=['A', 'B'],
        sheets={'A': [], 'B': []},
        formulas={'B': {'C1': 'SUM(A1:B1)'}, 'A': {'C2': 'A2*2', 'C3': 'A3*2'}},
    )
    expressions = analyze_formulas(wb)
    assert [(e.sheet, e.cell, e.id) for e in expressions] == [('A', 'C2', 'expr_0'), ('A', 'C3', 'expr_1'),
                                                             ('B', 'C1', 'expr_2')]
