"""
test_classifier.py — Cell scanning and pattern classification.

Usage:
    pytest tests/test_classifier.py
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from whip_engine.cell_scanner import cell_address, cell_text, scan_sheet, scan_workbook
from whip_engine.config import ScanSettings
from whip_engine.models import Category, Workbook
from whip_engine.pattern_classifier import PatternClassifier, renumber


def categories(value):
    return {m.category for m in PatternClassifier().classify(value)}


def values_for(value, category):
    return [m.value for m in PatternClassifier().classify(value) if m.category == category]


# ═══════════════════════════════════════════════════════════════
#  CELL SCANNER
# ═══════════════════════════════════════════════════════════════

def test_cell_address_is_a1():
    assert cell_address(0, 0) == 'A1'
    assert cell_address(9, 27) == 'AB10'


def test_cell_text_drops_integral_float_suffix():
    assert cell_text(50.0) == '50'
    assert cell_text(12.5) == '12.5'
    assert cell_text('  L5-20R ') == 'L5-20R'
    assert cell_text(None) == ''


def test_scan_skips_empty_cells_in_row_major_order():
    grid = [['L5-20R', None, '  '], [None, 50], [], ['Red']]
    cells = list(scan_sheet('Whips', grid))
    assert [(c.cell_address, c.raw_value) for c in cells] == [('A1', 'L5-20R'), ('B2', 50), ('A4', 'Red')]
    assert all(c.sheet_name == 'Whips' for c in cells)


def test_scan_respects_row_cap():
    grid = [[f"row {i}"] for i in range(10)]
    wb = Workbook(sheet_names=['S'], sheets={'S': grid})
    assert len(list(scan_workbook(wb, ScanSettings(max_rows_per_sheet=3)))) == 3


# ═══════════════════════════════════════════════════════════════
#  CLASSIFICATION
# ═══════════════════════════════════════════════════════════════

def test_one_cell_can_carry_length_and_cable():
    matches = PatternClassifier().classify('50ft MMC')
    assert len(matches) >= 2
    cats = {m.category for m in matches}
    assert Category.LENGTH in cats
    assert Category.CABLE in cats
    assert values_for('50ft MMC', Category.LENGTH) == ['50ft']
    assert values_for('50ft MMC', Category.CABLE) == ['MMC']


def test_empty_and_whitespace_never_match():
    classifier = PatternClassifier()
    assert classifier.classify('') == []
    assert classifier.classify('   \t ') == []
    assert classifier.classify(None) == []


def test_classification_is_case_insensitive():
    assert Category.CABLE in categories('liquid tight')
    assert Category.CABLE in categories('LIQUID-TIGHT')
    assert Category.RECEPTACLE in categories('l6-30r')


def test_receptacle_families():
    assert values_for('NEMA L5-20R', Category.RECEPTACLE) == ['NEMA L5-20R']
    assert values_for('L6-30R twist lock', Category.RECEPTACLE) == ['L6-30R']
    assert values_for('5-20R', Category.RECEPTACLE) == ['5-20R']
    assert values_for('CS8269A', Category.RECEPTACLE) == ['CS8269A']
    assert values_for('IEC 60309', Category.RECEPTACLE) == ['IEC 60309']
    assert values_for('460C9W', Category.RECEPTACLE) == ['460C9W']


def test_unit_categories():
    assert Category.VOLTAGE in categories('480V')
    assert Category.VOLTAGE in categories('120/208 VAC')
    assert Category.CURRENT in categories('30 amps')
    assert Category.CURRENT in categories('20A')
    assert Category.WIRE_GAUGE in categories('#6 AWG')
    assert Category.WIRE_GAUGE in categories('12 gauge')
    assert Category.LENGTH in categories('12.5 feet')
    assert Category.LENGTH in categories("25'")


def test_color_closed_set():
    assert values_for('Label: Blue', Category.COLOR) == ['Blue']
    assert values_for('grey', Category.COLOR) == ['grey']
    assert values_for('Magenta', Category.COLOR) == []


def test_general_only_when_nothing_specific_matched():
    assert categories('PN-4471X') == {Category.GENERAL}
    assert Category.GENERAL not in categories('L5-20R')
    assert categories('just some words') == set()


def test_numbers_classified_by_string_form():
    assert PatternClassifier().classify(50) == []
    assert PatternClassifier().classify(50.0) == []


def test_match_ids_and_indexes_follow_start():
    matches = PatternClassifier().classify('50ft MMC Red', 'Whips', 'C3', index_start=7)
    assert [m.global_index for m in matches] == [7, 8, 9]
    assert [m.id for m in matches] == ['pattern_7', 'pattern_8', 'pattern_9']
    assert all(m.sheet_name == 'Whips' and m.cell_address == 'C3' for m in matches)


# ═══════════════════════════════════════════════════════════════
#  WORKBOOK SCAN
# ═══════════════════════════════════════════════════════════════

def _two_sheet_workbook():
    return Workbook(
        sheet_names=['A', 'B'],
        sheets={
            'A': [['L5-20R', '50ft MMC'], ['Red', None]],
            'B': [['L6-30R', '25ft'], ['Blue', '480V']],
        },
    )


def test_global_index_is_monotonic_across_sheets():
    matches = PatternClassifier().classify_workbook(_two_sheet_workbook())
    assert [m.global_index for m in matches] == list(range(len(matches)))
    assert len({m.id for m in matches}) == len(matches)
    assert [m.sheet_name for m in matches][0] == 'A'
    assert [m.sheet_name for m in matches][-1] == 'B'


def test_parallel_scan_matches_sequential_scan():
    wb = _two_sheet_workbook()
    sequential = PatternClassifier().classify_workbook(wb)
    parallel = PatternClassifier().classify_workbook(wb, max_workers=4)
    assert parallel == sequential


def test_failing_cell_is_skipped_not_fatal():
    class Flaky(PatternClassifier):
        def classify(self, cell_value, *args, **kwargs):
            if cell_value == 'BOOM':
                raise ValueError('bad cell')
            return super().classify(cell_value, *args, **kwargs)

    wb = Workbook(sheet_names=['S'], sheets={'S': [['L5-20R', 'BOOM', '480V']]})
    matches = Flaky().classify_workbook(wb)
    assert [m.category for m in matches] == [Category.RECEPTACLE, Category.VOLTAGE]


def test_renumber_rewrites_ids():
    matches = PatternClassifier().classify('50ft MMC', index_start=40)
    assert [m.id for m in renumber(matches)] == ['pattern_0', 'pattern_1']
