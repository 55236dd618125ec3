"""
test_pipeline.py — Workbook I/O, end-to-end transform and the command line.

Usage:
    pytest tests/test_pipeline.py
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io

import pytest
from openpyxl import Workbook as XLWorkbook, load_workbook

import app
from whip_engine.config import PRESAL_COLUMNS
from whip_engine.exceptions import InvalidWorkbookError, WorkbookReadError
from whip_engine.models import OutputSheet, Workbook
from whip_engine.pipeline import (
    analyze_workbook,
    export_workbook,
    process_file,
    run_natural_language,
    transform_workbook,
)
from whip_engine.workbook_io import read_workbook, write_workbook

COL = {name: i for i, name in enumerate(PRESAL_COLUMNS)}

WHIPS = [
    ['Receptacle', 'Cable', 'Whip Length', 'Tail Length', 'Color'],
    ['L5-20R', 'MMC', '50ft', '6ft', 'Red'],
    ['L5-20R', 'MMC', '50ft', '6ft', 'Blue'],
    ['L6-30R', 'LFMC', '25ft', '10ft', 'Red'],
    ['L6-30R', 'LFMC', '25ft', '10ft', 'Blue'],
]
INSTRUCTIONS = [['Provide 4 power whips'], ['All whips must be labeled']]

OUTPUT_SHEETS = ['Order Entry', 'Patterns', 'Nomenclature', 'Transformation Rules',
                 'Expressions', 'QA Issues', 'Summary']


def order_workbook():
    return Workbook(sheet_names=['Whips', 'Instructions'],
                    sheets={'Whips': WHIPS, 'Instructions': INSTRUCTIONS})


def save_xlsx(path, sheets):
    wb = XLWorkbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


# ═══════════════════════════════════════════════════════════════
#  WORKBOOK I/O
# ═══════════════════════════════════════════════════════════════

def test_write_then_read():
    data = write_workbook([OutputSheet('Data', [['Name', 'Qty'], ['L5-20R', 4]])])
    wb = read_workbook(data)
    assert wb.sheet_names == ['Data']
    assert wb.sheets['Data'] == [['Name', 'Qty'], ['L5-20R', 4]]
    assert wb.formulas['Data'] == {}


def test_header_row_is_styled():
    data = write_workbook([OutputSheet('Data', [['Name', 'Qty'], ['L5-20R', 4]])])
    ws = load_workbook(io.BytesIO(data))['Data']
    assert ws['A1'].font.bold
    assert ws.freeze_panes == 'A2'


def test_formula_text_is_collected(tmp_path):
    path = save_xlsx(tmp_path / 'f.xlsx', {'Totals': [['Qty'], [2], [3], ['=SUM(A2:A3)']]})
    wb = read_workbook(str(path))
    assert wb.formulas['Totals'] == {'A4': 'SUM(A2:A3)'}
    assert wb.sheets['Totals'][:3] == [['Qty'], [2], [3]]


def test_unreadable_bytes():
    with pytest.raises(WorkbookReadError):
        read_workbook(b'definitely not a zip file')


# ═══════════════════════════════════════════════════════════════
#  END TO END
# ═══════════════════════════════════════════════════════════════

def test_transform_order_workbook():
    wb = order_workbook()
    analysis = analyze_workbook(wb)
    result = transform_workbook(wb, analysis)

    assert result.total_rows == 4
    assert result.issues == []
    first = result.df.iloc[0]
    assert first['ID'] == 1
    assert first['Order QTY'] == 1
    assert first['Receptacle Type'] == 'L5-20R'
    assert first['Cable/Conduit Type'] == 'MMC'
    assert first['Length (ft)'] == 50
    assert first['Tail Length (ft)'] == 6
    last = result.df.iloc[3]
    assert (last['ID'], last['Cable/Conduit Type'], last['Length (ft)'], last['Tail Length (ft)']) == \
        (4, 'LFMC', 25, 10)


def test_analysis_summary():
    analysis = analyze_workbook(order_workbook())
    assert [s.name for s in analysis.sheets] == ['Whips', 'Instructions']
    assert analysis.instructions.component_count == 4
    assert len(analysis.rules) > 3
    assert 'Scope: Electrical configuration for 4 components' in analysis.summary()


def test_analysis_rejects_non_workbook():
    with pytest.raises(InvalidWorkbookError):
        analyze_workbook({'Whips': WHIPS})


def test_export_sheets():
    wb = order_workbook()
    analysis = analyze_workbook(wb)
    data = export_workbook(analysis, transform_workbook(wb, analysis))
    out = load_workbook(io.BytesIO(data))
    assert out.sheetnames == OUTPUT_SHEETS
    header = [c.value for c in out['Order Entry'][1]]
    assert header == list(PRESAL_COLUMNS)
    assert out['Order Entry'].max_row == 5
    summary = {row[0]: row[1] for row in out['Summary'].iter_rows(min_row=2, values_only=True)}
    assert summary['Order Entry Rows'] == 4
    assert summary['Matches: receptacle'] == 4


def test_process_file(tmp_path):
    path = save_xlsx(tmp_path / 'orders.xlsx', {'Whips': WHIPS, 'Instructions': INSTRUCTIONS})
    analysis, result, data = process_file(str(path))
    assert result.total_rows == 4
    assert load_workbook(io.BytesIO(data)).sheetnames == OUTPUT_SHEETS


def test_natural_language_rows():
    sheet = run_natural_language('20 power whips total\nlengths: 10, 20')
    assert len(sheet.rows) == 20
    first = sheet.rows[0]
    assert first[COL['Receptacle Type']] == 'CS8269A'
    assert first[COL['Cable/Conduit Type']] == 'LMZC'
    assert first[COL['Voltage (V)']] == 480
    assert (first[COL['Length (ft)']], first[COL['Tail Length (ft)']], first[COL['Label Color']]) == (10, 10, 'Red')
    assert [r[COL['ID']] for r in sheet.rows] == list(range(1, 21))


def test_pattern_lines_rows():
    sheet = run_natural_language('L5-20R, MMC, 50, 6, Red!2\nL6-30R, flexible metal conduit, 25')
    assert len(sheet.rows) == 3
    assert sheet.rows[2][COL['Cable/Conduit Type']] == 'FMC'
    assert sheet.as_grid()[0] == list(PRESAL_COLUMNS)


# ═══════════════════════════════════════════════════════════════
#  COMMAND LINE
# ═══════════════════════════════════════════════════════════════

def test_cli_generate_prints_lines(capsys):
    assert app.main(['generate', '--text', '20 power whips total\nlengths: 10, 20']) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 20
    assert lines[0] == 'CS8269A, LMZC, 10, 10, Red'


def test_cli_generate_xlsx(tmp_path):
    out = tmp_path / 'order.xlsx'
    assert app.main(['generate', '--text', 'L5-20R, MMC, 50!3', '--xlsx', str(out)]) == 0
    ws = load_workbook(str(out))['Order Entry']
    assert ws.max_row == 4


def test_cli_transform_writes_workbook_and_qa(tmp_path):
    rows = WHIPS + [['L5-20R', None, '50ft', None, 'Red']]
    src = save_xlsx(tmp_path / 'orders.xlsx', {'Whips': rows})
    assert app.main(['transform', str(src)]) == 0
    assert (tmp_path / 'orders_presal.xlsx').exists()
    qa = (tmp_path / 'orders_presal_QA.csv').read_text(encoding='utf-8-sig')
    assert 'cable_missing' in qa


def test_cli_missing_workbook_is_an_error(tmp_path, capsys):
    assert app.main(['analyze', str(tmp_path / 'missing.xlsx')]) == 1
    assert 'Error' in capsys.readouterr().err
