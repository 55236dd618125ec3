"""
Power Whip Nomenclature Engine — command line
=============================================
Three commands:

    analyze    show what the engine recognizes in a workbook
    transform  write the standardized PreSal workbook (+ QA CSV)
    generate   expand a natural-language order / pattern lines into rows

Usage:
    whip-engine analyze  orders.xlsx
    whip-engine transform orders.xlsx -o orders_presal.xlsx
    whip-engine generate order.txt --xlsx order_presal.xlsx
    whip-engine generate --text "25 power whips total, lengths: 20, 40"
"""

import argparse
import logging
import os
import sys

import pandas as pd

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from whip_engine import __version__
from whip_engine.config import load_config
from whip_engine.exceptions import WhipEngineError
from whip_engine.models import OutputSheet
from whip_engine.pipeline import analyze_workbook, export_workbook, run_natural_language, transform_workbook
from whip_engine.receptacle_patterns import expand_input_patterns, split_input_text
from whip_engine.spec_parser import NaturalLanguageSpecParser, distribution_summary
from whip_engine.workbook_io import read_workbook, write_workbook

logger = logging.getLogger('whip_engine.cli')


# ═══════════════════════════════════════════════════════════════
#  COMMANDS
# ═══════════════════════════════════════════════════════════════

def cmd_analyze(args, config) -> int:
    workbook = read_workbook(args.workbook)
    analysis = analyze_workbook(workbook, config, args.workers)

    print(analysis.summary())
    print()
    for profile in analysis.sheets:
        print(profile.summary())
    print()
    print("Transformation rules (priority order):")
    for rule in analysis.rules:
        flag = '✓' if rule.is_active else ' '
        print(f"  {flag} [{rule.priority:>2}] {rule.name} → {rule.target_column}")
    return 0


def cmd_transform(args, config) -> int:
    workbook = read_workbook(args.workbook)
    analysis = analyze_workbook(workbook, config, args.workers)
    result = transform_workbook(workbook, analysis, config)

    base = os.path.splitext(args.workbook)[0]
    out_path = args.output or f"{base}_presal.xlsx"
    with open(out_path, 'wb') as f:
        f.write(export_workbook(analysis, result))
    print(f"✓ {result.total_rows} rows written to {out_path}")

    if result.issues:
        qa_path = f"{os.path.splitext(out_path)[0]}_QA.csv"
        pd.DataFrame(result.issues).to_csv(qa_path, index=False, encoding='utf-8-sig')
        print(f"⚠ {len(result.issues)} QA issues written to {qa_path}")
    return 0


def cmd_generate(args, config) -> int:
    if args.text is not None:
        text = args.text
    elif args.input:
        with open(args.input, 'r', encoding='utf-8') as f:
            text = f.read()
    else:
        text = sys.stdin.read()

    parser = NaturalLanguageSpecParser(config.synonyms)
    if parser.is_natural_language(text):
        summary = distribution_summary(parser.parse(text))
        logger.info(f"Distribution: {summary}")

    if args.xlsx:
        sheet = run_natural_language(text, config)
        with open(args.xlsx, 'wb') as f:
            f.write(write_workbook([OutputSheet('Order Entry', sheet.as_grid())]))
        print(f"✓ {len(sheet.rows)} rows written to {args.xlsx}")
        return 0

    for line in expand_input_patterns(split_input_text(text, parser), parser):
        print(line)
    return 0


# ═══════════════════════════════════════════════════════════════
#  ENTRY POINT
# ═══════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='whip-engine', description="Power whip nomenclature engine")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', default=None, help="JSON file with synonym / threshold overrides")
    parser.add_argument('-v', '--verbose', action='store_true', help="Debug logging")
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('analyze', help="Profile a workbook and list generated rules")
    p.add_argument('workbook')
    p.add_argument('--workers', type=int, default=None, help="Scan sheets in parallel")
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser('transform', help="Write the standardized PreSal workbook")
    p.add_argument('workbook')
    p.add_argument('-o', '--output', default=None, help="Output .xlsx (default: <input>_presal.xlsx)")
    p.add_argument('--workers', type=int, default=None, help="Scan sheets in parallel")
    p.set_defaults(func=cmd_transform)

    p = sub.add_parser('generate', help="Expand a natural-language order or pattern lines")
    p.add_argument('input', nargs='?', default=None, help="Text file (default: stdin)")
    p.add_argument('--text', default=None, help="Order text given inline")
    p.add_argument('--xlsx', default=None, help="Write PreSal rows to this .xlsx instead of printing")
    p.set_defaults(func=cmd_generate)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        config = load_config(args.config)
        return args.func(args, config)
    except WhipEngineError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
