"""
receptacle_patterns.py — Pattern-line parsing and PreSal row building.

A pattern line describes one whip:

    receptacle, cable/conduit, whip length, tail length, label color
    L5-20R, FMC, 300, 10, Red
    460C9W MMC 115 10 red          (space delimited)
    L5-20R, FMC, 300, 10!25        (emit 25 times)

Lines are comma, tab or whitespace delimited (first delimiter found wins).
A '!N' suffix repeats the pattern N times; a bad or non-positive N means 1.
Known receptacles are enriched with voltage / current / wire gauge.
"""

import logging
import re
from typing import NamedTuple, Optional

from .config import PRESAL_COLUMNS, RECEPTACLE_RATINGS, SynonymTables
from .models import ParsedPattern, TransformFunction
from .row_transformer import apply_transform
from .spec_parser import NaturalLanguageSpecParser, generate

logger = logging.getLogger(__name__)

# "20" alone is a current, not a receptacle
MIN_PARTIAL_CODE = 4


class ReceptacleRating(NamedTuple):
    standard: str
    voltage: str
    current: str
    wire_gauge: str
    specs: str


# ═══════════════════════════════════════════════════════════════
#  LOOKUPS
# ═══════════════════════════════════════════════════════════════

def lookup_receptacle(code: str, ratings: Optional[dict] = None) -> Optional[ReceptacleRating]:
    """
    Electrical rating for a receptacle code.

    Exact (case-insensitive) match first, then the longest table key found
    inside the code ("NEMA L5-20R" → L5-20R), then the shortest table key
    that contains a partial code ("5-20" → 5-20R). Partial codes shorter
    than MIN_PARTIAL_CODE never match.
    """
    ratings = ratings if ratings is not None else RECEPTACLE_RATINGS
    key = (code or '').strip().upper().replace(' ', '')
    if not key:
        return None
    if key in ratings:
        return ReceptacleRating(*ratings[key])
    for candidate in sorted(ratings, key=len, reverse=True):
        if candidate in key:
            return ReceptacleRating(*ratings[candidate])
    if len(key) < MIN_PARTIAL_CODE:
        return None
    for candidate in sorted(ratings, key=len):
        if key in candidate:
            return ReceptacleRating(*ratings[candidate])
    return None


def standardize_conduit(text: str, synonyms: Optional[SynonymTables] = None) -> str:
    """Free-text conduit description → canonical code; unknown text is upper-cased."""
    synonyms = synonyms or SynonymTables()
    raw = (text or '').strip()
    if not raw:
        return ''

    lowered = raw.lower()
    hits = [phrase for phrase in synonyms.conduit if phrase in lowered]
    if hits:
        return synonyms.conduit[max(hits, key=len)]

    upper = raw.upper()
    for code in synonyms.conduit_codes:
        if re.search(rf'\b{re.escape(code)}\b', upper):
            return code
    return upper


# ═══════════════════════════════════════════════════════════════
#  PATTERN LINES
# ═══════════════════════════════════════════════════════════════

def split_quantity(line: str) -> tuple[str, int, bool]:
    """'pattern!N' → (pattern, N, True). Invalid or non-positive N → 1."""
    if '!' not in line:
        return line.strip(), 1, False

    pattern, quantity_part = (p.strip() for p in line.split('!', 1))
    try:
        quantity = int(quantity_part)
    except ValueError:
        quantity = 1
    if quantity <= 0:
        quantity = 1
    return pattern, quantity, bool(quantity_part)


def split_fields(pattern: str) -> list[str]:
    if ',' in pattern:
        return [p.strip() for p in pattern.split(',')]
    if '\t' in pattern:
        return [p.strip() for p in pattern.split('\t') if p.strip()]
    return pattern.split()


def parse_pattern_line(line: str) -> ParsedPattern:
    pattern, quantity, has_quantity = split_quantity(line or '')
    parts = split_fields(pattern) + [''] * 5
    return ParsedPattern(
        receptacle=parts[0],
        cable_conduit_type=parts[1],
        whip_length=parts[2],
        tail_length=parts[3],
        label_color=parts[4],
        quantity=quantity,
        has_quantity=has_quantity,
    )


def expand_input_patterns(inputs: list[str], parser: Optional[NaturalLanguageSpecParser] = None) -> list[str]:
    """
    Expand user input entries into concrete pattern lines.

      - natural-language entries → full distribution via generate()
      - 'pattern!N' entries → the pattern, N times
      - anything else → passed through once
    """
    parser = parser or NaturalLanguageSpecParser()
    lines = []
    for entry in inputs:
        if not entry or not entry.strip():
            continue
        if parser.is_natural_language(entry):
            spec = parser.parse(entry)
            generated = generate(spec)
            logger.info(f"Natural-language entry expanded to {len(generated)} rows")
            lines.extend(generated)
            continue
        parsed = parse_pattern_line(entry)
        if parsed.has_quantity:
            lines.extend([parsed.to_line()] * parsed.quantity)
        else:
            lines.append(entry.strip())
    return lines


def split_input_text(text: str, parser: Optional[NaturalLanguageSpecParser] = None) -> list[str]:
    """A whole natural-language block stays one entry; otherwise one entry per line."""
    parser = parser or NaturalLanguageSpecParser()
    if parser.is_natural_language(text):
        return [text]
    return [line.strip() for line in (text or '').splitlines() if line.strip()]


# ═══════════════════════════════════════════════════════════════
#  PRESAL ROWS
# ═══════════════════════════════════════════════════════════════

def pattern_to_presal_row(parsed: ParsedPattern, item_number: int,
                          columns: tuple = PRESAL_COLUMNS,
                          synonyms: Optional[SynonymTables] = None) -> list:
    """One pattern → one fixed-width PreSal row (Order QTY is always 1)."""
    row = [''] * len(columns)
    index = {name: i for i, name in enumerate(columns)}

    def put(column, value):
        if column in index and value not in (None, ''):
            row[index[column]] = value

    put('ID', item_number)
    put('Order QTY', 1)
    put('Cable/Conduit Type', standardize_conduit(parsed.cable_conduit_type, synonyms))
    put('Label Color', parsed.label_color.strip().title())
    if parsed.whip_length:
        put('Length (ft)', apply_transform(parsed.whip_length, TransformFunction.EXTRACT_NUMBER_UNIT))
    if parsed.tail_length:
        put('Tail Length (ft)', apply_transform(parsed.tail_length, TransformFunction.EXTRACT_NUMBER_UNIT))

    rating = lookup_receptacle(parsed.receptacle)
    if rating:
        put('Receptacle Type', rating.standard)
        put('Voltage (V)', int(rating.voltage))
        put('Current (A)', int(rating.current))
        put('Wire Gauge (AWG)', rating.wire_gauge)
        put('Description', rating.specs)
    else:
        put('Receptacle Type', parsed.receptacle.strip().upper())
    return row


def patterns_to_presal_rows(lines: list[str], columns: tuple = PRESAL_COLUMNS,
                            synonyms: Optional[SynonymTables] = None,
                            start_item: int = 1) -> list:
    rows = []
    for line in lines:
        parsed = parse_pattern_line(line)
        if not parsed.receptacle:
            logger.warning(f"Skipping pattern line with no receptacle: {line!r}")
            continue
        rows.append(pattern_to_presal_row(parsed, start_item + len(rows), columns, synonyms))
    return rows
