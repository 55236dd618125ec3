"""
spec_parser.py — Natural-language order parser and distribution generator.

Turns a short free-text order such as

    25 power whips total
    whip lengths ranging 20'-80'
    liquid tight conduit, IEC pin and sleeve
    colors: red, blue

into a NaturalLanguageSpecification, then expands it into exactly
total_quantity pattern rows spread as evenly as possible over
lengths × colors. No API calls — keyword and regex matching only.

Anything the parser cannot find falls back to the configured defaults;
a missing quantity means zero rows, never a guess.
"""

import logging
import re
from typing import Optional

from .config import SynonymTables
from .models import LengthRange, NaturalLanguageSpecification

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
#  PATTERNS
# ═══════════════════════════════════════════════════════════════

QUANTITY_RE = re.compile(r'(\d+)\s*(?:power\s*)?whips?\s*(?:total|needed|required)', re.IGNORECASE)
LENGTH_RANGE_RE = re.compile(r"(\d+)\s*['’]?\s*(?:-|–|to)\s*(\d+)", re.IGNORECASE)
DISCRETE_LENGTHS_RE = re.compile(r'lengths?:\s*([\d,\s]+)', re.IGNORECASE)
STEP_RE = re.compile(
    r'step\s*(?:of\s*)?(\d+)'
    r"|increments?\s*of\s*(\d+)"
    r"|(\d+)\s*(?:ft|feet|foot|')?\s*increments?",
    re.IGNORECASE,
)
TAIL_RE = re.compile(
    r'\b(?:pig\s*tail|tail)s?(?:\s*length)?\s*(?:of\s*)?[:=]?\s*(\d+)'
    r"|(\d+)\s*(?:ft|feet|foot|')?\s*(?:pig\s*)?tails?\b",
    re.IGNORECASE,
)

RECEPTACLE_CODE_RES = (
    re.compile(r'\bL\d{1,2}-\d{2,3}R\b'),
    re.compile(r'\b\d{1,2}-\d{2,3}R\b'),
    re.compile(r'\bCS\d{4}[A-Z]?\b'),
    re.compile(r'\b460[CR]9W\b'),
)

# (pattern, feature tag builder) pairs; tags are de-duplicated, first seen wins
FEATURE_PATTERNS = (
    (re.compile(r'\bip\s*67\b|\bbell\s*box\b', re.IGNORECASE), lambda m: 'IP67 bell box included'),
    (re.compile(r'\bip\s*(6[56]|68)\b', re.IGNORECASE), lambda m: f"IP{m.group(1)} rated"),
    (re.compile(r'\b(\d+)\s*(?:a|amps?|amperes?)\b', re.IGNORECASE), lambda m: f"{m.group(1)}A"),
    (re.compile(r'\b(\d+)\s*wires?\b', re.IGNORECASE), lambda m: f"{m.group(1)} wires"),
    (re.compile(r'#\s*(\d+)\s*awg\b', re.IGNORECASE), lambda m: f"#{m.group(1)} AWG"),
)

DEFAULT_STEP = 20


# ═══════════════════════════════════════════════════════════════
#  PARSER
# ═══════════════════════════════════════════════════════════════

def _longest_phrase(text_lower: str, table) -> Optional[str]:
    """Value of the longest synonym phrase contained in the text, or None."""
    hits = [phrase for phrase in table if phrase in text_lower]
    if not hits:
        return None
    return table[max(hits, key=len)]


def _first_group(m: re.Match) -> Optional[int]:
    for g in m.groups():
        if g is not None:
            return int(g)
    return None


class NaturalLanguageSpecParser:
    """Keyword-driven parser bound to one set of synonym tables."""

    def __init__(self, synonyms: Optional[SynonymTables] = None):
        self.synonyms = synonyms or SynonymTables()
        self._conduit_code_re = re.compile(
            r'\b(' + '|'.join(re.escape(c) for c in self.synonyms.conduit_codes) + r')\b')
        self._color_re = re.compile(
            r'\b(' + '|'.join(sorted((re.escape(c) for c in self.synonyms.color), key=len, reverse=True)) + r')\b',
            re.IGNORECASE)

    def is_natural_language(self, text: str) -> bool:
        lowered = (text or '').lower()
        return any(marker in lowered for marker in self.synonyms.natural_language_markers)

    def parse(self, text: str) -> NaturalLanguageSpecification:
        """
        Parse a free-text order description. Never raises on odd input.

        Line by line, later lines override earlier ones for quantity,
        lengths, conduit and receptacle. Colors are collected over the
        whole text in order of first appearance.
        """
        syn = self.synonyms
        spec = NaturalLanguageSpecification(
            conduit_type=syn.default_conduit,
            receptacle_type=syn.default_receptacle,
            colors=list(syn.default_colors),
            tail_length=syn.default_tail_length,
        )
        text = text or ''
        lines = [line.strip() for line in text.splitlines() if line.strip()]

        for line in lines:
            lower = line.lower()

            m = QUANTITY_RE.search(line)
            if m:
                spec.total_quantity = int(m.group(1))

            self._parse_lengths(line, spec)

            conduit = _longest_phrase(lower, syn.conduit)
            if conduit is None:
                code = self._conduit_code_re.search(line)
                conduit = code.group(1) if code else None
            if conduit:
                spec.conduit_type = conduit

            receptacle = _longest_phrase(lower, syn.receptacle)
            if receptacle is None:
                receptacle = self._receptacle_code(line.upper())
            if receptacle:
                spec.receptacle_type = receptacle

            m = TAIL_RE.search(line)
            if m:
                spec.tail_length = str(_first_group(m))

        colors = self._colors(text)
        if colors:
            spec.colors = colors

        spec.features = self._features(text)

        logger.debug(f"Parsed order: qty={spec.total_quantity} lengths={spec.length_range.values()} "
                     f"conduit={spec.conduit_type} receptacle={spec.receptacle_type} colors={spec.colors}")
        return spec

    def _parse_lengths(self, line: str, spec: NaturalLanguageSpecification):
        # "tail length: 6" is a tail, not a whip length
        line = TAIL_RE.sub('', line)
        lower = line.lower()
        discrete = DISCRETE_LENGTHS_RE.search(line)
        ranged = LENGTH_RANGE_RE.search(line) if 'length' in lower else None

        if ranged and not discrete:
            lo, hi = int(ranged.group(1)), int(ranged.group(2))
            spec.length_range = LengthRange(min=lo, max=hi, step=spec.length_range.step)
        elif discrete:
            lengths = [int(t) for t in re.split(r'[,\s]+', discrete.group(1)) if t.isdigit()]
            if lengths:
                spec.length_range = LengthRange(
                    min=min(lengths),
                    max=max(lengths),
                    step=lengths[1] - lengths[0] if len(lengths) > 1 else DEFAULT_STEP,
                    discrete_lengths=lengths,
                )

        step = STEP_RE.search(line)
        if step:
            value = _first_group(step)
            if value and value > 0:
                spec.length_range.step = value

    def _receptacle_code(self, upper: str) -> Optional[str]:
        for regex in RECEPTACLE_CODE_RES:
            m = regex.search(upper)
            if m:
                return m.group(0)
        return None

    def _colors(self, text: str) -> list[str]:
        colors = []
        for m in self._color_re.finditer(text):
            name = self.synonyms.color[m.group(1).lower()]
            if name not in colors:
                colors.append(name)
        return colors

    def _features(self, text: str) -> list[str]:
        features = []
        for regex, tag in FEATURE_PATTERNS:
            for m in regex.finditer(text):
                value = tag(m)
                if value not in features:
                    features.append(value)
        return features


# ═══════════════════════════════════════════════════════════════
#  DISTRIBUTION
# ═══════════════════════════════════════════════════════════════

def configurations(spec: NaturalLanguageSpecification) -> list[tuple]:
    """(length, color) pairs, length-major."""
    return [(length, color) for length in spec.length_range.values() for color in spec.colors]


def generate(spec: NaturalLanguageSpecification) -> list[str]:
    """
    Expand a specification into exactly total_quantity pattern rows.

    Every configuration gets total // n rows; the first total % n
    configurations (in length-major order) get one more. Zero quantity or
    no configurations → [].
    """
    configs = configurations(spec)
    if spec.total_quantity <= 0 or not configs:
        return []

    base, remainder = divmod(spec.total_quantity, len(configs))
    rows = []
    for i, (length, color) in enumerate(configs):
        count = base + (1 if i < remainder else 0)
        line = f"{spec.receptacle_type}, {spec.conduit_type}, {length}, {spec.tail_length}, {color}"
        rows.extend([line] * count)
    return rows


def distribution_summary(spec: NaturalLanguageSpecification) -> dict:
    """How generate() will spread the quantity, for reporting."""
    configs = configurations(spec)
    n = len(configs)
    base, remainder = divmod(spec.total_quantity, n) if n else (0, 0)
    return {
        'total_quantity': spec.total_quantity,
        'configurations': n,
        'base_per_config': base,
        'remainder': remainder,
        'lengths': spec.length_range.values(),
        'colors': list(spec.colors),
    }


def parse(text: str, synonyms: Optional[SynonymTables] = None) -> NaturalLanguageSpecification:
    return NaturalLanguageSpecParser(synonyms).parse(text)
