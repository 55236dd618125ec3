"""
config.py — Pattern tables, synonym maps and scoring constants.

All defaults live here as module constants. They are wrapped in frozen
config objects (EngineConfig and friends) that the classifier, aggregator,
mapper and parsers take in their constructors, so no stage reads or
mutates a module-level table at run time.

Business users can extend the defaults with a JSON override file, see
load_config().
"""

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from .exceptions import ConfigError
from .models import Category, TransformFunction, TransformationRule

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
#  CELL PATTERN FAMILIES (tried in order, all case-insensitive)
# ═══════════════════════════════════════════════════════════════

PATTERN_DEFINITIONS = (
    (Category.RECEPTACLE, (
        r'\bNEMA\s*L?\d{1,2}-\d{2,3}[PR]?\b',          # NEMA L5-20R, NEMA 5-20
        r'\bL\d{1,2}-\d{2,3}[PR]?\b',                   # L6-30R twist-lock
        r'\b\d{1,2}-\d{2,3}[PR]\b',                     # 5-20R straight blade (suffix required)
        r'\bCS\d{3,5}[A-Z]*\b',                         # California Standard CS8269A
        r'\bIEC\s*\d+[AP]?\b',                          # IEC 60309
        r'\b\d{3}[CR]\d{1,2}W\b',                       # 460C9W / 460R9W device codes
    )),
    (Category.CABLE, (
        r'\b(?:LFMC|LMZC|MMC|FMC|EMT|PVC|MCC|MC|AC|SO)\b',
        r'\bliquid[\s-]*tight\b',
        r'\bflex(?:ible)?\b',
        r'\bmetal[\s-]+clad\b',
    )),
    (Category.LENGTH, (
        r'\b\d+(?:\.\d+)?\s*(?:feet|foot|ft|inches|inch|in)\b\.?',
        r"\b\d+(?:\.\d+)?\s*['’](?!['’])",
    )),
    (Category.VOLTAGE, (
        r'\b\d+(?:\.\d+)?(?:/\d+)?\s*(?:VAC|VDC|volts?|V)\b',
        r'\b(?:nominal\s+|operating\s+)?voltage\b(?:\s*[:=]?\s*\d+(?:\.\d+)?\s*V?\b)?',
    )),
    (Category.CURRENT, (
        r'\b\d+(?:\.\d+)?\s*(?:amperes?|amps?|A)\b',
        r'\b(?:rated\s+|max\s+)?(?:current|amperage)\b(?:\s*[:=]?\s*\d+(?:\.\d+)?\s*A?\b)?',
    )),
    (Category.WIRE_GAUGE, (
        r'\b\d+(?:/\d+)?\s*AWG\b',
        r'\b\d+\s*gauge\b',
    )),
    (Category.COLOR, (
        r'\b(?:red|orange|blue|yellow|purple|tan|pink|gr[ae]y|green|black|white|brown)\b',
    )),
    (Category.GENERAL, (
        r'\b(?=[A-Z0-9-]*\d)(?=[A-Z0-9-]*[A-Z])[A-Z0-9]+(?:-[A-Z0-9]+)*\b',
    )),
)

# Strong domain signatures earn the aggregator's confidence bonus
DOMAIN_SIGNATURE_RE = (
    r'\d+(?:\.\d+)?\s*(?:VAC|VDC|V|A|AWG|feet|foot|ft|inches|inch|in)\b'
    r"|\d+\s*['’]"
    r'|\bL\d+-\d+|\bNEMA\b|\bIEC\b|\bCS\d+'
)

# Keywords that mark a length value (or its column header) as a tail length
TAIL_KEYWORDS_RE = r'pig\s*tail|tail\s*length|whip\s*tail|\btail\b'


# ═══════════════════════════════════════════════════════════════
#  CANONICAL VOCABULARY
# ═══════════════════════════════════════════════════════════════

STANDARD_TERMS = {
    Category.LENGTH: 'Length (ft)',
    Category.RECEPTACLE: 'Receptacle Type',
    Category.VOLTAGE: 'Voltage (V)',
    Category.CURRENT: 'Current (A)',
    Category.CABLE: 'Cable/Conduit Type',
}
OTHER_TERM = 'Other'

TRANSFORM_BY_CATEGORY = {
    Category.LENGTH: TransformFunction.EXTRACT_NUMBER_UNIT,
    Category.VOLTAGE: TransformFunction.EXTRACT_VOLTAGE,
    Category.CURRENT: TransformFunction.EXTRACT_CURRENT,
    Category.RECEPTACLE: TransformFunction.NORMALIZE_RECEPTACLE,
}

CATEGORY_PRIORITY_BONUS = {
    Category.LENGTH: 3,
    Category.RECEPTACLE: 2,
    Category.VOLTAGE: 2,
    Category.CURRENT: 2,
}
OTHER_PRIORITY_BONUS = 1

MAPPING_RULE_TEXT = {
    Category.LENGTH: 'REGEX: /(pig.?tail|whip.?tail|\\d+\\s*ft|.*length.*)/i → "Length (ft)"',
    Category.RECEPTACLE: 'REGEX: /(receptacle|outlet|connector|plug|.*R$)/i → "Receptacle Type"',
    Category.VOLTAGE: 'REGEX: /(voltage|volts|\\d+V)/i → "Voltage (V)"',
    Category.CURRENT: 'REGEX: /(current|amps|\\d+A)/i → "Current (A)"',
}

# Always appended after the data-driven rules
BUILTIN_RULES = (
    TransformationRule(
        name='Standardize Length Columns',
        source_pattern=r"\b\d+(?:\.\d+)?\s*(?:feet|foot|ft)\b|\b\d+(?:\.\d+)?\s*'|pig\s*tail\s*\d+|whip\s*tail\s*\d+",
        target_column='Length (ft)',
        transform_function=TransformFunction.EXTRACT_NUMBER_UNIT,
        priority=10,
    ),
    TransformationRule(
        name='Normalize Receptacle Types',
        source_pattern=r'\bL\d{1,2}-\d{2,3}[PR]?\b|\b\d{1,2}-\d{2,3}[PR]\b|\bCS\d{3,5}[A-Z]*\b|\bIEC\s*\d+|\b\d{3}[CR]\d{1,2}W\b|receptacle|outlet',
        target_column='Receptacle Type',
        transform_function=TransformFunction.NORMALIZE_RECEPTACLE,
        priority=9,
    ),
    TransformationRule(
        name='Convert Voltage Format',
        source_pattern=r'\b\d+(?:/\d+)?\s*(?:VAC|volts?|V)\b',
        target_column='Voltage (V)',
        transform_function=TransformFunction.EXTRACT_VOLTAGE,
        priority=8,
    ),
)

# PreSal Order Entry layout (50 columns)
PRESAL_COLUMNS = (
    'ID', 'Order QTY', 'Receptacle Type', 'Cable/Conduit Type', 'Length (ft)',
    'Tail Length (ft)', 'Label Color', 'Voltage (V)', 'Current (A)', 'Wire Gauge (AWG)',
    'Cable Type', 'Conduit Type', 'Conduit Size', 'Green AWG', 'Building',
    'PDU', 'Panel', 'First Circuit', 'Second Circuit', 'Third Circuit',
    'Cage', 'Cabinet Number', 'Included Breaker', 'Mounting Bolt', 'Box',
    'L1', 'L2', 'L3', 'N', 'E',
    'Drawing Number', 'Notes', 'Part Number', 'Manufacturer', 'Description',
    'Base Price', 'Per Foot', 'Bolt Adder', 'Assembled Price', 'Breaker Adder',
    'Unit Price', 'Extended Price', 'List Price', 'Budgetary Pricing Text', 'Phase Type',
    'Conductor Count', 'Neutral', 'Protection Rating', 'Certification', 'Lead Time',
)


# ═══════════════════════════════════════════════════════════════
#  NATURAL LANGUAGE SYNONYMS
# ═══════════════════════════════════════════════════════════════

CONDUIT_SYNONYMS = {
    'liquid tight conduit': 'LMZC',
    'liquid tight': 'LMZC',
    'liquidtight flexible nonmetallic conduit': 'LMZC',
    'liquidtight flexible metal conduit': 'LFMC',
    'liquid-tight flexible metal conduit': 'LFMC',
    'liquid tight flexible metal conduit': 'LFMC',
    'flexible metal conduit': 'FMC',
    'flexible metallic conduit': 'FMC',
    'metal conduit': 'MCC',
    'electrical metallic tubing': 'EMT',
    'metal-clad cable': 'MC',
    'metal clad cable': 'MC',
    'armored cable': 'MC',
    'thermoplastic': 'TO',
    'service cable': 'SO',
}

# Bare codes recognized on word boundaries
CONDUIT_CODES = ('LMZC', 'LFMC', 'MMC', 'FMC', 'MCC', 'EMT', 'MC', 'SO')

RECEPTACLE_SYNONYMS = {
    'iec pinned and sleeve plug': 'CS8269A',
    'iec pin and sleeve': 'CS8269A',
    'nema 5-15': '460C9W',
    'nema 5-20': '460R9W',
    'nema 6-15': 'L6-15R',
    'nema 6-20': 'L6-20R',
    'nema l5-20': 'L5-20R',
    'nema l5-30': 'L5-30R',
    'nema l6-20': 'L6-20R',
    'nema l6-30': 'L6-30R',
}

COLOR_SYNONYMS = {
    'red': 'Red',
    'orange': 'Orange',
    'blue': 'Blue',
    'yellow': 'Yellow',
    'purple': 'Purple',
    'tan': 'Tan',
    'pink': 'Pink',
    'gray': 'Gray',
    'grey': 'Gray',
    'green': 'Green',
    'black': 'Black',
    'white': 'White',
}

DEFAULT_CONDUIT = 'LMZC'
DEFAULT_RECEPTACLE = 'CS8269A'
DEFAULT_COLORS = ('Red', 'Orange', 'Blue', 'Yellow')
DEFAULT_TAIL_LENGTH = '10'

# Phrases that mark an input line as a natural-language order
NATURAL_LANGUAGE_MARKERS = (
    'power whips total',
    'whip lengths ranging',
    'liquid tight conduit',
    'whips total',
    'whips needed',
    'whips required',
)


# ═══════════════════════════════════════════════════════════════
#  RECEPTACLE RATINGS
# ═══════════════════════════════════════════════════════════════

RECEPTACLE_RATINGS = {
    # NEMA straight blade
    '460R9W': ('5-20R', '125', '20', '12', 'NEMA 5-20R, 20A, 125V'),
    '460C9W': ('5-15R', '125', '15', '14', 'NEMA 5-15R, 15A, 125V'),
    '5-15R': ('5-15R', '125', '15', '14', 'NEMA 5-15R, 15A, 125V'),
    '5-20R': ('5-20R', '125', '20', '12', 'NEMA 5-20R, 20A, 125V'),
    # NEMA locking
    'L5-15R': ('L5-15R', '125', '15', '14', 'NEMA L5-15R, 15A, 125V Locking'),
    'L5-20R': ('L5-20R', '125', '20', '12', 'NEMA L5-20R, 20A, 125V Locking'),
    'L5-30R': ('L5-30R', '125', '30', '10', 'NEMA L5-30R, 30A, 125V Locking'),
    'L6-15R': ('L6-15R', '250', '15', '14', 'NEMA L6-15R, 15A, 250V Locking'),
    'L6-20R': ('L6-20R', '250', '20', '12', 'NEMA L6-20R, 20A, 250V Locking'),
    'L6-30R': ('L6-30R', '250', '30', '10', 'NEMA L6-30R, 30A, 250V Locking'),
    # California Standard
    'CS8269A': ('CS8269A', '480', '50', '6', 'California Standard CS8269A, 50A, 480V'),
    'CS8365A': ('CS8365A', '480', '60', '4', 'California Standard CS8365A, 60A, 480V'),
    # IEC
    'IEC60309': ('IEC60309', '400', '32', '8', 'IEC 60309, 32A, 400V Industrial'),
}


# ═══════════════════════════════════════════════════════════════
#  CONFIG OBJECTS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AggregationSettings:
    """Thresholds and confidence adjustments used by the PatternAggregator."""
    min_frequency: int = 2
    similarity_threshold: float = 0.7
    base_confidence: float = 0.5
    frequency_step: float = 0.1
    frequency_cap: float = 0.3
    signature_bonus: float = 0.2
    variation_limit: int = 5
    variation_penalty: float = 0.1


@dataclass(frozen=True)
class MappingSettings:
    """Group bonus and activation threshold used by the NomenclatureMapper."""
    group_bonus_step: float = 0.1
    group_bonus_cap: float = 0.2
    activation_threshold: float = 0.7


@dataclass(frozen=True)
class ScanSettings:
    """Bounds that keep the scan and transform cost predictable."""
    max_rows_per_sheet: int = 5000
    lookahead_cells: int = 10


@dataclass(frozen=True)
class PatternTables:
    """Ordered regex families per category."""
    definitions: tuple = PATTERN_DEFINITIONS
    domain_signature: str = DOMAIN_SIGNATURE_RE
    tail_keywords: str = TAIL_KEYWORDS_RE


@dataclass(frozen=True)
class SynonymTables:
    """Free-text to canonical code lookups for the natural-language parser."""
    conduit: MappingProxyType = field(default_factory=lambda: MappingProxyType(CONDUIT_SYNONYMS))
    conduit_codes: tuple = CONDUIT_CODES
    receptacle: MappingProxyType = field(default_factory=lambda: MappingProxyType(RECEPTACLE_SYNONYMS))
    color: MappingProxyType = field(default_factory=lambda: MappingProxyType(COLOR_SYNONYMS))
    default_conduit: str = DEFAULT_CONDUIT
    default_receptacle: str = DEFAULT_RECEPTACLE
    default_colors: tuple = DEFAULT_COLORS
    default_tail_length: str = DEFAULT_TAIL_LENGTH
    natural_language_markers: tuple = NATURAL_LANGUAGE_MARKERS


@dataclass(frozen=True)
class EngineConfig:
    """Everything a pipeline run needs, bundled so it can be passed around whole."""
    tables: PatternTables = field(default_factory=PatternTables)
    synonyms: SynonymTables = field(default_factory=SynonymTables)
    aggregation: AggregationSettings = field(default_factory=AggregationSettings)
    mapping: MappingSettings = field(default_factory=MappingSettings)
    scan: ScanSettings = field(default_factory=ScanSettings)


DEFAULT_CONFIG = EngineConfig()


# ═══════════════════════════════════════════════════════════════
#  JSON OVERRIDES
# ═══════════════════════════════════════════════════════════════

_SETTINGS_SECTIONS = {
    'aggregation': AggregationSettings,
    'mapping': MappingSettings,
    'scan': ScanSettings,
}


def load_config(path: Optional[str] = None) -> EngineConfig:
    """
    Build an EngineConfig from the defaults plus an optional JSON override file.

    Override file shape (every section optional):
        {
          "aggregation": {"similarity_threshold": 0.75},
          "mapping": {"activation_threshold": 0.6},
          "scan": {"max_rows_per_sheet": 2000},
          "synonyms": {"conduit": {"bx cable": "MC"}, "color": {"violet": "Purple"}},
          "patterns": {"cable": ["\\\\bBX\\\\b"]}
        }

    Synonyms extend the defaults; patterns are appended to the named
    category's regex family. A missing file returns the defaults; an
    unreadable file logs a warning and returns the defaults.
    """
    if not path or not os.path.exists(path):
        return DEFAULT_CONFIG

    try:
        with open(path, 'r', encoding='utf-8') as f:
            overrides = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load config overrides from {path}: {e}")
        return DEFAULT_CONFIG

    return apply_overrides(DEFAULT_CONFIG, overrides)


def apply_overrides(base: EngineConfig, overrides: dict) -> EngineConfig:
    """Return a new EngineConfig with the override dict merged into base."""
    if not isinstance(overrides, dict):
        raise ConfigError("Config overrides must be a JSON object")

    known = set(_SETTINGS_SECTIONS) | {'synonyms', 'patterns'}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    changes = {}
    for section, settings_cls in _SETTINGS_SECTIONS.items():
        values = overrides.get(section)
        if not values:
            continue
        valid = {f.name for f in dataclasses.fields(settings_cls)}
        bad = set(values) - valid
        if bad:
            raise ConfigError(f"Unknown {section} settings: {', '.join(sorted(bad))}")
        changes[section] = dataclasses.replace(getattr(base, section), **values)

    if overrides.get('synonyms'):
        changes['synonyms'] = _merge_synonyms(base.synonyms, overrides['synonyms'])

    if overrides.get('patterns'):
        changes['tables'] = _merge_patterns(base.tables, overrides['patterns'])

    return dataclasses.replace(base, **changes)


def _merge_synonyms(base: SynonymTables, extra: dict) -> SynonymTables:
    changes = {}
    for name in ('conduit', 'receptacle', 'color'):
        if name in extra:
            merged = dict(getattr(base, name))
            merged.update({k.lower(): v for k, v in extra[name].items()})
            changes[name] = MappingProxyType(merged)
    return dataclasses.replace(base, **changes)


def _merge_patterns(base: PatternTables, extra: dict) -> PatternTables:
    by_value = {c.value: c for c in Category}
    unknown = set(extra) - set(by_value)
    if unknown:
        raise ConfigError(f"Unknown pattern categories: {', '.join(sorted(unknown))}")

    definitions = []
    for category, patterns in base.definitions:
        added = tuple(extra.get(category.value, ()))
        definitions.append((category, tuple(patterns) + added))
    return dataclasses.replace(base, definitions=tuple(definitions))
