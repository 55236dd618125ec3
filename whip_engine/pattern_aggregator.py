"""
pattern_aggregator.py — Frequency counting, variation grouping, confidence.

Takes every PatternMatch from a whole-workbook scan (this is the barrier:
all sheets must be classified first) and produces one PatternAnalysis per
recurring (category, normalized value) pair:
  - key = trimmed, lower-cased value
  - singletons are noise and are dropped
  - variations = raw strings in the same category that contain / are
    contained in the key, or are within edit-distance similarity of it
  - confidence from frequency, domain signature and variation spread

Similarity uses rapidfuzz's Levenshtein over alphanumeric-stripped strings:
    similarity = (maxLen - distance) / maxLen
"""

import logging
import re
from typing import Optional

from rapidfuzz.distance import Levenshtein

from .config import AggregationSettings, OTHER_TERM, PatternTables, STANDARD_TERMS
from .models import Category, PatternAnalysis, PatternMatch

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r'[^a-z0-9]')


def normalize_key(value: str) -> str:
    return value.strip().lower()


def strip_alnum(value: str) -> str:
    """Lower-case and drop everything that is not a letter or digit."""
    return _NON_ALNUM_RE.sub('', value.lower())


def similarity(a: str, b: str) -> float:
    """Normalized edit similarity of two already-stripped strings, 0.0–1.0."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return Levenshtein.normalized_similarity(a, b)


def is_similar(a: str, b: str, threshold: float = 0.7) -> bool:
    """
    True when two raw strings are variants of each other.

    Containment of one stripped form in the other counts as similar; an
    empty stripped form is only similar to another empty one.
    """
    sa, sb = strip_alnum(a), strip_alnum(b)
    if not sa or not sb:
        return sa == sb
    if sa in sb or sb in sa:
        return True
    return similarity(sa, sb) > threshold


class PatternAggregator:
    """Collapse a match stream into scored PatternAnalysis entries."""

    def __init__(self, settings: Optional[AggregationSettings] = None,
                 tables: Optional[PatternTables] = None):
        self.settings = settings or AggregationSettings()
        self.tables = tables or PatternTables()
        self._signature_re = re.compile(self.tables.domain_signature, re.IGNORECASE)

    def aggregate(self, matches: list[PatternMatch]) -> list[PatternAnalysis]:
        """
        Aggregate matches into PatternAnalysis entries.

        Output is in first-occurrence order of each (category, key), so the
        same input always yields the same list. No matches → empty list.
        """
        counts = {}         # (category, key) -> frequency, insertion ordered
        raw_by_category = {}  # category -> distinct raw strings, first-seen order

        for m in matches:
            key = normalize_key(m.value)
            if not key:
                continue
            counts[(m.category, key)] = counts.get((m.category, key), 0) + 1
            seen = raw_by_category.setdefault(m.category, {})
            seen.setdefault(m.value.strip(), None)

        analyses = []
        for (category, key), frequency in counts.items():
            if frequency < self.settings.min_frequency:
                continue
            variations = self.variations_for(key, raw_by_category.get(category, {}))
            analyses.append(PatternAnalysis(
                pattern=key,
                category=category,
                frequency=frequency,
                variations=variations,
                standard_mapping=STANDARD_TERMS.get(category, OTHER_TERM),
                confidence=self.confidence(key, frequency, len(variations)),
            ))

        dropped = len(counts) - len(analyses)
        logger.info(f"Aggregated {len(matches)} matches into {len(analyses)} patterns "
                    f"({dropped} singletons dropped)")
        return analyses

    def variations_for(self, key: str, raw_values) -> tuple:
        threshold = self.settings.similarity_threshold
        return tuple(raw for raw in raw_values if is_similar(key, raw, threshold))

    def confidence(self, pattern: str, frequency: int, variation_count: int) -> float:
        """
        Score how much a recurring pattern can be trusted as a canonical term.

        Non-decreasing in frequency; clamped to [0, 1].
        """
        s = self.settings
        score = s.base_confidence
        score += min(frequency * s.frequency_step, s.frequency_cap)
        if self._signature_re.search(pattern):
            score += s.signature_bonus
        if variation_count > s.variation_limit:
            score -= s.variation_penalty
        return max(0.0, min(1.0, score))


def group_by_category(analyses: list[PatternAnalysis]) -> dict:
    """Category → analyses, in order of each category's first appearance."""
    grouped = {}
    for a in analyses:
        grouped.setdefault(a.category, []).append(a)
    return grouped


def category_counts(matches: list[PatternMatch]) -> dict:
    counts = {c: 0 for c in Category}
    for m in matches:
        counts[m.category] += 1
    return counts
