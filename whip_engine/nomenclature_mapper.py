"""
nomenclature_mapper.py — Canonical term selection and rule generation.

Two steps:
  1. build_mappings(): one NomenclatureMapping per observed category, with
     the canonical PreSal column name and an aggregate confidence
  2. build_rules(): one TransformationRule per mapping, plus the three
     built-in rules (length 10, receptacle 9, voltage 8), sorted by
     descending priority

Sorting is stable, so on equal priority the data-driven rules stay ahead
of the built-ins and re-running on the same input gives the same list.
"""

import logging
import math
import re
from typing import Optional

from .config import (
    BUILTIN_RULES,
    CATEGORY_PRIORITY_BONUS,
    MAPPING_RULE_TEXT,
    OTHER_PRIORITY_BONUS,
    OTHER_TERM,
    STANDARD_TERMS,
    TRANSFORM_BY_CATEGORY,
    MappingSettings,
)
from .models import NomenclatureMapping, PatternAnalysis, TransformFunction, TransformationRule
from .pattern_aggregator import group_by_category

logger = logging.getLogger(__name__)


def round_half_up(x: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's)."""
    return int(math.floor(x + 0.5))


# ═══════════════════════════════════════════════════════════════
#  MAPPINGS
# ═══════════════════════════════════════════════════════════════

def build_mappings(analyses: list[PatternAnalysis],
                   settings: Optional[MappingSettings] = None) -> list[NomenclatureMapping]:
    """Group analyses by category and resolve each group to one canonical term."""
    settings = settings or MappingSettings()
    mappings = []

    for category, group in group_by_category(analyses).items():
        terms = tuple(a.pattern for a in group)
        mean = sum(a.confidence for a in group) / len(group)
        bonus = min(settings.group_bonus_step * len(group), settings.group_bonus_cap)

        mappings.append(NomenclatureMapping(
            original_terms=terms,
            standard_term=STANDARD_TERMS.get(category, OTHER_TERM),
            category=category,
            mapping_rule=MAPPING_RULE_TEXT.get(
                category, f"CONTAINS: [{', '.join(terms)}] → Standard format"),
            confidence=max(0.0, min(1.0, mean + bonus)),
        ))

    logger.info(f"Built {len(mappings)} nomenclature mappings")
    return mappings


# ═══════════════════════════════════════════════════════════════
#  RULES
# ═══════════════════════════════════════════════════════════════

def rule_priority(mapping: NomenclatureMapping) -> int:
    bonus = CATEGORY_PRIORITY_BONUS.get(mapping.category, OTHER_PRIORITY_BONUS)
    return round_half_up(mapping.confidence * 10) + bonus


def rule_from_mapping(mapping: NomenclatureMapping,
                      settings: Optional[MappingSettings] = None) -> TransformationRule:
    settings = settings or MappingSettings()
    return TransformationRule(
        name=f"Transform {mapping.category.value} to {mapping.standard_term}",
        source_pattern='|'.join(re.escape(t) for t in mapping.original_terms),
        target_column=mapping.standard_term,
        transform_function=TRANSFORM_BY_CATEGORY.get(mapping.category, TransformFunction.DIRECT_MAPPING),
        priority=rule_priority(mapping),
        is_active=mapping.confidence > settings.activation_threshold,
    )


def build_rules(mappings: list[NomenclatureMapping],
                settings: Optional[MappingSettings] = None) -> list[TransformationRule]:
    """
    Generate the ordered rule set.

    Returns rules sorted non-increasing by priority. Built-ins are appended
    after the generated rules before the (stable) sort.
    """
    rules = [rule_from_mapping(m, settings) for m in mappings]
    rules.extend(BUILTIN_RULES)
    rules.sort(key=lambda r: r.priority, reverse=True)

    active = sum(1 for r in rules if r.is_active)
    logger.info(f"Generated {len(rules)} transformation rules ({active} active)")
    return rules
