"""
pattern_classifier.py — Cell-level domain pattern recognition.

Tests a raw cell string against every category's ordered regex family:
  - receptacle (NEMA straight/locking, California Standard, IEC, device codes)
  - cable / conduit (MMC, LFMC, FMC, LMZC, EMT, ..., "liquid tight", "flex")
  - length, voltage, current, wire gauge (number + unit)
  - color (closed set)
  - general (mixed letter/digit identifier, only when nothing else hit)

Categories are NOT short-circuited: "50ft MMC" is both a length and a cable.
Classification is case-insensitive and never raises for a non-match.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Iterable, Optional

from .cell_scanner import ScannedCell, cell_text, scan_sheet
from .config import PatternTables, ScanSettings
from .models import CellValue, Category, PatternMatch, Workbook

logger = logging.getLogger(__name__)


class PatternClassifier:
    """Ordered regex families per category, compiled once per instance."""

    def __init__(self, tables: Optional[PatternTables] = None):
        self.tables = tables or PatternTables()
        self._families = tuple(
            (category, tuple(re.compile(p, re.IGNORECASE) for p in patterns))
            for category, patterns in self.tables.definitions
        )

    def find_categories(self, text: str) -> list[tuple[Category, str]]:
        """
        Return (category, matched substring) pairs for one string.

        Within a category, a hit whose span sits inside an already accepted
        span is dropped, so "NEMA L5-20R" is one receptacle, not two.
        """
        if not text or not text.strip():
            return []

        found = []
        for category, regexes in self._families:
            if category == Category.GENERAL and found:
                continue
            spans = []
            for regex in regexes:
                for m in regex.finditer(text):
                    value = m.group(0).strip()
                    if not value:
                        continue
                    start, end = m.span()
                    if any(s <= start and end <= e for s, e in spans):
                        continue
                    spans.append((start, end))
                    found.append((category, value))
        return found

    def classify(self, cell_value: CellValue, sheet_name: str = '',
                 cell_address: str = '', index_start: int = 0) -> list[PatternMatch]:
        """Classify one cell. Numbers are classified by their string form."""
        text = cell_text(cell_value)
        matches = []
        for offset, (category, value) in enumerate(self.find_categories(text)):
            idx = index_start + offset
            matches.append(PatternMatch(
                id=f"pattern_{idx}",
                category=category,
                value=value,
                cell_address=cell_address,
                sheet_name=sheet_name,
                global_index=idx,
            ))
        return matches

    def classify_cells(self, cells: Iterable[ScannedCell]) -> list[PatternMatch]:
        """
        Classify a stream of scanned cells.

        A cell that blows up is logged and treated as a non-match; the
        rest of the stream is still classified.
        """
        matches = []
        for cell in cells:
            try:
                matches.extend(self.classify(cell.raw_value, cell.sheet_name,
                                             cell.cell_address, len(matches)))
            except Exception as e:
                logger.warning(f"Skipping {cell.sheet_name}!{cell.cell_address}: {e}")
        return matches

    def classify_sheet(self, sheet_name: str, grid: list,
                       max_rows: Optional[int] = None) -> list[PatternMatch]:
        return self.classify_cells(scan_sheet(sheet_name, grid, max_rows))

    def classify_workbook(self, workbook: Workbook, settings: Optional[ScanSettings] = None,
                          max_workers: Optional[int] = None) -> list[PatternMatch]:
        """
        Classify every sheet and concatenate the results in sheet order.

        Sheets are independent, so with max_workers > 1 they are scanned in
        a thread pool. Matches are renumbered after concatenation, so the
        ids and global indexes equal those of a sequential scan.
        """
        settings = settings or ScanSettings()
        names = list(workbook.sheet_names)

        def _one(name):
            return self.classify_sheet(name, workbook.rows(name), settings.max_rows_per_sheet)

        if max_workers and max_workers > 1 and len(names) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                per_sheet = list(pool.map(_one, names))
        else:
            per_sheet = [_one(name) for name in names]

        combined = []
        for sheet_name, sheet_matches in zip(names, per_sheet):
            logger.info(f"Sheet '{sheet_name}': {len(sheet_matches)} pattern matches")
            combined.extend(sheet_matches)
        return renumber(combined)


def renumber(matches: list[PatternMatch]) -> list[PatternMatch]:
    """Reassign id/global_index so they run 0..n-1 over the concatenated list."""
    return [replace(m, id=f"pattern_{i}", global_index=i) for i, m in enumerate(matches)]
