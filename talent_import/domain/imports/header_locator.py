"""
Find the real header row of a sheet.

Exports from ATS and CRM tools often start with a report title, a generation
timestamp or a description of the filters used. The header is the first row
that looks like a set of labels: dense enough, not repetitive, and free of
numbers and dates.
"""
import logging
import re
from typing import List, Optional, Tuple

from talent_import.core.config import settings
from talent_import.domain.imports.processors.tabular_reader import Sheet, raw_rows

logger = logging.getLogger(__name__)

MIN_HEADER_CELLS = 3
MIN_UNIQUE_RATIO = 0.8

_PLAIN_NUMBER = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)$")
_DATE_LIKE = re.compile(r"^\d{1,2}/\d{1,2}(/\d{2,4})?$")


def _looks_like_data(value: str) -> bool:
    compact = value.strip()
    return bool(_PLAIN_NUMBER.match(compact) or _DATE_LIKE.match(compact))


def header_rejection_reason(row: List[str]) -> Optional[str]:
    """Return why ``row`` cannot be a header, or None if it qualifies."""
    values = [cell.strip() for cell in row if cell and cell.strip()]
    if len(values) < MIN_HEADER_CELLS:
        return "too_sparse"

    unique_ratio = len({value.lower() for value in values}) / len(values)
    if unique_ratio < MIN_UNIQUE_RATIO:
        return "repeated_values"

    if any(_looks_like_data(value) for value in values):
        return "data_values"

    return None


def locate_header_row(sheet: Sheet, max_rows: Optional[int] = None) -> Tuple[int, bool]:
    """
    Scan the top of the sheet for the header row.

    Returns:
        Tuple of (row_index, detected). ``detected`` is False when no row in the
        scanned window qualified and row 0 was used as a fallback.
    """
    window = raw_rows(sheet, max_rows or settings.header_scan_rows)

    for idx, row in enumerate(window):
        reason = header_rejection_reason(row)
        if reason is None:
            if idx:
                logger.info("Header row detected at index %d (skipped %d preamble rows)", idx, idx)
            return idx, True
        logger.debug("Row %d rejected as header: %s", idx, reason)

    if window:
        logger.warning(
            "No row in the first %d looks like a header; falling back to row 0", len(window)
        )
    return 0, False


def detect_header_row(sheet: Sheet) -> int:
    """Return the 0-based index of the most likely header row."""
    row_index, _ = locate_header_row(sheet)
    return row_index
