"""
Date parsing for spreadsheet cells.

Spreadsheet exports mix ISO timestamps, US and European slash dates and
free-form strings. ``parse_flexible_date`` tries the most plausible reading
first and falls back to pandas inference.
"""

import logging
import re
from datetime import datetime
from typing import Any, Optional

import pandas as pd

from talent_import.core.config import settings

logger = logging.getLogger(__name__)

FAILED_SAMPLE_LIMIT = 5
SUPPRESSION_NOTICE_EVERY = 100

SLASH_DATE_PATTERN = re.compile(r'^(\d{1,2})[/-](\d{1,2})[/-]\d{2,4}')

_failure_stats: dict = {}


def _record_parse_failure(value: Any, context: Optional[str], error: Exception) -> None:
    """Keep the first few failures per context as warnings, then only periodic summaries."""
    key = context or "default"
    stats = _failure_stats.setdefault(key, {"count": 0, "samples": []})
    stats["count"] += 1
    count = stats["count"]

    if len(stats["samples"]) < FAILED_SAMPLE_LIMIT:
        stats["samples"].append(value)
        logger.warning("Failed to parse date%s value '%s': %s", f" ({key})" if context else "", value, error)
        return

    if count == FAILED_SAMPLE_LIMIT + 1 or count % SUPPRESSION_NOTICE_EVERY == 0:
        logger.info(
            "Suppressed additional date parse warnings after %d failures%s; sample values=%s",
            count,
            f" ({key})" if context else "",
            stats["samples"],
        )


def _prefers_dayfirst(first: int, second: int) -> bool:
    if first > 12 and second <= 31:
        return True
    if second > 12 and first <= 12:
        return False
    return settings.date_default_dayfirst


def parse_flexible_date(value: Any, *, log_context: Optional[str] = None, log_failures: bool = True) -> Optional[datetime]:
    """
    Parse a cell value into a timezone-aware UTC datetime.

    Supports ISO 8601, DD/MM/YYYY, MM/DD/YYYY, YYYY-MM-DD and anything else
    pandas can infer. Returns None when the value is blank or unparseable.
    """
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None

    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None

    attempts = []
    if isinstance(value, str):
        match = SLASH_DATE_PATTERN.match(value)
        if match:
            dayfirst = _prefers_dayfirst(int(match.group(1)), int(match.group(2)))
            attempts.append(lambda v, df=dayfirst: pd.to_datetime(v, utc=True, dayfirst=df, errors='raise'))
            attempts.append(lambda v, df=not dayfirst: pd.to_datetime(v, utc=True, dayfirst=df, errors='raise'))

    attempts.append(lambda v: pd.to_datetime(v, utc=True, errors='raise'))

    last_error = None
    for attempt in attempts:
        try:
            parsed = attempt(value)
        except (ValueError, TypeError, OverflowError) as exc:
            last_error = exc
            continue
        if pd.isna(parsed):
            continue
        return parsed.to_pydatetime()

    if log_failures:
        _record_parse_failure(value, log_context, last_error or ValueError("Unable to determine format"))
    return None
