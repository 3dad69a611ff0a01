# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Locale-tolerant amount and date normalization.

Ledger exports from Brazilian banks and accounting tools mix
``1.234,56`` and ``1,234.56`` styles, currency symbols and several date
layouts. The helpers in this module turn such strings into plain floats
and ISO dates. They never raise: unusable amounts become 0.0 and unusable
dates fall back to today's date, so that a report can always be built
from "good enough" data.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

_CURRENCY_RE = re.compile(r"[R$€£¥]", re.IGNORECASE)
_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")

_DMY_SLASH = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_DMY_DASH = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_YMD_DASH = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_YMD_SLASH = re.compile(r"^(\d{4})/(\d{2})/(\d{2})$")


def _today() -> date:
    """Return today's date (isolated for easier testing)."""
    return datetime.today().date()


def _valid_iso(year: str, month: str, day: str) -> Optional[str]:
    """Return 'YYYY-MM-DD' if the parts form a real calendar date."""
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def parse_amount(value: Any) -> float:
    """Convert a monetary string into a float.

    Rules:
        - currency symbols (R$, $, €, £, ¥) and whitespace are removed;
        - when both ',' and '.' appear, the one occurring last is the
          decimal separator and the other one is a thousands separator;
        - a single ',' is a decimal separator;
        - a single '.' followed by 3 or more digits is a thousands
          separator, otherwise it is a decimal separator;
        - a separator repeated several times (and no other separator)
          is a thousands separator.

    Examples:
        "1.234,56" -> 1234.56
        "1,234.56" -> 1234.56
        "R$ 45,00" -> 45.0
        "-350,10"  -> -350.1
        ""         -> 0.0

    Args:
        value: Raw cell content. Non-string values are stringified;
            None yields 0.0.

    Returns:
        The parsed amount, or 0.0 when no number can be found.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return 0.0 if pd.isna(value) else float(value)

    text = str(value).strip()
    if not text:
        return 0.0

    text = _CURRENCY_RE.sub("", text)
    text = re.sub(r"\s", "", text)
    cleaned = re.sub(r"[^\d,.\-]", "", text)
    if not cleaned:
        logger.debug("parse_amount: no number found in %r", value)
        return 0.0

    last_comma = cleaned.rfind(",")
    last_dot = cleaned.rfind(".")
    comma_count = cleaned.count(",")
    dot_count = cleaned.count(".")

    if comma_count and dot_count:
        if last_comma > last_dot:
            # Brazilian style: 1.234,56
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            # International style: 1,234.56
            cleaned = cleaned.replace(",", "")
    elif comma_count == 1:
        cleaned = cleaned.replace(",", ".")
    elif comma_count > 1:
        cleaned = cleaned.replace(",", "")
    elif dot_count == 1:
        after_dot = cleaned.split(".", 1)[1]
        if len(after_dot) >= 3:
            cleaned = cleaned.replace(".", "")
    elif dot_count > 1:
        cleaned = cleaned.replace(".", "")

    match = _NUMBER_RE.search(cleaned)
    if match is None:
        logger.debug("parse_amount: unusable amount %r", value)
        return 0.0

    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def normalize_date(value: Any, today: Optional[date] = None) -> str:
    """Normalize a date string to ISO format (YYYY-MM-DD).

    Accepted layouts, in order:
        DD/MM/YYYY, DD-MM-YYYY, YYYY-MM-DD, YYYY/MM/DD,
        then any format understood by ``pandas.to_datetime`` (day first).

    Unparseable or empty input falls back to today's date.

    Args:
        value: Raw cell content.
        today: Optional override for the fallback date.

    Returns:
        An ISO date string.
    """
    fallback = (today or _today()).isoformat()

    if value is None:
        return fallback
    text = str(value).strip()
    if not text:
        return fallback

    m = _DMY_SLASH.match(text) or _DMY_DASH.match(text)
    if m:
        day, month, year = m.groups()
        iso = _valid_iso(year, month, day)
        if iso:
            return iso

    m = _YMD_DASH.match(text) or _YMD_SLASH.match(text)
    if m:
        iso = _valid_iso(*m.groups())
        if iso:
            return iso

    try:
        parsed = pd.to_datetime(text, dayfirst=True, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        parsed = pd.NaT

    if pd.isna(parsed):
        logger.debug("normalize_date: unparseable date %r, using %s", value, fallback)
        return fallback

    return parsed.date().isoformat()
