"""Permissive calendar-date parsing.

Accepted inputs, tried in order:

1. ISO ``YYYY-MM-DD`` (a trailing time part is ignored)
2. Named month: ``May 1, 2024``, ``1 May 2024``, ``Sept. 3 2024``
3. Numeric ``YYYY/MM/DD`` with any of ``/ - .`` as separator
4. Numeric ``MM/DD/YYYY`` or ``MM/DD/YY`` (US order; two-digit years
   00-29 map to 20xx, 30-99 to 19xx)

Output is always ``YYYY-MM-DD`` or ``""``.
"""
from __future__ import annotations

import re
from datetime import date, datetime

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T\s].*)?$")

_NAMED_MONTH_FORMATS = (
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def _safe_date(year: int, month: int, day: int) -> str:
    try:
        return date(year, month, day).isoformat()
    except (ValueError, OverflowError):
        return ""


def _expand_year(year_str: str) -> int:
    year = int(year_str)
    if len(year_str) == 2:
        year = 2000 + year if year < 30 else 1900 + year
    return year


def normalize_date(value: object) -> str:
    """Return *value* as ``YYYY-MM-DD``, or ``""`` when it is not a date."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not text:
        return ""

    match = _ISO_RE.match(text)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    # Named months: drop commas and the period in "Sept." / "Jan."
    cleaned = re.sub(r"[,.]", " ", text)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    cleaned = re.sub(r"(?i)\bsept\b", "Sep", cleaned)
    for fmt in _NAMED_MONTH_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date().isoformat()
        except ValueError:
            continue

    parts = re.split(r"[-./]", text)
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return ""
    p0, p1, p2 = (p.strip() for p in parts)

    if len(p0) == 4:
        return _safe_date(int(p0), int(p1), int(p2))

    if len(p2) in (2, 4):
        return _safe_date(_expand_year(p2), int(p0), int(p1))

    return ""
