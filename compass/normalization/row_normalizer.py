"""Raw row -> canonical ``ExtractedRow``.

Rules applied per field kind
----------------------------
identifiers  missing/blank or wider than the 128-char column -> freshly
             generated (``row_…``, ``task_…``); task references are cut
             to 128 chars
text         ``None`` -> ``""``, anything else ``str()`` then trimmed
dates        :func:`compass.normalization.dates.normalize_date`
enums        lower-cased, whitespace/hyphen runs -> ``_``, must be in the
             closed set, else the field default
numbers      coerced to float, ``0`` on failure
percentages  numbers clamped to ``[0, 100]``
confidence   clamped to ``[0, 1]``, ``0.45`` when absent or unparseable
page         ``1`` when absent or below 1, capped at the INTEGER maximum

Keys may arrive in snake_case (model schema) or camelCase.  The function
is a fixed point: ``normalize_row(row.as_raw(), ...) == row``.
"""
from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from compass.core.constants import (
    CONSTRAINT_TYPES,
    DEFAULT_CONFIDENCE,
    DEFAULT_CONSTRAINT_TYPE,
    DEFAULT_DEPENDENCY_TYPE,
    DEFAULT_TASK_STATUS,
    DEPENDENCY_TYPES,
    TASK_STATUSES,
)
from compass.core.ids import as_utc, new_id, utcnow
from compass.normalization.dates import normalize_date

SNIPPET_MAX_CHARS = 500
# Width of the id columns on extraction_task_rows.
ID_MAX_CHARS = 128
# Largest value the source_page INTEGER column holds.
MAX_SOURCE_PAGE = 2_147_483_647


@dataclass(frozen=True)
class ExtractedRow:
    record_id: str
    document_id: str
    project_name: str
    gc_name: str
    sc_name: str
    trade: str
    task_id: str
    task_name: str
    location_path: str
    upstream_task_id: str
    downstream_task_id: str
    dependency_type: str
    lag_days: float
    planned_start: str
    planned_finish: str
    duration_days: float
    sc_available_from: str
    sc_available_to: str
    allocation_pct: float
    constraint_type: str
    constraint_note: str
    constraint_impact_days: float
    status: str
    percent_complete: float
    confidence: float
    source_page: int
    source_snippet: str
    extracted_at: datetime

    def as_raw(self) -> dict[str, Any]:
        return asdict(self)


_TEXT_FIELDS = (
    "gc_name",
    "sc_name",
    "trade",
    "task_name",
    "location_path",
    "upstream_task_id",
    "downstream_task_id",
    "constraint_note",
)
_REFERENCE_FIELDS = ("upstream_task_id", "downstream_task_id")
_DATE_FIELDS = ("planned_start", "planned_finish", "sc_available_from", "sc_available_to")
_NUMBER_FIELDS = ("lag_days", "duration_days", "constraint_impact_days")
_PERCENT_FIELDS = ("allocation_pct", "percent_complete")

_ENUM_SEPARATOR_RE = re.compile(r"[\s\-]+")


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _lookup(raw: Mapping[str, Any], name: str) -> Any:
    if name in raw:
        return raw[name]
    return raw.get(_camel(name))


def coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def coerce_number(value: Any) -> float | None:
    """Return *value* as a finite float, or ``None`` if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().rstrip("%").replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_enum(value: Any, allowed: frozenset[str], default: str) -> str:
    token = _ENUM_SEPARATOR_RE.sub("_", coerce_text(value).lower()).strip("_")
    return token if token in allowed else default


def _normalize_confidence(value: Any) -> float:
    number = coerce_number(value)
    if number is None:
        return DEFAULT_CONFIDENCE
    return round(clamp(number, 0.0, 1.0), 3)


def _normalize_page(value: Any) -> int:
    number = coerce_number(value)
    if number is None or number < 1:
        return 1
    return int(min(number, MAX_SOURCE_PAGE))


def _normalize_id(value: Any, prefix: str) -> str:
    """Keep a usable id; generate one when it is blank or too wide to store."""
    text = coerce_text(value)
    if not text or len(text) > ID_MAX_CHARS:
        return new_id(prefix)
    return text


def _normalize_timestamp(value: Any, now: datetime) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str) and value.strip():
        try:
            return as_utc(datetime.fromisoformat(value.strip()))
        except ValueError:
            pass
    return now


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_row(
    raw: Mapping[str, Any] | ExtractedRow,
    document_id: str,
    filename: str,
    *,
    now: datetime | None = None,
) -> ExtractedRow:
    """Coerce *raw* into the canonical row shape.  Pure; never raises."""
    if isinstance(raw, ExtractedRow):
        raw = raw.as_raw()

    values: dict[str, Any] = {}

    values["record_id"] = _normalize_id(_lookup(raw, "record_id"), "row")
    values["document_id"] = document_id
    values["project_name"] = coerce_text(_lookup(raw, "project_name")) or Path(filename).stem
    values["task_id"] = _normalize_id(_lookup(raw, "task_id"), "task")

    for name in _TEXT_FIELDS:
        values[name] = coerce_text(_lookup(raw, name))
    for name in _REFERENCE_FIELDS:
        values[name] = values[name][:ID_MAX_CHARS].rstrip()

    for name in _DATE_FIELDS:
        values[name] = normalize_date(_lookup(raw, name))

    for name in _NUMBER_FIELDS:
        values[name] = coerce_number(_lookup(raw, name)) or 0.0

    for name in _PERCENT_FIELDS:
        values[name] = clamp(coerce_number(_lookup(raw, name)) or 0.0, 0.0, 100.0)

    values["dependency_type"] = normalize_enum(
        _lookup(raw, "dependency_type"), DEPENDENCY_TYPES, DEFAULT_DEPENDENCY_TYPE
    )
    values["constraint_type"] = normalize_enum(
        _lookup(raw, "constraint_type"), CONSTRAINT_TYPES, DEFAULT_CONSTRAINT_TYPE
    )
    values["status"] = normalize_enum(_lookup(raw, "status"), TASK_STATUSES, DEFAULT_TASK_STATUS)

    values["confidence"] = _normalize_confidence(_lookup(raw, "confidence"))
    values["source_page"] = _normalize_page(_lookup(raw, "source_page"))
    values["source_snippet"] = coerce_text(_lookup(raw, "source_snippet"))[:SNIPPET_MAX_CHARS].rstrip()
    values["extracted_at"] = _normalize_timestamp(_lookup(raw, "extracted_at"), now or utcnow())

    return ExtractedRow(**values)
