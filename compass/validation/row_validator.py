"""Rule battery run against every normalized row.

Each failing rule yields exactly one message; messages come back in rule
order.  The enum rules repeat what the normalizer already guarantees and
only fire if a row skipped normalization.
"""
from __future__ import annotations

import math
from datetime import date

from compass.core.constants import CONSTRAINT_TYPES, DEPENDENCY_TYPES, TASK_STATUSES
from compass.normalization.row_normalizer import ExtractedRow


def _parse_iso(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _percent(fraction: float) -> int:
    """Whole percent, halves rounded up (72.5 -> 73)."""
    return math.floor(fraction * 100 + 0.5)


def finish_precedes_start(start: str, finish: str) -> bool:
    """True only when both dates parse and *finish* is strictly earlier."""
    if not start or not finish:
        return False
    start_date = _parse_iso(start)
    finish_date = _parse_iso(finish)
    if start_date is None or finish_date is None:
        return False
    return finish_date < start_date


def validate_row(row: ExtractedRow, confidence_threshold: float) -> list[str]:
    """Return the issue messages for *row* (empty when it passes)."""
    messages: list[str] = []

    if not row.task_name.strip():
        messages.append("missing task_name")
    if not row.sc_name.strip():
        messages.append("missing sc_name")

    if finish_precedes_start(row.planned_start, row.planned_finish):
        messages.append("planned_finish occurs before planned_start")

    if row.dependency_type not in DEPENDENCY_TYPES:
        messages.append("invalid dependency_type")
    if row.constraint_type not in CONSTRAINT_TYPES:
        messages.append("invalid constraint_type")
    if row.status not in TASK_STATUSES:
        messages.append("invalid status")

    if not 0 <= row.allocation_pct <= 100:
        messages.append("allocation_pct out of range (0-100)")

    if row.confidence < confidence_threshold:
        messages.append(
            f"row confidence {_percent(row.confidence)}% "
            f"below threshold {_percent(confidence_threshold)}%"
        )

    return messages


def issue_details(row: ExtractedRow, message: str) -> str:
    return f"Row {row.record_id}: {message}"
