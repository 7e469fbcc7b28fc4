"""Closed vocabularies shared by the normalizer, validator and models.

Every enum-typed column on ``extraction_task_rows`` holds one of the
values below.  Unrecognised input is mapped to the listed default by
``compass.normalization.row_normalizer`` before it reaches the database.
"""
from __future__ import annotations

# ---------------------------------------------------------------------------
# Job lifecycle
# ---------------------------------------------------------------------------

JOB_QUEUED = "queued"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"

TERMINAL_JOB_STATUSES: frozenset[str] = frozenset({JOB_COMPLETED, JOB_FAILED})

# ---------------------------------------------------------------------------
# Task-row enums
# ---------------------------------------------------------------------------

DEPENDENCY_TYPES: frozenset[str] = frozenset({
    "finish_to_start",
    "start_to_start",
    "finish_to_finish",
    "start_to_finish",
    "none",
})
DEFAULT_DEPENDENCY_TYPE = "none"

CONSTRAINT_TYPES: frozenset[str] = frozenset({
    "none",
    "material",
    "crew",
    "access",
    "permit",
    "weather",
    "other",
})
DEFAULT_CONSTRAINT_TYPE = "none"

TASK_STATUSES: frozenset[str] = frozenset({
    "not_started",
    "in_progress",
    "blocked",
    "complete",
    "unknown",
})
DEFAULT_TASK_STATUS = "unknown"

DEFAULT_CONFIDENCE = 0.45

# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

ISSUE_TYPE_ROW_VALIDATION = "row-validation"

DEFAULT_ISSUE_SEVERITY = "medium"

ISSUE_OPEN = "open"

# ---------------------------------------------------------------------------
# Legacy field rows
# ---------------------------------------------------------------------------

LEGACY_FIELD_NAME = "task_assignment_row"
LEGACY_FIELD_BBOX: list[float] = [0.05, 0.05, 0.95, 0.95]

# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

NOTIFICATION_JOB_COMPLETED = "job.completed"
NOTIFICATION_TITLE_COMPLETED = "Document processing complete"
