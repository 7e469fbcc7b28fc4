"""Prompt text and response schema for model-backed extraction.

The user prompt uses ``str.format()`` placeholders.  ``TASK_ROW_SCHEMA``
is sent as a strict ``json_schema`` response format, so every property is
required and nullable values are not allowed: the model returns ``""``
or ``0`` for anything it cannot find, and the normalizer applies the
real defaults.
"""
from __future__ import annotations

SYSTEM_PROMPT = (
    "You extract structured construction schedule and subcontractor "
    "assignment rows from bid and schedule documents.  "
    "Return strict JSON only.  No prose, no markdown fences.  "
    "Use an empty string or 0 for values the document does not state; "
    "never invent dates."
)

USER_PROMPT = (
    "Filename: {filename}\n"
    "Document ID: {document_id}\n"
    "PDF Text:\n"
    "{document_text}\n"
    "\n"
    "Return JSON with a \"rows\" array.  Each row is one task assigned to "
    "one subcontractor.  Dates use YYYY-MM-DD.  dependency_type is one of "
    "finish_to_start, start_to_start, finish_to_finish, start_to_finish, "
    "none.  constraint_type is one of none, material, crew, access, "
    "permit, weather, other.  status is one of not_started, in_progress, "
    "blocked, complete, unknown.  allocation_pct and percent_complete are "
    "0-100.  confidence is 0-1 and reflects how clearly the document "
    "states the row."
)

_STRING_FIELDS = (
    "record_id",
    "project_name",
    "gc_name",
    "sc_name",
    "trade",
    "task_id",
    "task_name",
    "location_path",
    "upstream_task_id",
    "downstream_task_id",
    "dependency_type",
    "planned_start",
    "planned_finish",
    "sc_available_from",
    "sc_available_to",
    "constraint_type",
    "constraint_note",
    "status",
    "source_snippet",
)

_NUMBER_FIELDS = (
    "lag_days",
    "duration_days",
    "allocation_pct",
    "constraint_impact_days",
    "percent_complete",
    "confidence",
    "source_page",
)

ROW_FIELDS: tuple[str, ...] = _STRING_FIELDS + _NUMBER_FIELDS

TASK_ROW_SCHEMA: dict = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "rows": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    **{name: {"type": "string"} for name in _STRING_FIELDS},
                    **{name: {"type": "number"} for name in _NUMBER_FIELDS},
                },
                "required": list(ROW_FIELDS),
            },
        }
    },
    "required": ["rows"],
}

SCHEMA_NAME = "extraction_task_rows"
