"""Audit actions and their metadata payloads.

Each action has exactly one payload shape.  ``AuditPayload`` is the
union of those shapes; ``record_audit()`` derives the action name and
the JSON metadata from whichever payload it is handed.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import ClassVar, Union

ENTITY_OUTPUT_JOB = "OutputJob"
ENTITY_NOTIFICATION = "Notification"

ACTION_QUEUED = "queued"
ACTION_PROCESSING = "processing"
ACTION_COMPLETED = "completed"
ACTION_FAILED = "failed"
ACTION_CREATED = "created"

VALID_ACTIONS: frozenset[str] = frozenset({
    ACTION_QUEUED,
    ACTION_PROCESSING,
    ACTION_COMPLETED,
    ACTION_FAILED,
    ACTION_CREATED,
})


@dataclass(frozen=True)
class JobQueuedPayload:
    action: ClassVar[str] = ACTION_QUEUED
    entity_type: ClassVar[str] = ENTITY_OUTPUT_JOB

    document_id: str


@dataclass(frozen=True)
class ProcessingStartedPayload:
    action: ClassVar[str] = ACTION_PROCESSING
    entity_type: ClassVar[str] = ENTITY_OUTPUT_JOB

    mode: str
    attempt: int


@dataclass(frozen=True)
class ProcessingCompletedPayload:
    action: ClassVar[str] = ACTION_COMPLETED
    entity_type: ClassVar[str] = ENTITY_OUTPUT_JOB

    rows_stored: int
    issues_created: int
    mode: str
    strategy: str


@dataclass(frozen=True)
class JobFailedPayload:
    action: ClassVar[str] = ACTION_FAILED
    entity_type: ClassVar[str] = ENTITY_OUTPUT_JOB

    error: str


@dataclass(frozen=True)
class NotificationCreatedPayload:
    action: ClassVar[str] = ACTION_CREATED
    entity_type: ClassVar[str] = ENTITY_NOTIFICATION

    user_id: str


AuditPayload = Union[
    JobQueuedPayload,
    ProcessingStartedPayload,
    ProcessingCompletedPayload,
    JobFailedPayload,
    NotificationCreatedPayload,
]


def payload_metadata(payload: AuditPayload) -> dict:
    """Return the JSON-serialisable metadata dict for *payload*."""
    return asdict(payload)
