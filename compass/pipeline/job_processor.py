"""Job state machine: claim one job, process it, persist everything at once.

Lifecycle
---------
queued -> processing -> completed | failed

One call to :meth:`JobProcessor.process` runs inside a single database
transaction:

1. ``SELECT ... FOR UPDATE`` the job row.  A second worker holding the
   same job id blocks here until the first commits or rolls back.
2. Unknown job -> roll back, nothing written.
3. Job already terminal -> commit, nothing written (redelivery no-op).
4. Document missing -> job ``failed`` with ``"Document not found"``.
5. Job ``processing``, ``attempts + 1``, ``started_at`` kept if set.
6. Extract -> normalize -> validate.
7. Rows, legacy field rows, issues, job ``completed``, notification and
   audit records are flushed into the same transaction.
8. Commit, then tell the notifier.  Notifier errors are logged only.

Any exception in 4-7 rolls the whole attempt back.  A separate short
transaction then bumps ``attempts`` and stores the error text, so a job
that keeps failing shows rising attempts and no completion timestamp.
There is no retry cap here; redelivery is the queue's job.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from sqlalchemy.orm import Session

from compass.audit.audit_log import record_audit
from compass.audit.events import (
    JobFailedPayload,
    NotificationCreatedPayload,
    ProcessingCompletedPayload,
    ProcessingStartedPayload,
)
from compass.core.constants import (
    DEFAULT_ISSUE_SEVERITY,
    ISSUE_OPEN,
    ISSUE_TYPE_ROW_VALIDATION,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PROCESSING,
    LEGACY_FIELD_BBOX,
    LEGACY_FIELD_NAME,
    NOTIFICATION_JOB_COMPLETED,
    NOTIFICATION_TITLE_COMPLETED,
    TERMINAL_JOB_STATUSES,
)
from compass.core.ids import as_utc, new_id, utcnow
from compass.core.settings import PipelineConfig
from compass.db import models
from compass.db.repositories import (
    DocumentRepository,
    ExtractedTaskRowRepository,
    ExtractionFieldRepository,
    IssueRepository,
    NotificationRepository,
    OutputJobRepository,
)
from compass.extraction.extractor import Extractor, build_extractor
from compass.normalization.row_normalizer import ExtractedRow, normalize_row
from compass.pipeline.messages import QueueMessage
from compass.readers.pdf_reader import load_document_text
from compass.validation.row_validator import issue_details, validate_row

logger = logging.getLogger(__name__)

DOCUMENT_NOT_FOUND = "Document not found"
_MAX_ERROR_CHARS = 2000

RESULT_COMPLETED = "completed"
RESULT_SKIPPED = "skipped"
RESULT_MISSING_JOB = "missing_job"
RESULT_DOCUMENT_MISSING = "document_missing"
RESULT_ERROR = "error"


class Notifier(Protocol):
    def job_completed(self, *, recipient: str, filename: str, title: str, body: str) -> None: ...


@dataclass
class JobOutcome:
    job_id: str
    result: str
    rows_stored: int = 0
    issues_created: int = 0
    strategy: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class _CompletionNotice:
    """Plain values captured before commit; ORM objects expire on commit."""

    recipient: str
    filename: str
    title: str
    body: str


class JobProcessor:
    """Drive one queued job to a terminal state.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning a new SQLAlchemy ``Session``.
    config:
        Pipeline knobs (confidence threshold, extraction mode, ...).
    extractor:
        Extraction chain.  Defaults to :func:`build_extractor` on *config*.
    notifier:
        Receives the post-commit completion notice.  Optional.
    text_loader:
        ``storage_path -> text``.  Defaults to the PDF reader.
    clock:
        Returns the current UTC ``datetime``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        config: PipelineConfig,
        extractor: Extractor | None = None,
        notifier: Notifier | None = None,
        text_loader: Callable[[str], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.config = config
        self.extractor = extractor or build_extractor(config)
        self.notifier = notifier
        self.text_loader = text_loader or load_document_text
        self.clock = clock or utcnow

    # -- public API ---------------------------------------------------------

    def process(self, message: QueueMessage) -> JobOutcome:
        """Claim and process the job named in *message*.  Never raises."""
        notice: _CompletionNotice | None = None
        db = self.session_factory()
        try:
            outcome, notice = self._claim_and_process(db, message)
            if outcome.result == RESULT_MISSING_JOB:
                db.rollback()
            else:
                db.commit()
        except Exception as exc:
            db.rollback()
            logger.exception("Job %s failed; attempt rolled back", message.job_id)
            self._record_failed_attempt(message.job_id, exc)
            return JobOutcome(job_id=message.job_id, result=RESULT_ERROR, error=_error_text(exc))
        finally:
            db.close()

        if notice is not None:
            self._notify(message.job_id, notice)
        return outcome

    # -- transaction body ---------------------------------------------------

    def _claim_and_process(
        self, db: Session, message: QueueMessage
    ) -> tuple[JobOutcome, _CompletionNotice | None]:
        jobs = OutputJobRepository(db)
        job = jobs.get_for_update(message.job_id)

        if job is None:
            logger.warning("Job %s does not exist; dropping message", message.job_id)
            return JobOutcome(job_id=message.job_id, result=RESULT_MISSING_JOB), None

        if job.status in TERMINAL_JOB_STATUSES:
            logger.info("Job %s already %s; nothing to do", job.id, job.status)
            return JobOutcome(job_id=job.id, result=RESULT_SKIPPED), None

        if message.document_id != job.document_id:
            logger.warning(
                "Message for job %s names document %s but the job belongs to %s",
                job.id,
                message.document_id,
                job.document_id,
            )

        now = self.clock()
        document = DocumentRepository(db).get(job.document_id)
        if document is None:
            jobs.update(job, status=JOB_FAILED, error=DOCUMENT_NOT_FOUND, completed_at=now)
            record_audit(
                db,
                actor=self.config.actor,
                entity_id=job.id,
                payload=JobFailedPayload(error=DOCUMENT_NOT_FOUND),
                created_at=now,
            )
            logger.warning("Job %s failed: document %s not found", job.id, job.document_id)
            return (
                JobOutcome(job_id=job.id, result=RESULT_DOCUMENT_MISSING, error=DOCUMENT_NOT_FOUND),
                None,
            )

        jobs.update(
            job,
            status=JOB_PROCESSING,
            attempts=job.attempts + 1,
            started_at=job.started_at or now,
        )
        record_audit(
            db,
            actor=self.config.actor,
            entity_id=job.id,
            payload=ProcessingStartedPayload(mode=self.config.extraction_mode, attempt=job.attempts),
            created_at=now,
        )
        logger.info("Job %s processing %s (attempt %d)", job.id, document.filename, job.attempts)

        text = self.text_loader(document.storage_path)
        extraction = self.extractor.extract(text, filename=document.filename, document_id=document.id)
        rows = self._normalize(db, extraction.rows, document, now)

        issues_created = 0
        for row in rows:
            issues_created += self._persist_row(db, row, now)

        finished_at = self.clock()
        started_at = as_utc(job.started_at)
        duration_ms = max(0, int((finished_at - started_at).total_seconds() * 1000))
        jobs.update(job, status=JOB_COMPLETED, completed_at=finished_at, error=None)

        body = f"Finished processing {document.filename}"
        notification = NotificationRepository(db).create(
            id=new_id("ntf"),
            user_id=document.uploaded_by,
            task_ref=None,
            document_ref=document.id,
            type=NOTIFICATION_JOB_COMPLETED,
            title=NOTIFICATION_TITLE_COMPLETED,
            body=body,
            started_at=started_at,
            completed_at=finished_at,
            duration_ms=duration_ms,
            created_at=finished_at,
        )
        record_audit(
            db,
            actor=self.config.actor,
            entity_id=job.id,
            payload=ProcessingCompletedPayload(
                rows_stored=len(rows),
                issues_created=issues_created,
                mode=self.config.extraction_mode,
                strategy=extraction.strategy,
            ),
            created_at=finished_at,
        )
        record_audit(
            db,
            actor=self.config.actor,
            entity_id=notification.id,
            payload=NotificationCreatedPayload(user_id=document.uploaded_by),
            created_at=finished_at,
        )

        logger.info(
            "Job %s completed: %d rows, %d issues, strategy=%s",
            job.id,
            len(rows),
            issues_created,
            extraction.strategy,
        )
        outcome = JobOutcome(
            job_id=job.id,
            result=RESULT_COMPLETED,
            rows_stored=len(rows),
            issues_created=issues_created,
            strategy=extraction.strategy,
        )
        notice = _CompletionNotice(
            recipient=document.uploaded_by,
            filename=document.filename,
            title=NOTIFICATION_TITLE_COMPLETED,
            body=body,
        )
        return outcome, notice

    # -- helpers ------------------------------------------------------------

    def _normalize(
        self, db: Session, raw_rows: list[dict], document: models.Document, now: datetime
    ) -> list[ExtractedRow]:
        """Normalize every raw row.

        A record id already stored for the document, or repeated within the
        batch, is replaced with a fresh one; stored rows are never overwritten.
        """
        rows: list[ExtractedRow] = []
        seen = ExtractedTaskRowRepository(db).record_ids_for_document(document.id)
        for raw in raw_rows:
            row = normalize_row(raw, document.id, document.filename, now=now)
            if row.record_id in seen:
                row = dataclasses.replace(row, record_id=new_id("row"))
            seen.add(row.record_id)
            rows.append(row)
        return rows

    def _persist_row(self, db: Session, row: ExtractedRow, now: datetime) -> int:
        """Insert *row*, its legacy field row and its issues; return issue count."""
        values = row.as_raw()
        for name in ("planned_start", "planned_finish", "sc_available_from", "sc_available_to"):
            values[name] = values[name] or None
        entity = ExtractedTaskRowRepository(db).create(id=new_id("trw"), **values)

        field_id: str | None = None
        if self.config.write_legacy_fields:
            field = ExtractionFieldRepository(db).create(
                id=new_id("fld"),
                document_id=row.document_id,
                name=LEGACY_FIELD_NAME,
                value=f"{row.task_name or '(unknown task)'} | {row.sc_name or '(unknown subcontractor)'}",
                confidence=row.confidence,
                source_page=row.source_page,
                source_bbox=list(LEGACY_FIELD_BBOX),
                created_at=now,
            )
            field_id = field.id

        messages = validate_row(row, self.config.confidence_threshold)
        issues = IssueRepository(db)
        for message in messages:
            issues.create(
                id=new_id("iss"),
                document_id=row.document_id,
                row_id=entity.id,
                field_id=field_id,
                type=ISSUE_TYPE_ROW_VALIDATION,
                severity=DEFAULT_ISSUE_SEVERITY,
                status=ISSUE_OPEN,
                details=issue_details(row, message),
                created_at=now,
            )
        return len(messages)

    def _record_failed_attempt(self, job_id: str, exc: Exception) -> None:
        """Count a rolled-back attempt against the job, leaving its status alone."""
        db = self.session_factory()
        try:
            job = OutputJobRepository(db).get_for_update(job_id)
            if job is not None and job.status not in TERMINAL_JOB_STATUSES:
                job.attempts = job.attempts + 1
                job.error = _error_text(exc)
                if job.started_at is None:
                    job.started_at = self.clock()
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Could not record failed attempt for job %s", job_id)
        finally:
            db.close()

    def _notify(self, job_id: str, notice: _CompletionNotice) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.job_completed(
                recipient=notice.recipient,
                filename=notice.filename,
                title=notice.title,
                body=notice.body,
            )
        except Exception:
            logger.exception("Notifier failed for job %s; persisted state is unaffected", job_id)


def _error_text(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"[:_MAX_ERROR_CHARS]
