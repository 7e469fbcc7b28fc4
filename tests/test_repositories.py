from datetime import datetime, timezone
from unittest.mock import patch

from sqlalchemy.dialects import postgresql

from compass.db import models
from compass.db.repositories import (
    DocumentRepository,
    ExtractedTaskRowRepository,
    IssueRepository,
    NotificationRepository,
    OutputJobRepository,
)

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _seed_document(db, document_id="doc_1"):
    return DocumentRepository(db).create(
        id=document_id,
        filename="bid.pdf",
        storage_path="/tmp/bid.pdf",
        uploaded_by="user_1",
        created_at=NOW,
    )


def test_job_defaults_and_update(db_session):
    _seed_document(db_session)
    jobs = OutputJobRepository(db_session)

    job = jobs.create(id="job_1", document_id="doc_1", created_at=NOW)
    assert job.status == "queued"
    assert job.attempts == 0

    jobs.update(job, status="processing", attempts=1)
    db_session.commit()

    assert jobs.get("job_1").status == "processing"
    assert jobs.get("missing") is None


def test_get_for_update_returns_job_or_none(db_session):
    _seed_document(db_session)
    jobs = OutputJobRepository(db_session)
    jobs.create(id="job_1", document_id="doc_1", created_at=NOW)
    db_session.commit()

    assert jobs.get_for_update("job_1").id == "job_1"
    assert jobs.get_for_update("job_404") is None


def test_get_for_update_emits_row_lock_on_postgres(db_session):
    with patch.object(db_session, "execute", wraps=db_session.execute) as mock_execute:
        OutputJobRepository(db_session).get_for_update("job_1")

    stmt = mock_execute.call_args.args[0]
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" in sql


def test_task_rows_and_issues_listed_per_document(db_session):
    _seed_document(db_session, "doc_1")
    _seed_document(db_session, "doc_2")
    rows = ExtractedTaskRowRepository(db_session)
    issues = IssueRepository(db_session)

    common = {"task_id": "t", "confidence": 0.9, "extracted_at": NOW}
    row_a = rows.create(id="trw_a", record_id="r-2", document_id="doc_1", source_page=2, **common)
    rows.create(id="trw_b", record_id="r-1", document_id="doc_1", source_page=1, **common)
    rows.create(id="trw_c", record_id="r-1", document_id="doc_2", source_page=1, **common)

    issues.create(
        id="iss_1", document_id="doc_1", row_id=row_a.id, type="row-validation",
        severity="medium", status="open", details="Row r-2: missing sc_name", created_at=NOW,
    )
    issues.create(
        id="iss_2", document_id="doc_1", row_id=row_a.id, type="row-validation",
        severity="medium", status="resolved", details="Row r-2: invalid status", created_at=NOW,
    )
    db_session.commit()

    assert [r.record_id for r in rows.list_for_document("doc_1")] == ["r-1", "r-2"]
    assert len(issues.list_for_document("doc_1")) == 2
    assert [i.id for i in issues.list_for_document("doc_1", status="open")] == ["iss_1"]
    assert issues.list_for_document("doc_2") == []
    assert rows.record_ids_for_document("doc_1") == {"r-1", "r-2"}
    assert rows.record_ids_for_document("doc_3") == set()


def test_notification_count_for_document(db_session):
    notifications = NotificationRepository(db_session)
    notifications.create(
        id="ntf_1", user_id="user_1", document_ref="doc_1", type="job.completed",
        title="t", body="b", created_at=NOW,
    )
    db_session.commit()

    assert notifications.count_for_document("doc_1") == 1
    assert notifications.count_for_document("doc_2") == 0
    assert isinstance(notifications.list()[0], models.Notification)
