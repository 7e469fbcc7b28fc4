"""Tests for compass/audit/audit_log.py."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from compass.audit.audit_log import get_entity_history, record_audit
from compass.audit.events import (
    ACTION_COMPLETED,
    ACTION_PROCESSING,
    ENTITY_NOTIFICATION,
    ENTITY_OUTPUT_JOB,
    JobFailedPayload,
    NotificationCreatedPayload,
    ProcessingCompletedPayload,
    ProcessingStartedPayload,
    payload_metadata,
)
from compass.db.models import AuditRecord


class _BogusPayload:
    action = "deleted"
    entity_type = ENTITY_OUTPUT_JOB


# ===========================================================================
# record_audit
# ===========================================================================

class TestRecordAudit:
    def test_action_and_metadata_come_from_payload(self, db_session):
        record = record_audit(
            db_session,
            actor="worker",
            entity_id="job_1",
            payload=ProcessingStartedPayload(mode="row", attempt=1),
        )
        db_session.commit()

        stored = db_session.get(AuditRecord, record.id)
        assert stored.entity_type == ENTITY_OUTPUT_JOB
        assert stored.action == ACTION_PROCESSING
        assert stored.actor_id == "worker"
        assert stored.metadata_json == {"mode": "row", "attempt": 1}

    def test_notification_payload_targets_notification_entity(self, db_session):
        record = record_audit(
            db_session,
            actor="worker",
            entity_id="ntf_1",
            payload=NotificationCreatedPayload(user_id="user_1"),
        )

        assert record.entity_type == ENTITY_NOTIFICATION
        assert record.metadata_json == {"user_id": "user_1"}

    def test_record_is_flushed_not_committed(self, db_session):
        record_audit(
            db_session,
            actor="worker",
            entity_id="job_1",
            payload=JobFailedPayload(error="Document not found"),
        )
        db_session.rollback()

        assert db_session.query(AuditRecord).count() == 0

    @pytest.mark.parametrize("actor", ["", "   "])
    def test_empty_actor_raises(self, db_session, actor):
        with pytest.raises(ValueError, match="actor"):
            record_audit(db_session, actor=actor, entity_id="job_1", payload=JobFailedPayload(error="x"))

    def test_empty_entity_id_raises(self, db_session):
        with pytest.raises(ValueError, match="entity_id"):
            record_audit(db_session, actor="worker", entity_id="", payload=JobFailedPayload(error="x"))

    def test_unknown_action_raises(self, db_session):
        with pytest.raises(ValueError, match="Invalid action"):
            record_audit(db_session, actor="worker", entity_id="job_1", payload=_BogusPayload())


# ===========================================================================
# get_entity_history
# ===========================================================================

class TestEntityHistory:
    def test_history_is_oldest_first_and_scoped(self, db_session):
        t0 = datetime(2024, 5, 1, tzinfo=timezone.utc)
        record_audit(
            db_session,
            actor="worker",
            entity_id="job_1",
            payload=ProcessingCompletedPayload(rows_stored=2, issues_created=0, mode="row", strategy="model"),
            created_at=t0 + timedelta(seconds=5),
        )
        record_audit(
            db_session,
            actor="worker",
            entity_id="job_1",
            payload=ProcessingStartedPayload(mode="row", attempt=1),
            created_at=t0,
        )
        record_audit(
            db_session,
            actor="worker",
            entity_id="job_2",
            payload=ProcessingStartedPayload(mode="row", attempt=1),
            created_at=t0,
        )
        db_session.commit()

        history = get_entity_history(db_session, ENTITY_OUTPUT_JOB, "job_1")

        assert [r.action for r in history] == [ACTION_PROCESSING, ACTION_COMPLETED]


def test_payload_metadata_is_plain_dict():
    payload = ProcessingCompletedPayload(rows_stored=3, issues_created=1, mode="row", strategy="heuristic")

    assert payload_metadata(payload) == {
        "rows_stored": 3,
        "issues_created": 1,
        "mode": "row",
        "strategy": "heuristic",
    }
