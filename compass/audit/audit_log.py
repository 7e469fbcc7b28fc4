"""Append-only audit ledger.

``record_audit()`` adds an ``AuditRecord`` to the caller's session and
flushes.  It never commits: audit rows belong to the same transaction as
the state change they describe, so they vanish with it on rollback.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from compass.audit.events import VALID_ACTIONS, AuditPayload, payload_metadata
from compass.core.ids import new_id, utcnow
from compass.db.models import AuditRecord

logger = logging.getLogger(__name__)


def record_audit(
    db_session: Session,
    *,
    actor: str,
    entity_id: str,
    payload: AuditPayload,
    created_at: datetime | None = None,
) -> AuditRecord:
    """Create and flush an ``AuditRecord`` for *payload*.

    Raises ``ValueError`` for an empty actor or entity id, or a payload
    whose action is not a known audit action.
    """
    if not actor or not actor.strip():
        raise ValueError("actor must be a non-empty string")
    if not entity_id:
        raise ValueError("entity_id must be a non-empty string")
    if payload.action not in VALID_ACTIONS:
        raise ValueError(
            f"Invalid action {payload.action!r}; "
            f"must be one of {sorted(VALID_ACTIONS)}"
        )

    record = AuditRecord(
        id=new_id("aud"),
        actor_id=actor,
        entity_type=payload.entity_type,
        entity_id=entity_id,
        action=payload.action,
        metadata_json=payload_metadata(payload),
        created_at=created_at or utcnow(),
    )
    db_session.add(record)
    db_session.flush()

    logger.debug(
        "Audit record: %s %s %s by %s",
        payload.entity_type,
        entity_id,
        payload.action,
        actor,
    )
    return record


def get_entity_history(
    db_session: Session,
    entity_type: str,
    entity_id: str,
) -> list[AuditRecord]:
    """Return every record for one entity, oldest first."""
    stmt = (
        select(AuditRecord)
        .where(AuditRecord.entity_type == entity_type, AuditRecord.entity_id == entity_id)
        .order_by(AuditRecord.created_at.asc(), AuditRecord.id.asc())
    )
    return list(db_session.execute(stmt).scalars().all())
