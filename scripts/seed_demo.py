#!/usr/bin/env python3
"""Seed one demo document and queue a job for it.

Usage:
    python scripts/seed_demo.py path/to/bid.pdf      # uses DATABASE_URL / REDIS_URL from env / .env
    python scripts/seed_demo.py path/to/bid.pdf --no-enqueue
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

# Ensure project root is on sys.path
sys.path.insert(0, ".")

from compass.audit.audit_log import record_audit
from compass.audit.events import JobQueuedPayload
from compass.core.constants import JOB_QUEUED
from compass.core.ids import new_id, utcnow
from compass.core.settings import get_settings
from compass.db.base import Base
from compass.db.models import Document, OutputJob
from compass.worker import enqueue_job


def seed(session: Session, pdf_path: Path, uploaded_by: str) -> tuple[str, str]:
    """Insert a Document and a queued OutputJob; return ``(job_id, document_id)``."""
    now = utcnow()
    document = Document(
        id=new_id("doc"),
        filename=pdf_path.name,
        storage_path=str(pdf_path.resolve()),
        uploaded_by=uploaded_by,
        created_at=now,
    )
    session.add(document)
    session.flush()

    job = OutputJob(
        id=new_id("job"),
        document_id=document.id,
        status=JOB_QUEUED,
        attempts=0,
        created_at=now,
    )
    session.add(job)
    session.flush()

    record_audit(
        session,
        actor=uploaded_by,
        entity_id=job.id,
        payload=JobQueuedPayload(document_id=document.id),
        created_at=now,
    )
    session.commit()
    return job.id, document.id


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("pdf", type=Path)
    parser.add_argument("--user", default="demo-user")
    parser.add_argument("--no-enqueue", action="store_true")
    args = parser.parse_args()

    settings = get_settings()
    engine = create_engine(settings.database_url)
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        job_id, document_id = seed(session, args.pdf, args.user)

    if not args.no_enqueue:
        enqueue_job(redis.from_url(settings.redis_url), settings.queue_key, job_id, document_id)

    print(f"Seeded document {document_id} with job {job_id}.")


if __name__ == "__main__":
    main()
