from __future__ import annotations

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from compass.db import models

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def create(self, **kwargs) -> ModelT:
        entity = self.model(**kwargs)
        self.db.add(entity)
        self.db.flush()
        return entity

    def get(self, entity_id: str) -> ModelT | None:
        return self.db.get(self.model, entity_id)

    def list(self, limit: int = 100, offset: int = 0) -> list[ModelT]:
        stmt = select(self.model).offset(offset).limit(limit)
        return self.db.execute(stmt).scalars().all()

    def update(self, entity: ModelT, **kwargs) -> ModelT:
        for key, value in kwargs.items():
            setattr(entity, key, value)
        self.db.flush()
        return entity


class DocumentRepository(BaseRepository[models.Document]):
    model = models.Document


class OutputJobRepository(BaseRepository[models.OutputJob]):
    model = models.OutputJob

    def get_for_update(self, job_id: str) -> models.OutputJob | None:
        """Load the job holding an exclusive row lock until commit/rollback.

        ``populate_existing`` makes sure a second claimant that blocked on
        the lock sees the committed status, not a stale identity-map copy.
        """
        stmt = (
            select(models.OutputJob)
            .where(models.OutputJob.id == job_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()


class ExtractedTaskRowRepository(BaseRepository[models.ExtractedTaskRow]):
    model = models.ExtractedTaskRow

    def list_for_document(self, document_id: str) -> list[models.ExtractedTaskRow]:
        stmt = (
            select(models.ExtractedTaskRow)
            .where(models.ExtractedTaskRow.document_id == document_id)
            .order_by(models.ExtractedTaskRow.source_page, models.ExtractedTaskRow.record_id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def record_ids_for_document(self, document_id: str) -> set[str]:
        stmt = select(models.ExtractedTaskRow.record_id).where(
            models.ExtractedTaskRow.document_id == document_id
        )
        return set(self.db.execute(stmt).scalars().all())


class ExtractionFieldRepository(BaseRepository[models.ExtractionField]):
    model = models.ExtractionField


class IssueRepository(BaseRepository[models.Issue]):
    model = models.Issue

    def list_for_document(self, document_id: str, status: str | None = None) -> list[models.Issue]:
        stmt = select(models.Issue).where(models.Issue.document_id == document_id)
        if status is not None:
            stmt = stmt.where(models.Issue.status == status)
        return list(self.db.execute(stmt.order_by(models.Issue.created_at)).scalars().all())


class NotificationRepository(BaseRepository[models.Notification]):
    model = models.Notification

    def count_for_document(self, document_id: str) -> int:
        stmt = select(func.count()).select_from(models.Notification).where(
            models.Notification.document_ref == document_id
        )
        return self.db.execute(stmt).scalar_one()
