from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint, func, text as sql_text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compass.db.base import Base


class Document(Base):
    """An uploaded PDF.  Written by the upload service, read by the worker."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(2048), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    jobs: Mapped[list[OutputJob]] = relationship(back_populates="document")
    task_rows: Mapped[list[ExtractedTaskRow]] = relationship(back_populates="document")


class OutputJob(Base):
    """One unit of extraction work: queued -> processing -> completed | failed."""

    __tablename__ = "output_jobs"
    __table_args__ = (Index("idx_output_jobs_document_status", "document_id", "status"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    document_id: Mapped[str] = mapped_column(ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="queued", server_default=sql_text("'queued'"))
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=sql_text("0"))
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    document: Mapped[Document] = relationship(back_populates="jobs")


class ExtractedTaskRow(Base):
    """Canonical task-assignment row.  Immutable once inserted."""

    __tablename__ = "extraction_task_rows"
    __table_args__ = (
        UniqueConstraint("document_id", "record_id", name="uq_task_rows_document_record"),
        Index("idx_task_rows_document", "document_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    record_id: Mapped[str] = mapped_column(String(128), nullable=False)
    document_id: Mapped[str] = mapped_column(ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    project_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    gc_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sc_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    trade: Mapped[str] = mapped_column(Text, nullable=False, default="")
    task_id: Mapped[str] = mapped_column(String(128), nullable=False)
    task_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    upstream_task_id: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    downstream_task_id: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    dependency_type: Mapped[str] = mapped_column(String(32), nullable=False, default="none")
    lag_days: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    planned_start: Mapped[str | None] = mapped_column(String(10), nullable=True)
    planned_finish: Mapped[str | None] = mapped_column(String(10), nullable=True)
    duration_days: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    sc_available_from: Mapped[str | None] = mapped_column(String(10), nullable=True)
    sc_available_to: Mapped[str | None] = mapped_column(String(10), nullable=True)
    allocation_pct: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    constraint_type: Mapped[str] = mapped_column(String(32), nullable=False, default="none")
    constraint_note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    constraint_impact_days: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="unknown")
    percent_complete: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    source_page: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    source_snippet: Mapped[str] = mapped_column(Text, nullable=False, default="")
    extracted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    document: Mapped[Document] = relationship(back_populates="task_rows")
    issues: Mapped[list[Issue]] = relationship(back_populates="row")


class ExtractionField(Base):
    """Legacy one-value-per-field shape, kept in step with task rows."""

    __tablename__ = "extraction_fields"
    __table_args__ = (Index("idx_extraction_fields_document", "document_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    document_id: Mapped[str] = mapped_column(ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    source_page: Mapped[int] = mapped_column(Integer, nullable=False)
    source_bbox: Mapped[list] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (Index("idx_issues_document_status", "document_id", "status"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    document_id: Mapped[str] = mapped_column(ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    row_id: Mapped[str] = mapped_column(ForeignKey("extraction_task_rows.id", ondelete="CASCADE"), nullable=False)
    field_id: Mapped[str | None] = mapped_column(
        ForeignKey("extraction_fields.id", ondelete="CASCADE"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open", server_default=sql_text("'open'"))
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    row: Mapped[ExtractedTaskRow] = relationship(back_populates="issues")


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("idx_notifications_user_read", "user_id", "read_at"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    task_ref: Mapped[str | None] = mapped_column(String(128), nullable=True)
    document_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class AuditRecord(Base):
    """Append-only ledger entry.

    ``metadata`` is a reserved attribute on declarative classes, so the
    column is mapped as ``metadata_json``.
    """

    __tablename__ = "audit_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    actor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    metadata_json: Mapped[dict] = mapped_column("metadata", JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
