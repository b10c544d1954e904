"""
db/models/sync_audit.py

Append-only sync history: run records and archived pipelines.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class PipelineSyncRun(Base):
    __tablename__ = "pipeline_sync_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    quarterly_sheet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("quarterly_sheets.id", ondelete="CASCADE"),
        nullable=False,
    )
    sync_type: Mapped[str] = mapped_column(String(16), nullable=False, comment="full, incremental")
    trigger: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="manual, webhook, scheduled, cli",
    )
    direction: Mapped[str] = mapped_column(String(32), nullable=False, default="sheet_to_db")
    target_sheet: Mapped[str | None] = mapped_column(String(255), nullable=True)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False, comment="success, partial, failed")
    rows_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rows_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rows_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rows_deleted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rows_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    error_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_pipeline_sync_runs_sheet_created_at", "quarterly_sheet_id", "created_at"),
        Index("ix_pipeline_sync_runs_outcome", "outcome"),
    )


class DeletedPipeline(Base):
    __tablename__ = "deleted_pipelines"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    pipeline_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    quarterly_sheet_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    pipeline_snapshot: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Full pipeline row at deletion time",
    )
    monthly_forecasts_snapshot: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    publisher: Mapped[str | None] = mapped_column(String(255), nullable=True)
    poc: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    proposal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    deletion_reason: Mapped[str] = mapped_column(String(64), nullable=False)
    deletion_source: Mapped[str] = mapped_column(String(64), nullable=False)
    sync_run_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    deleted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_deleted_pipelines_pipeline_id", "pipeline_id"),
        Index("ix_deleted_pipelines_key", "key"),
        Index("ix_deleted_pipelines_sync_run_id", "sync_run_id"),
        Index("ix_deleted_pipelines_deleted_at", "deleted_at"),
    )


class PipelineSyncLease(Base):
    """
    At most one live lease per quarterly sheet; expired leases may be taken over.
    """

    __tablename__ = "pipeline_sync_leases"

    quarterly_sheet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("quarterly_sheets.id", ondelete="CASCADE"),
        primary_key=True,
    )
    holder: Mapped[str] = mapped_column(String(64), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
