"""
db/models/quarterly_sheet.py

Registered spreadsheet tab that is the source of truth for one fiscal
quarter of one pipeline group.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin
from sheet_sync.types import SyncStatus


class QuarterlySheet(Base, TimestampMixin):
    __tablename__ = "quarterly_sheets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[int] = mapped_column(Integer, nullable=False)
    group: Mapped[str] = mapped_column(
        "group",
        String(16),
        nullable=False,
        comment="sales, cs",
    )
    spreadsheet_id: Mapped[str] = mapped_column(String(128), nullable=False)
    sheet_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sheet_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    sync_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=SyncStatus.ACTIVE,
        comment="active, paused, archived",
    )
    last_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_sync_status: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="success, partial, failed",
    )
    last_sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    webhook_token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    __table_args__ = (
        CheckConstraint("quarter BETWEEN 1 AND 4", name="quarter"),
        Index("ix_quarterly_sheets_sync_status", "sync_status"),
        Index("ix_quarterly_sheets_spreadsheet_id", "spreadsheet_id"),
        Index(
            "uq_quarterly_sheets_year_quarter_group",
            "fiscal_year",
            "quarter",
            "group",
            unique=True,
        ),
    )
