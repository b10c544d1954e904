"""
db/models/pipeline.py

Sales pipeline records mirrored from the quarterly sheets.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import BigInteger, Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

MONEY = Numeric(18, 4)


class Pipeline(Base, TimestampMixin):
    __tablename__ = "pipelines"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    quarterly_sheet_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("quarterly_sheets.id", ondelete="SET NULL"),
        nullable=True,
    )
    sheet_row_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Identity
    key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group: Mapped[str] = mapped_column("group", String(16), nullable=False)
    fiscal_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    classification: Mapped[str | None] = mapped_column(String(255), nullable=True)
    poc: Mapped[str] = mapped_column(String(255), nullable=False)
    team: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    publisher: Mapped[str] = mapped_column(String(255), nullable=False)
    mid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    zid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    channel: Mapped[str | None] = mapped_column(String(255), nullable=True)
    competitors: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    product: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Forecast figures
    day_gross: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    day_net_rev: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    imp: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    ecpm: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    max_gross: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    revenue_share: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    q_gross: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    q_net_rev: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    forecast_type: Mapped[str] = mapped_column(String(32), nullable=False, default="estimate")

    # Actions
    action_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_action: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_progress: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Status timeline
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    progress_percent: Mapped[int | None] = mapped_column(Integer, nullable=True)
    starting_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    proposal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    interested_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    acceptance_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    ready_to_deliver_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    closed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # "metadata" is reserved on declarative classes.
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
        comment="Unmapped sheet columns: MA/MI, quarter, breakdowns, totals",
    )

    __table_args__ = (
        Index(
            "uq_pipelines_quarterly_sheet_row",
            "quarterly_sheet_id",
            "sheet_row_number",
            unique=True,
        ),
        Index("ix_pipelines_key", "key"),
        Index("ix_pipelines_group_fiscal_year", "group", "fiscal_year"),
        Index("ix_pipelines_status", "status"),
    )


class PipelineMonthlyForecast(Base, TimestampMixin):
    __tablename__ = "pipeline_monthly_forecasts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("pipelines.id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    validation_flag: Mapped[bool | None] = mapped_column(nullable=True)
    gross_revenue: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    net_revenue: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "uq_pipeline_monthly_forecasts_pipeline_year_month",
            "pipeline_id",
            "year",
            "month",
            unique=True,
        ),
    )
