"""create pipeline sync tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(18, 4)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "quarterly_sheets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("quarter", sa.Integer(), nullable=False),
        sa.Column("group", sa.String(length=16), nullable=False, comment="sales, cs"),
        sa.Column("spreadsheet_id", sa.String(length=128), nullable=False),
        sa.Column("sheet_name", sa.String(length=255), nullable=False),
        sa.Column("sheet_url", sa.Text(), nullable=True),
        sa.Column("sync_status", sa.String(length=16), nullable=False, comment="active, paused, archived"),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_status", sa.String(length=16), nullable=True, comment="success, partial, failed"),
        sa.Column("last_sync_error", sa.Text(), nullable=True),
        sa.Column("webhook_token", sa.String(length=128), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("quarter BETWEEN 1 AND 4", name="ck_quarterly_sheets_quarter"),
        sa.PrimaryKeyConstraint("id", name="pk_quarterly_sheets"),
        sa.UniqueConstraint("webhook_token", name="uq_quarterly_sheets_webhook_token"),
    )
    op.create_index("ix_quarterly_sheets_sync_status", "quarterly_sheets", ["sync_status"], unique=False)
    op.create_index("ix_quarterly_sheets_spreadsheet_id", "quarterly_sheets", ["spreadsheet_id"], unique=False)
    op.create_index(
        "uq_quarterly_sheets_year_quarter_group",
        "quarterly_sheets",
        ["fiscal_year", "quarter", "group"],
        unique=True,
    )

    op.create_table(
        "pipelines",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quarterly_sheet_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sheet_row_number", sa.Integer(), nullable=True),
        sa.Column("key", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("group", sa.String(length=16), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=True),
        sa.Column("classification", sa.String(length=255), nullable=True),
        sa.Column("poc", sa.String(length=255), nullable=False),
        sa.Column("team", sa.String(length=255), nullable=True),
        sa.Column("pid", sa.String(length=255), nullable=True),
        sa.Column("publisher", sa.String(length=255), nullable=False),
        sa.Column("mid", sa.String(length=255), nullable=True),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("zid", sa.String(length=255), nullable=True),
        sa.Column("channel", sa.String(length=255), nullable=True),
        sa.Column("competitors", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("product", sa.String(length=255), nullable=True),
        sa.Column("day_gross", MONEY, nullable=True),
        sa.Column("day_net_rev", MONEY, nullable=True),
        sa.Column("imp", sa.BigInteger(), nullable=True),
        sa.Column("ecpm", MONEY, nullable=True),
        sa.Column("max_gross", MONEY, nullable=True),
        sa.Column("revenue_share", MONEY, nullable=True),
        sa.Column("q_gross", MONEY, nullable=True),
        sa.Column("q_net_rev", MONEY, nullable=True),
        sa.Column("forecast_type", sa.String(length=32), nullable=False),
        sa.Column("action_date", sa.Date(), nullable=True),
        sa.Column("next_action", sa.Text(), nullable=True),
        sa.Column("action_detail", sa.Text(), nullable=True),
        sa.Column("action_progress", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("progress_percent", sa.Integer(), nullable=True),
        sa.Column("starting_date", sa.Date(), nullable=True),
        sa.Column("proposal_date", sa.Date(), nullable=True),
        sa.Column("interested_date", sa.Date(), nullable=True),
        sa.Column("acceptance_date", sa.Date(), nullable=True),
        sa.Column("ready_to_deliver_date", sa.Date(), nullable=True),
        sa.Column("closed_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Unmapped sheet columns: MA/MI, quarter, breakdowns, totals",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["quarterly_sheet_id"],
            ["quarterly_sheets.id"],
            name="fk_pipelines_quarterly_sheet_id_quarterly_sheets",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pipelines"),
    )
    op.create_index(
        "uq_pipelines_quarterly_sheet_row",
        "pipelines",
        ["quarterly_sheet_id", "sheet_row_number"],
        unique=True,
    )
    op.create_index("ix_pipelines_key", "pipelines", ["key"], unique=False)
    op.create_index("ix_pipelines_group_fiscal_year", "pipelines", ["group", "fiscal_year"], unique=False)
    op.create_index("ix_pipelines_status", "pipelines", ["status"], unique=False)

    op.create_table(
        "pipeline_monthly_forecasts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pipeline_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("delivery_days", sa.Integer(), nullable=True),
        sa.Column("validation_flag", sa.Boolean(), nullable=True),
        sa.Column("gross_revenue", MONEY, nullable=True),
        sa.Column("net_revenue", MONEY, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["pipeline_id"],
            ["pipelines.id"],
            name="fk_pipeline_monthly_forecasts_pipeline_id_pipelines",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pipeline_monthly_forecasts"),
    )
    op.create_index(
        "uq_pipeline_monthly_forecasts_pipeline_year_month",
        "pipeline_monthly_forecasts",
        ["pipeline_id", "year", "month"],
        unique=True,
    )

    op.create_table(
        "pipeline_sync_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quarterly_sheet_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sync_type", sa.String(length=16), nullable=False, comment="full, incremental"),
        sa.Column("trigger", sa.String(length=16), nullable=False, comment="manual, webhook, scheduled, cli"),
        sa.Column("direction", sa.String(length=32), nullable=False),
        sa.Column("target_sheet", sa.String(length=255), nullable=True),
        sa.Column("outcome", sa.String(length=16), nullable=False, comment="success, partial, failed"),
        sa.Column("rows_processed", sa.Integer(), nullable=False),
        sa.Column("rows_created", sa.Integer(), nullable=False),
        sa.Column("rows_updated", sa.Integer(), nullable=False),
        sa.Column("rows_deleted", sa.Integer(), nullable=False),
        sa.Column("rows_skipped", sa.Integer(), nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("error_type", sa.String(length=32), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["quarterly_sheet_id"],
            ["quarterly_sheets.id"],
            name="fk_pipeline_sync_runs_quarterly_sheet_id_quarterly_sheets",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pipeline_sync_runs"),
    )
    op.create_index(
        "ix_pipeline_sync_runs_sheet_created_at",
        "pipeline_sync_runs",
        ["quarterly_sheet_id", "created_at"],
        unique=False,
    )
    op.create_index("ix_pipeline_sync_runs_outcome", "pipeline_sync_runs", ["outcome"], unique=False)

    op.create_table(
        "deleted_pipelines",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pipeline_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quarterly_sheet_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "pipeline_snapshot",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Full pipeline row at deletion time",
        ),
        sa.Column("monthly_forecasts_snapshot", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=True),
        sa.Column("publisher", sa.String(length=255), nullable=True),
        sa.Column("poc", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=True),
        sa.Column("proposal_date", sa.Date(), nullable=True),
        sa.Column("deletion_reason", sa.String(length=64), nullable=False),
        sa.Column("deletion_source", sa.String(length=64), nullable=False),
        sa.Column("sync_run_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_deleted_pipelines"),
    )
    op.create_index("ix_deleted_pipelines_pipeline_id", "deleted_pipelines", ["pipeline_id"], unique=False)
    op.create_index("ix_deleted_pipelines_key", "deleted_pipelines", ["key"], unique=False)
    op.create_index("ix_deleted_pipelines_sync_run_id", "deleted_pipelines", ["sync_run_id"], unique=False)
    op.create_index("ix_deleted_pipelines_deleted_at", "deleted_pipelines", ["deleted_at"], unique=False)

    op.create_table(
        "pipeline_sync_leases",
        sa.Column("quarterly_sheet_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("holder", sa.String(length=64), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["quarterly_sheet_id"],
            ["quarterly_sheets.id"],
            name="fk_pipeline_sync_leases_quarterly_sheet_id_quarterly_sheets",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("quarterly_sheet_id", name="pk_pipeline_sync_leases"),
    )


def downgrade() -> None:
    op.drop_table("pipeline_sync_leases")

    op.drop_index("ix_deleted_pipelines_deleted_at", table_name="deleted_pipelines")
    op.drop_index("ix_deleted_pipelines_sync_run_id", table_name="deleted_pipelines")
    op.drop_index("ix_deleted_pipelines_key", table_name="deleted_pipelines")
    op.drop_index("ix_deleted_pipelines_pipeline_id", table_name="deleted_pipelines")
    op.drop_table("deleted_pipelines")

    op.drop_index("ix_pipeline_sync_runs_outcome", table_name="pipeline_sync_runs")
    op.drop_index("ix_pipeline_sync_runs_sheet_created_at", table_name="pipeline_sync_runs")
    op.drop_table("pipeline_sync_runs")

    op.drop_index(
        "uq_pipeline_monthly_forecasts_pipeline_year_month",
        table_name="pipeline_monthly_forecasts",
    )
    op.drop_table("pipeline_monthly_forecasts")

    op.drop_index("ix_pipelines_status", table_name="pipelines")
    op.drop_index("ix_pipelines_group_fiscal_year", table_name="pipelines")
    op.drop_index("ix_pipelines_key", table_name="pipelines")
    op.drop_index("uq_pipelines_quarterly_sheet_row", table_name="pipelines")
    op.drop_table("pipelines")

    op.drop_index("uq_quarterly_sheets_year_quarter_group", table_name="quarterly_sheets")
    op.drop_index("ix_quarterly_sheets_spreadsheet_id", table_name="quarterly_sheets")
    op.drop_index("ix_quarterly_sheets_sync_status", table_name="quarterly_sheets")
    op.drop_table("quarterly_sheets")
