"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.pipeline import Pipeline, PipelineMonthlyForecast
from db.models.quarterly_sheet import QuarterlySheet
from db.models.sync_audit import DeletedPipeline, PipelineSyncLease, PipelineSyncRun

__all__ = [
    "QuarterlySheet",
    "Pipeline",
    "PipelineMonthlyForecast",
    "PipelineSyncRun",
    "DeletedPipeline",
    "PipelineSyncLease",
]
