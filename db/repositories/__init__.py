"""
Repository layer exports.
"""

from db.repositories.errors import (
    PipelineNotFoundError,
    PipelineRepositoryError,
    QuarterlySheetConflictError,
    QuarterlySheetNotFoundError,
)
from db.repositories.pipeline_repository import PipelineRepository
from db.repositories.quarterly_sheet_repository import QuarterlySheetRepository
from db.repositories.sync_lease_repository import SyncLeaseRepository
from db.repositories.sync_run_repository import SyncRunRepository

__all__ = [
    "PipelineRepository",
    "QuarterlySheetRepository",
    "SyncLeaseRepository",
    "SyncRunRepository",
    "PipelineRepositoryError",
    "PipelineNotFoundError",
    "QuarterlySheetConflictError",
    "QuarterlySheetNotFoundError",
]
