"""
Repository-layer exceptions for quarterly sheet and pipeline persistence.
"""

from __future__ import annotations


class PipelineRepositoryError(Exception):
    """Base exception for pipeline persistence failures."""


class QuarterlySheetConflictError(PipelineRepositoryError):
    """Raised when a sheet is already registered for the same year, quarter and group."""


class QuarterlySheetNotFoundError(PipelineRepositoryError):
    """Raised when a referenced quarterly sheet does not exist."""


class PipelineNotFoundError(PipelineRepositoryError):
    """Raised when a pipeline targeted by an update or delete no longer exists."""
