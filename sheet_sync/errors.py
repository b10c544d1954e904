"""
sheet_sync/errors.py

Exception hierarchy for the sheet-to-database sync engine, plus the
classifier that turns raw spreadsheet read failures into error types.
"""

from __future__ import annotations

import uuid

from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError


class SheetSyncError(Exception):
    """Base exception for sync engine failures."""


class SourceNotFoundError(SheetSyncError):
    """Raised when a quarterly sheet id does not resolve to a registered source."""

    def __init__(self, source_id: uuid.UUID) -> None:
        super().__init__(f"Quarterly sheet not found: {source_id}")
        self.source_id = source_id


class SourceInactiveError(SheetSyncError):
    """Raised when a source is paused or archived."""

    def __init__(self, source_id: uuid.UUID, sync_status: str) -> None:
        super().__init__(f"Sync is {sync_status} for quarterly sheet {source_id}")
        self.source_id = source_id
        self.sync_status = sync_status


class SyncInProgressError(SheetSyncError):
    """Raised when another run already holds the lease for a source."""

    def __init__(self, source_id: uuid.UUID) -> None:
        super().__init__(f"A sync is already running for quarterly sheet {source_id}")
        self.source_id = source_id


class SourceUnavailableError(SheetSyncError):
    """
    Raised when the spreadsheet cannot be read. Fatal for the run.
    """

    def __init__(self, message: str, *, error_type: str) -> None:
        super().__init__(message)
        self.error_type = error_type


class RowTransformationError(SheetSyncError):
    """
    Raised for rows that cannot be decoded. The row is skipped, not failed.
    """

    def __init__(self, row_number: int, message: str) -> None:
        super().__init__(f"Row {row_number}: {message}")
        self.row_number = row_number
        self.message = message


class SourceErrorType:
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    API_ERROR = "api_error"
    UNKNOWN = "unknown"


_HTTP_STATUS_ERROR_TYPES: dict[int, str] = {
    401: SourceErrorType.AUTHENTICATION,
    403: SourceErrorType.PERMISSION_DENIED,
    404: SourceErrorType.NOT_FOUND,
    429: SourceErrorType.RATE_LIMITED,
}


def classify_source_error(exc: BaseException) -> str:
    """
    Map a spreadsheet read exception to a SourceErrorType value.
    """

    if isinstance(exc, HttpError):
        status = getattr(exc, "status_code", None) or getattr(exc.resp, "status", None)
        try:
            status_code = int(status) if status is not None else None
        except (TypeError, ValueError):
            status_code = None
        if status_code is None:
            return SourceErrorType.API_ERROR
        return _HTTP_STATUS_ERROR_TYPES.get(status_code, SourceErrorType.API_ERROR)
    if isinstance(exc, GoogleAuthError):
        return SourceErrorType.AUTHENTICATION
    if isinstance(exc, (TimeoutError, ConnectionError, OSError)):
        return SourceErrorType.NETWORK
    return SourceErrorType.UNKNOWN
