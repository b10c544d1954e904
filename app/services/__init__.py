"""
app/services package marker.
"""

from app.services.quarterly_sheet_service import (
    InvalidSpreadsheetReferenceError,
    QuarterlySheetService,
    get_quarterly_sheet_service,
)
from app.services.sheet_sync_service import (
    SheetSyncService,
    SourceSyncSummary,
    get_sheet_sync_service,
)

__all__ = [
    "InvalidSpreadsheetReferenceError",
    "QuarterlySheetService",
    "get_quarterly_sheet_service",
    "SheetSyncService",
    "SourceSyncSummary",
    "get_sheet_sync_service",
]
