"""
app/schemas package marker.
"""

from app.schemas.sheet_sync import (
    QuarterlySheetCreatedResponse,
    QuarterlySheetCreateRequest,
    QuarterlySheetListResponse,
    QuarterlySheetResponse,
    QuarterlySheetStatusUpdateRequest,
    SheetChangedWebhookRequest,
    SheetChangedWebhookResponse,
    SyncResultResponse,
    SyncRunListResponse,
    SyncRunResponse,
    SyncTriggerRequest,
    UnarchivedDeleteResponse,
)

__all__ = [
    "QuarterlySheetCreateRequest",
    "QuarterlySheetCreatedResponse",
    "QuarterlySheetListResponse",
    "QuarterlySheetResponse",
    "QuarterlySheetStatusUpdateRequest",
    "SheetChangedWebhookRequest",
    "SheetChangedWebhookResponse",
    "SyncResultResponse",
    "SyncRunListResponse",
    "SyncRunResponse",
    "SyncTriggerRequest",
    "UnarchivedDeleteResponse",
]
