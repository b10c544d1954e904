"""
app/api/routers package marker.
"""

from app.api.routers.quarterly_sheets import router as quarterly_sheets_router
from app.api.routers.sheet_webhook import router as sheet_webhook_router

__all__ = [
    "quarterly_sheets_router",
    "sheet_webhook_router",
]
