"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value; blank values count as unset.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class SheetSyncSettings:
    """
    Runtime settings for sheet-to-database sync runs.
    """

    lease_ttl_seconds: int = 300
    batch_delay_seconds: float = 1.0
    run_history_limit: int = 20


@dataclass(frozen=True)
class GoogleSheetsSettings:
    """
    Service-account credentials for the Sheets API.
    """

    credentials_json: str | None = None
    credentials_base64: str | None = None


@dataclass(frozen=True)
class SchedulerSettings:
    enabled: bool = True
    sync_interval_minutes: int = 60


@lru_cache(maxsize=1)
def get_sheet_sync_settings() -> SheetSyncSettings:
    """
    Return cached sync settings from environment variables.
    """

    return SheetSyncSettings(
        lease_ttl_seconds=max(30, _get_int_env("SHEET_SYNC_LEASE_TTL_SECONDS", 300)),
        batch_delay_seconds=max(0.0, _get_float_env("SHEET_SYNC_BATCH_DELAY_SECONDS", 1.0)),
        run_history_limit=max(1, _get_int_env("SHEET_SYNC_RUN_HISTORY_LIMIT", 20)),
    )


@lru_cache(maxsize=1)
def get_google_sheets_settings() -> GoogleSheetsSettings:
    """
    Return Google credentials settings. The raw JSON variable wins over base64.
    """

    return GoogleSheetsSettings(
        credentials_json=_get_optional_str_env("GOOGLE_APPLICATION_CREDENTIALS_JSON"),
        credentials_base64=_get_optional_str_env("GOOGLE_APPLICATION_CREDENTIALS_BASE64"),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        sync_interval_minutes=max(1, _get_int_env("SCHEDULER_SYNC_INTERVAL_MINUTES", 60)),
    )
