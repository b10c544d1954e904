"""
sheet_sync/google_client.py

Service-account credential loading and Sheets API client construction.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


class GoogleCredentialsError(RuntimeError):
    """
    Raised when service-account credentials are missing or malformed.
    """


def load_service_account_info(
    *,
    credentials_json: str | None = None,
    credentials_base64: str | None = None,
) -> dict[str, Any]:
    """
    Parse service-account JSON from a raw or base64-encoded string.

    Private keys pasted through environment variables often carry literal
    ``\\n`` sequences; those are turned back into newlines.
    """

    raw = credentials_json
    if not raw and credentials_base64:
        try:
            raw = base64.b64decode(credentials_base64).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise GoogleCredentialsError("Service-account credentials are not valid base64.") from exc
    if not raw:
        raise GoogleCredentialsError(
            "Set GOOGLE_APPLICATION_CREDENTIALS_JSON or GOOGLE_APPLICATION_CREDENTIALS_BASE64."
        )

    try:
        info = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise GoogleCredentialsError("Service-account credentials are not valid JSON.") from exc
    if not isinstance(info, dict):
        raise GoogleCredentialsError("Service-account credentials must be a JSON object.")

    private_key = info.get("private_key")
    if isinstance(private_key, str) and "\\n" in private_key:
        info["private_key"] = private_key.replace("\\n", "\n")
    return info


def build_sheets_service(info: dict[str, Any]) -> Any:
    credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    logger.info("Built Sheets API client client_email=%s", info.get("client_email"))
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)
