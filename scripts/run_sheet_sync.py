"""
Run a quarterly sheet sync from the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import uuid

from app.services.sheet_sync_service import SheetSyncService, SourceSyncSummary
from sheet_sync.errors import SheetSyncError, SourceUnavailableError
from sheet_sync.google_client import GoogleCredentialsError
from sheet_sync.types import SyncResult, SyncTrigger


def _parse_rows(raw: str | None) -> list[int] | None:
    if not raw:
        return None
    rows: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, end = (int(value) for value in part.split("-", 1))
            rows.extend(range(start, end + 1))
        else:
            rows.append(int(part))
    return rows or None


def _result_payload(result: SyncResult) -> dict[str, object]:
    return {
        "run_id": str(result.run_id),
        "quarterly_sheet_id": str(result.source_id),
        "outcome": result.outcome,
        "total": result.total,
        "created": result.created,
        "updated": result.updated,
        "deleted": result.deleted,
        "skipped": result.skipped,
        "errors": result.errors,
        "warnings": result.warnings,
        "duration_ms": result.duration_ms,
        "unarchived_deletes": [
            {"pipeline_id": str(outcome.pipeline_id), "key": outcome.key, "archive_error": outcome.archive_error}
            for outcome in result.unarchived_deletes
        ],
    }


def _summary_payload(summary: SourceSyncSummary) -> dict[str, object]:
    if summary.result is not None:
        return _result_payload(summary.result)
    return {"quarterly_sheet_id": str(summary.source_id), "error": summary.error}


def parse_args(argv: list[str] | None = None) -> tuple[argparse.Namespace, list[int] | None]:
    parser = argparse.ArgumentParser(description="Sync quarterly pipeline sheets into the database.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--sheet-id",
        dest="sheet_id",
        type=uuid.UUID,
        default=None,
        help="Quarterly sheet id to sync.",
    )
    target.add_argument(
        "--all",
        dest="sync_all",
        action="store_true",
        help="Sync every active quarterly sheet.",
    )
    parser.add_argument(
        "--rows",
        dest="rows",
        default=None,
        help="Optional sheet rows for an incremental sync, e.g. '5,7,10-12'.",
    )
    parser.add_argument(
        "--delay",
        dest="delay",
        type=float,
        default=None,
        help="Seconds to wait between sheets with --all.",
    )
    args = parser.parse_args(argv)
    if args.sync_all and args.rows:
        parser.error("--rows applies to a single sheet and cannot be combined with --all")

    try:
        rows = _parse_rows(args.rows)
    except ValueError:
        parser.error(f"Invalid --rows value: {args.rows!r}")
    return args, rows


def main(argv: list[str] | None = None) -> int:
    args, rows = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    service = SheetSyncService()

    if args.sync_all:
        summaries = service.sync_all_active(trigger=SyncTrigger.CLI, delay_seconds=args.delay)
        print(json.dumps([_summary_payload(summary) for summary in summaries], indent=2, ensure_ascii=False))
        return 0 if all(summary.succeeded for summary in summaries) else 1

    try:
        result = service.run_sync(args.sheet_id, rows, trigger=SyncTrigger.CLI)
    except SourceUnavailableError as exc:
        print(json.dumps({"error": str(exc), "error_type": exc.error_type}, indent=2))
        return 2
    except (SheetSyncError, GoogleCredentialsError) as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 2

    print(json.dumps(_result_payload(result), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
