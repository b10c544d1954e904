"""
Per-sheet sync lease backed by the pipeline_sync_leases table.

Acquire and release commit in their own short session so the lease is
visible to other workers while the sync transaction is still open.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.sync_audit import PipelineSyncLease

logger = logging.getLogger(__name__)


class SyncLeaseRepository:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def acquire(self, source_id: uuid.UUID, holder: str, ttl_seconds: int) -> bool:
        """
        Take the lease unless another holder has an unexpired one.
        """

        now = self._clock()
        stmt = insert(PipelineSyncLease).values(
            quarterly_sheet_id=source_id,
            holder=holder,
            acquired_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PipelineSyncLease.quarterly_sheet_id],
            set_={
                "holder": stmt.excluded.holder,
                "acquired_at": stmt.excluded.acquired_at,
                "expires_at": stmt.excluded.expires_at,
            },
            where=PipelineSyncLease.expires_at < now,
        ).returning(PipelineSyncLease.holder)

        with self._session_factory() as session:
            acquired_by = session.execute(stmt).scalar_one_or_none()
            session.commit()

        acquired = acquired_by == holder
        if not acquired:
            logger.info("Sync lease held by another run source_id=%s", source_id)
        return acquired

    def release(self, source_id: uuid.UUID, holder: str) -> None:
        with self._session_factory() as session:
            session.execute(
                delete(PipelineSyncLease).where(
                    PipelineSyncLease.quarterly_sheet_id == source_id,
                    PipelineSyncLease.holder == holder,
                )
            )
            session.commit()
