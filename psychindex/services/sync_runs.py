"""Bookkeeping of synchronization runs in the sync_runs table."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from psychindex.core.logging import get_logger
from psychindex.models.sync_runs import SyncRun

if TYPE_CHECKING:
    from psychindex.services.sync_service import SyncStats

log = get_logger("sync_runs")


class SyncRunTracker:
    """Records one SyncRun row per content type per run."""

    def __init__(self, db: Session):
        self.db = db

    def start(self, content_type: str, dry_run: bool) -> SyncRun:
        run = SyncRun(content_type=content_type, status="running", dry_run=dry_run, records_synced=0, error_count=0)
        self.db.add(run)
        self.db.commit()
        self.db.refresh(run)
        return run

    def finish(self, run: SyncRun, stats: "SyncStats") -> None:
        run.status = "success" if stats.errors == 0 else "failure"
        run.records_synced = stats.synced
        run.error_count = stats.errors
        run.meta = {
            "total": stats.total,
            "skipped": stats.skipped,
            "batches": stats.batches,
            "failed_batches": stats.failed_batches,
            "errors": stats.error_details[:50],
        }
        if stats.errors:
            run.error_message = f"{stats.errors} record(s) failed"
        run.ended_at = datetime.now(timezone.utc)
        self.db.commit()

    def fail(self, run: SyncRun, stats: "SyncStats", message: str) -> None:
        self.db.rollback()
        run.status = "failure"
        run.records_synced = stats.synced
        run.error_count = stats.errors
        run.error_message = message
        run.ended_at = datetime.now(timezone.utc)
        self.db.add(run)
        self.db.commit()
        log.error(f"Sync run {run.run_id} for {run.content_type} failed: {message}")


def recent_runs(
    db: Session,
    content_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 10,
) -> List[SyncRun]:
    stmt = select(SyncRun)
    if content_type:
        stmt = stmt.where(SyncRun.content_type == content_type)
    if status:
        stmt = stmt.where(SyncRun.status == status)
    stmt = stmt.order_by(SyncRun.started_at.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())
