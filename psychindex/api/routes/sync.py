"""Sync routes - trigger content synchronization into the mirror store."""

from pathlib import Path
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from psychindex.api.deps import get_db
from psychindex.core.config import settings
from psychindex.core.db import SessionLocal
from psychindex.core.logging import get_logger
from psychindex.schemas.api import SyncReportOut
from psychindex.services.entity_store import SqlEntityStore
from psychindex.services.sync_runs import SyncRunTracker
from psychindex.services.sync_service import ContentSyncService, SyncOptions

router = APIRouter(prefix="/sync", tags=["sync"])
log = get_logger("sync_routes")


def build_sync_service(db: Session = Depends(get_db)) -> ContentSyncService:
    return ContentSyncService(
        store=SqlEntityStore(SessionLocal),
        data_dir=Path(settings.DATA_DIR),
        batch_size=settings.SYNC_BATCH_SIZE,
        concurrency=settings.SYNC_CONCURRENCY,
        tracker=SyncRunTracker(db),
    )


@router.post("/run/{content_type}", response_model=SyncReportOut)
async def trigger_sync(
    content_type: Literal["treatments", "conditions", "resources"],
    dry_run: bool = Query(False, description="Normalize and count without writing"),
    service: ContentSyncService = Depends(build_sync_service),
):
    """
    Sync one content type from the JSON tree into the entities table.

    Files are normalized to entity rows, then upserted on (type, slug) in
    batches of SYNC_BATCH_SIZE with at most SYNC_CONCURRENCY batches in flight.
    Per-file and per-batch failures are counted, not raised.
    """
    log.info(f"Sync triggered for {content_type} (dry_run={dry_run})")
    report = await service.sync(SyncOptions(dry_run=dry_run, type_filter=content_type))
    return report.to_dict()


@router.post("/run-all", response_model=SyncReportOut)
async def trigger_sync_all(
    dry_run: bool = Query(False),
    service: ContentSyncService = Depends(build_sync_service),
):
    """Sync treatments, conditions and resources, one type after another."""
    log.info(f"Sync triggered for all content types (dry_run={dry_run})")
    report = await service.sync(SyncOptions(dry_run=dry_run))
    return report.to_dict()
