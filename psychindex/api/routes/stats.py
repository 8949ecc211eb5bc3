"""Stats routes - sync observability."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from psychindex.api.deps import get_db
from psychindex.schemas.api import SyncRunOut
from psychindex.services.sync_runs import recent_runs

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/sync-runs", response_model=list[SyncRunOut])
def get_sync_runs(
    content_type: Optional[Literal["treatments", "conditions", "resources"]] = Query(None, description="Filter by content type"),
    status: Optional[str] = Query(None, description="Filter by status (running, success, failure)"),
    limit: int = Query(10, ge=1, le=50, description="Number of runs to return"),
    db: Session = Depends(get_db),
):
    """
    Recent synchronization runs, newest first.

    Shows records synced, error counts and timing for each content type.
    """
    runs = recent_runs(db, content_type=content_type, status=status, limit=limit)
    return [
        SyncRunOut(
            run_id=str(run.run_id),
            content_type=run.content_type,
            status=run.status,
            dry_run=run.dry_run,
            records_synced=run.records_synced,
            error_count=run.error_count,
            error_message=run.error_message,
            started_at=run.started_at,
            ended_at=run.ended_at,
        )
        for run in runs
    ]
