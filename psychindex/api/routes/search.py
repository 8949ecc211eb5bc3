"""Search routes - cross-type entity search over the mirror table."""

import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from psychindex.api.deps import get_entity_service
from psychindex.core.logging import get_logger
from psychindex.models.entity import ENTITY_TYPES
from psychindex.schemas.api import EntitySearchResponse
from psychindex.services.entity_service import EntityService, to_entity_view

router = APIRouter(prefix="/api/search", tags=["search"])
log = get_logger("search_routes")

MIN_QUERY_LENGTH = 2
SHORT_QUERY_MESSAGE = "Search query must be at least 2 characters"
SEARCH_FAILED_MESSAGE = "Search failed. Please try again."


@router.get("", response_model=EntitySearchResponse, response_model_by_alias=True, response_model_exclude_none=True)
def search_entities(
    q: Optional[str] = Query(None, max_length=100, description="Matched against title and description"),
    type: Optional[str] = Query(None, description="Restrict to one entity type"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: EntityService = Depends(get_entity_service),
):
    """
    Search active entities of every type, ordered by title.

    Queries shorter than 2 characters return no results and a message
    instead of an error. ``hasMore`` is exact: it compares the page end
    against the filtered total.
    """
    start = time.perf_counter()
    if not q or len(q.strip()) < MIN_QUERY_LENGTH:
        return EntitySearchResponse(results=[], message=SHORT_QUERY_MESSAGE)
    if type and type not in ENTITY_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown entity type '{type}'")

    try:
        rows, total = service.search(q, [type] if type else None, limit=limit, offset=offset)
    except Exception as exc:  # noqa: BLE001
        log.exception(f"Entity search failed for '{q}': {exc}")
        return JSONResponse(status_code=500, content={"error": SEARCH_FAILED_MESSAGE})

    load_time_ms = int((time.perf_counter() - start) * 1000)
    log.debug(f"Search '{q}' (type={type}) returned {len(rows)} of {total} in {load_time_ms}ms")
    return EntitySearchResponse(
        results=[to_entity_view(r) for r in rows],
        total_count=total,
        has_more=offset + len(rows) < total,
        next_offset=offset + limit,
        load_time_ms=load_time_ms,
    )
