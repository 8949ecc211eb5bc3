"""Entity routes - database-backed reads over the entities mirror table."""

import time
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from psychindex.api.deps import get_entity_service
from psychindex.models.entity import ENTITY_TYPES
from psychindex.schemas.api import CategoryListResponse, EntityListResponse, EntityOut
from psychindex.services.entity_service import EntityService, to_entity_view

router = APIRouter(prefix="/api/entities", tags=["entities"])


def _check_type(entity_type: str) -> None:
    if entity_type not in ENTITY_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown entity type '{entity_type}'")


@router.get("", response_model=EntityListResponse)
def list_entities(
    type: str = Query(..., description="Entity type (condition, medication, resource, ...)"),
    category: Optional[str] = Query(None, description="Exact metadata category"),
    service: EntityService = Depends(get_entity_service),
):
    """Active entities of one type, optionally within one category, ordered by title."""
    start = time.perf_counter()
    _check_type(type)
    rows = service.get_by_type_and_category(type, category) if category else service.get_by_type(type)
    return EntityListResponse(
        request_id=str(uuid.uuid4()),
        api_latency_ms=int((time.perf_counter() - start) * 1000),
        count=len(rows),
        data=[to_entity_view(r) for r in rows],
    )


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(
    type: str = Query(..., description="Entity type"),
    service: EntityService = Depends(get_entity_service),
):
    _check_type(type)
    return CategoryListResponse(type=type, categories=service.get_categories_by_type(type))


@router.get("/search", response_model=EntityListResponse)
def search_treatments(
    q: str = Query(..., min_length=1, max_length=100, description="Matched against title and description"),
    limit: int = Query(20, ge=1, le=50),
    service: EntityService = Depends(get_entity_service),
):
    """Search treatments of every treatment type."""
    start = time.perf_counter()
    rows = service.search_treatments(q, limit=limit)
    return EntityListResponse(
        request_id=str(uuid.uuid4()),
        api_latency_ms=int((time.perf_counter() - start) * 1000),
        count=len(rows),
        data=[to_entity_view(r) for r in rows],
    )


@router.get("/treatments/category/{category_prefix}", response_model=EntityListResponse)
def treatments_by_category(category_prefix: str, service: EntityService = Depends(get_entity_service)):
    """Treatments of any type whose category starts with the prefix."""
    start = time.perf_counter()
    rows = service.get_treatments_by_category(category_prefix)
    return EntityListResponse(
        request_id=str(uuid.uuid4()),
        api_latency_ms=int((time.perf_counter() - start) * 1000),
        count=len(rows),
        data=[to_entity_view(r) for r in rows],
    )


@router.get("/{entity_type}/{slug}", response_model=EntityOut)
def get_entity(entity_type: str, slug: str, service: EntityService = Depends(get_entity_service)):
    _check_type(entity_type)
    entity = service.get_by_slug(slug, entity_type)
    if not entity:
        raise HTTPException(status_code=404, detail=f"{entity_type} '{slug}' not found")
    return to_entity_view(entity)
