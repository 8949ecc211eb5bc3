"""Resource routes - resources served straight from the content tree."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from psychindex.api.deps import get_resource_index, get_resource_loader
from psychindex.api.responses import category_discovery, internal_error, not_found
from psychindex.content.loaders import ContentLoader
from psychindex.content.normalizer import (
    ContentValidationError,
    canonical_category,
    has_contract,
    migrate_legacy_resource,
    normalize_resource,
    resource_to_dict,
)
from psychindex.core.logging import get_logger
from psychindex.services.resource_index import ResourceIndex

router = APIRouter(prefix="/api/resources", tags=["resources"])
log = get_logger("resource_routes")


@router.get("")
def list_resources(
    category: Optional[str] = Query(None, description="Filter by pillar or metadata category"),
    index: ResourceIndex = Depends(get_resource_index),
):
    """List resources from the prebuilt resource index."""
    resources = index.by_category(category) if category else index.all()
    return {"resources": resources}


@router.get("/{slug}")
def get_resource(slug: str, loader: ContentLoader = Depends(get_resource_loader)):
    """
    Get one resource by slug, normalized to its category shape.

    Lookup order: knowledge-hub area, then every resource category (direct
    path, then one level of subdirectories), then a case-insensitive match.
    """
    try:
        found = loader.load_by_slug(slug)
        if found is None:
            log.debug(f"Resource '{slug}' not found in any category")
            return not_found("Resource", slug, loader.available_categories())

        category = canonical_category(found.category)
        metadata = found.data.get("metadata")
        declared = metadata.get("category") if isinstance(metadata, dict) else None
        if not has_contract(declared or category):
            return migrate_legacy_resource(found.data, category_hint=category, file_path=str(found.path))

        try:
            resource = normalize_resource(found.data, category_hint=category, file_path=str(found.path))
        except ContentValidationError as exc:
            return JSONResponse(status_code=422, content={"error": str(exc), "slug": slug, "details": exc.errors})

        log.debug(f"Loaded resource {slug} from {found.category}")
        return resource_to_dict(resource)
    except Exception as exc:  # noqa: BLE001
        log.exception(f"Error loading resource {slug}: {exc}")
        return internal_error(slug, exc)


@router.options("/{slug}")
def resource_categories(slug: str, loader: ContentLoader = Depends(get_resource_loader)):
    """Discovered resource categories, with CORS headers for cross-origin discovery."""
    return category_discovery(loader.available_categories())
