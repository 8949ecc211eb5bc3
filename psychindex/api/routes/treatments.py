"""Treatment routes - treatment documents wrapped in an entity-like envelope."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from psychindex.api.deps import get_treatment_loader
from psychindex.api.responses import category_discovery, internal_error, not_found
from psychindex.content.loaders import ContentLoader
from psychindex.core.logging import get_logger
from psychindex.ingestion.rules import category_to_entity_type
from psychindex.schemas.api import CategorySlugsResponse

router = APIRouter(prefix="/api/treatments", tags=["treatments"])
log = get_logger("treatment_routes")


def treatment_envelope(slug: str, data: Dict[str, Any], category: str) -> Dict[str, Any]:
    return {
        "id": f"json-{slug}",
        "name": data.get("name"),
        "title": data.get("name"),
        "slug": data.get("slug"),
        "description": data.get("summary") or data.get("description"),
        "content": data,
        "data": data,
        "metadata": {
            "category": data.get("category") or category,
            "source": "json-file",
            "file_category": category,
            "discovered_at": datetime.now(timezone.utc).isoformat(),
        },
        "status": "active",
        "schema": {
            "schema_name": category,
            "display_name": category[:1].upper() + category[1:],
            "entity_type": category_to_entity_type(category),
        },
    }


@router.get("/category/{category}", response_model=CategorySlugsResponse)
def list_treatments_in_category(category: str, loader: ContentLoader = Depends(get_treatment_loader)):
    """Sorted treatment slugs in one category; empty for a missing or empty directory."""
    return CategorySlugsResponse(category=category, slugs=loader.load_by_category(category))


@router.get("/{slug}")
def get_treatment(slug: str, loader: ContentLoader = Depends(get_treatment_loader)):
    """Get one treatment by slug from any treatment category."""
    try:
        found = loader.load_by_slug(slug)
        if found is None:
            categories = loader.available_categories()
            log.debug(f"Treatment '{slug}' not found in any category ({', '.join(categories)})")
            return not_found("Treatment", slug, categories)

        log.debug(f"Loaded treatment {slug} from {found.category}")
        return treatment_envelope(slug, found.data, found.category)
    except Exception as exc:  # noqa: BLE001
        log.exception(f"Error in treatment lookup for {slug}: {exc}")
        return internal_error(slug, exc)


@router.options("/{slug}")
def treatment_categories(slug: str, loader: ContentLoader = Depends(get_treatment_loader)):
    """Discovered treatment categories, with CORS headers."""
    return category_discovery(loader.available_categories())
