"""Condition routes - condition documents served straight from the content tree."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from psychindex.api.deps import get_condition_loader
from psychindex.api.responses import category_discovery, internal_error, not_found
from psychindex.content.loaders import ContentLoader
from psychindex.core.logging import get_logger

router = APIRouter(prefix="/api/conditions", tags=["conditions"])
log = get_logger("condition_routes")

CONDITION_SCHEMA = {"schema_name": "condition", "display_name": "Condition", "entity_type": "condition"}


def condition_envelope(slug: str, data: Dict[str, Any], category: str) -> Dict[str, Any]:
    body = data.get("content") or data
    source_metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    return {
        "id": f"json-{slug}",
        "name": data.get("name"),
        "title": data.get("name"),
        "slug": data.get("slug"),
        "type": data.get("type") or "condition",
        "content": body,
        "data": body,
        "metadata": {
            **source_metadata,
            "category": source_metadata.get("category") or category,
            "source": "json-file",
            "file_category": category,
            "discovered_at": datetime.now(timezone.utc).isoformat(),
        },
        "status": "active",
        "schema": dict(CONDITION_SCHEMA),
    }


@router.get("/{slug}")
def get_condition(slug: str, loader: ContentLoader = Depends(get_condition_loader)):
    """Get one condition by slug (direct category lookup only)."""
    try:
        found = loader.load_by_slug(slug)
        if found is None:
            return not_found("Condition", slug, loader.available_categories())
        return condition_envelope(slug, found.data, found.category)
    except Exception as exc:  # noqa: BLE001
        log.exception(f"Error in condition lookup for {slug}: {exc}")
        return internal_error(slug, exc)


@router.options("/{slug}")
def condition_categories(slug: str, loader: ContentLoader = Depends(get_condition_loader)):
    return category_discovery(loader.available_categories())
