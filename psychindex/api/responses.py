"""JSON responses shared by the content-by-slug endpoints."""

from datetime import datetime, timezone
from typing import List

from fastapi.responses import JSONResponse

from psychindex.core.config import settings
from psychindex.schemas.api import CategoryDiscoveryResponse, NotFoundResponse

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def not_found(label: str, slug: str, categories: List[str]) -> JSONResponse:
    body = NotFoundResponse(
        error=f"{label} '{slug}' not found",
        available_categories=categories,
        suggestion=f"Check if the file exists in any of these directories: {', '.join(categories)}",
    )
    return JSONResponse(status_code=404, content=body.model_dump())


def category_discovery(categories: List[str]) -> JSONResponse:
    body = CategoryDiscoveryResponse(
        available_categories=categories,
        category_count=len(categories),
        discovered_at=datetime.now(timezone.utc),
    )
    return JSONResponse(content=body.model_dump(mode="json"), headers=CORS_HEADERS)


def internal_error(slug: str, exc: Exception) -> JSONResponse:
    """Opaque 500; the exception text is only exposed outside production."""
    content = {
        "error": "Internal server error",
        "slug": slug,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if not settings.is_production:
        content["details"] = str(exc) or exc.__class__.__name__
    return JSONResponse(status_code=500, content=content)
