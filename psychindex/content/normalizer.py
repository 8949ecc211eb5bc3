"""Entity Normalizer - raw resource document -> validated resource shape."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from psychindex.content.shape import KNOWLEDGE_HUB, build_body_from_legacy, transform_knowledge_hub_article
from psychindex.core.logging import get_logger
from psychindex.schemas.resource import RESOURCE_CATEGORIES, AnyResource, any_resource_adapter

log = get_logger("content.normalizer")

# Retired category names rewritten before validation; contracts only know the canonical names.
CATEGORY_ALIASES = {
    "articles-blogs": KNOWLEDGE_HUB,
    "articles-guides": KNOWLEDGE_HUB,
    "articles": KNOWLEDGE_HUB,
}


class ContentValidationError(Exception):
    """A document failed its shape contract."""

    def __init__(self, slug: Optional[str], errors: List[Dict[str, str]]):
        self.slug = slug
        self.errors = errors
        summary = "; ".join(f"{e['field'] or '<root>'}: {e['message']}" for e in errors[:5])
        super().__init__(f"Resource '{slug or '<unknown>'}' failed validation: {summary}")


def canonical_category(category: Optional[str]) -> Optional[str]:
    if category is None:
        return None
    return CATEGORY_ALIASES.get(category, category)


def migrate_legacy_resource(content: Any, category_hint: Optional[str] = None, file_path: Optional[str] = None) -> Any:
    """Apply legacy rewrites (category aliases, knowledge-hub upgrade, nested sections)."""
    if not isinstance(content, dict):
        return content

    doc = copy.deepcopy(content)
    metadata = dict(doc.get("metadata") or {})
    category = canonical_category(metadata.get("category") or doc.get("category") or category_hint)

    if category and metadata.get("category") != category:
        metadata["category"] = category
    doc["metadata"] = metadata

    if category == KNOWLEDGE_HUB:
        upgraded = transform_knowledge_hub_article(doc, file_path=file_path)
        upgraded["body"] = upgraded.get("body") or build_body_from_legacy(upgraded)
        return upgraded

    nested = doc.get("content")
    if not doc.get("sections") and isinstance(nested, dict) and isinstance(nested.get("sections"), list):
        doc["sections"] = nested["sections"]

    return doc


def _error_details(exc: ValidationError) -> List[Dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors(include_url=False)
    ]


def normalize_resource(
    content: Any,
    category_hint: Optional[str] = None,
    file_path: Optional[str] = None,
) -> AnyResource:
    """Migrate and validate one resource document.

    ``category_hint`` is the directory category the document was found in;
    it is used only when the document itself carries no category.

    Raises ContentValidationError when the document does not satisfy the
    contract for its category (or has no category at all).
    """
    slug = content.get("slug") if isinstance(content, dict) else None
    migrated = migrate_legacy_resource(content, category_hint=category_hint, file_path=file_path)

    try:
        resource = any_resource_adapter.validate_python(migrated)
    except ValidationError as exc:
        errors = _error_details(exc)
        log.warning(f"Schema validation failed for {slug}: {errors}")
        raise ContentValidationError(slug, errors) from exc

    log.debug(f"Schema validation passed for {resource.slug}")
    return resource


def resource_to_dict(resource: AnyResource) -> Dict[str, Any]:
    """JSON-ready dict of a validated resource, extra fields included."""
    return resource.model_dump(mode="json", exclude_none=True)


def has_contract(category: Optional[str]) -> bool:
    return canonical_category(category) in RESOURCE_CATEGORIES
