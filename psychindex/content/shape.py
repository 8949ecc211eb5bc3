"""Knowledge-hub article shaping.

Legacy article documents come in several generations (free-text
``introduction``/``sections``/``conclusion``, SEO-only slugs, ``article_type``
instead of ``pillar``). ``transform_knowledge_hub_article`` rewrites any of
them into the current knowledge-hub shape.
"""

from __future__ import annotations

import copy
import re
from pathlib import PurePath
from typing import Any, Callable, Dict, List, Optional

KNOWLEDGE_HUB = "knowledge-hub"
ANONYMOUS = "anonymous"
ALLOWED_FORMATS = {"article", "video", "podcast", "infographic"}

PILLAR_BY_ARTICLE_TYPE = {
    "research": "research-and-science",
    "latest": "research-and-science",
    "lived-experience": "community-and-stories",
    "how-to": "how-to-guides",
}
DEFAULT_PILLAR = "how-to-guides"

SUBCATEGORY_BY_ARTICLE_TYPE = {
    "research": "psychology",
    "latest": "mental-health-trends",
    "lived-experience": "personal-stories",
    "how-to": "health-systems",
}

_BLANK_LINES = re.compile(r"\n\n+")
_DIGITS = re.compile(r"(\d+)")


def parse_reading_minutes(value: Any) -> Optional[int]:
    """``"7 min read"`` -> 7; numbers pass through; anything else -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        match = _DIGITS.search(value)
        return int(match.group(1)) if match else None
    return None


def infer_pillar(article_type: Optional[str], slug: Optional[str] = None) -> str:
    if not article_type and slug and "community" in slug:
        return "community-and-stories"
    return PILLAR_BY_ARTICLE_TYPE.get(article_type or "", DEFAULT_PILLAR)


def infer_subcategory(article_type: Optional[str]) -> Optional[str]:
    return SUBCATEGORY_BY_ARTICLE_TYPE.get(article_type or "")


def ensure_list(value: Any) -> Optional[List[Any]]:
    if not value:
        return None
    if isinstance(value, list):
        return value
    return [value]


def split_paragraphs(text: Any) -> List[Dict[str, str]]:
    if not isinstance(text, str) or not text:
        return []
    paragraphs = (p.strip() for p in _BLANK_LINES.split(text))
    return [{"type": "p", "text": p} for p in paragraphs if p]


def build_body_from_legacy(resource: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
    """Structured body blocks for a document, built from legacy free text.

    An existing non-empty ``body`` is returned unchanged.
    """
    body = resource.get("body")
    if isinstance(body, list) and body:
        return body

    blocks: List[Dict[str, Any]] = []
    legacy = resource.get("content") if isinstance(resource.get("content"), dict) else {}

    if legacy.get("introduction"):
        blocks.append({"type": "p", "text": legacy["introduction"]})

    def add_sections(sections: Any) -> None:
        if not isinstance(sections, list):
            return
        for section in sections:
            if not isinstance(section, dict):
                continue
            heading = section.get("heading") or section.get("title")
            if heading:
                blocks.append({"type": "h2", "text": heading})
            if section.get("content"):
                blocks.extend(split_paragraphs(section["content"]))
            elif section.get("text"):
                blocks.append({"type": "p", "text": section["text"]})
            if isinstance(section.get("items"), list) and section["items"]:
                blocks.append({"type": "ul", "items": list(section["items"])})
            if isinstance(section.get("links"), list) and section["links"]:
                blocks.append({"type": "related", "links": list(section["links"])})

    add_sections(legacy.get("sections"))
    add_sections(resource.get("sections"))

    if legacy.get("conclusion"):
        blocks.append({"type": "p", "text": legacy["conclusion"]})

    return blocks or None


def map_strings(value: Any, fn: Callable[[str], str]) -> Any:
    """Apply ``fn`` to every string nested in ``value`` (dict keys untouched)."""
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, list):
        return [map_strings(item, fn) for item in value]
    if isinstance(value, dict):
        return {key: map_strings(item, fn) for key, item in value.items()}
    return value


def strip_asterisks(value: Any) -> Any:
    """Remove every literal ``*`` from all strings nested in ``value``."""
    return map_strings(value, lambda text: text.replace("*", ""))


def _slug_from_canonical(seo: Any) -> Optional[str]:
    if not isinstance(seo, dict) or not isinstance(seo.get("canonical"), str):
        return None
    segments = [segment for segment in seo["canonical"].split("/") if segment]
    return segments[-1] if segments else None


def transform_knowledge_hub_article(raw: Dict[str, Any], file_path: Optional[str] = None) -> Dict[str, Any]:
    """Upgrade a (possibly legacy) article document to the knowledge-hub shape.

    Author attribution is overwritten with ``"anonymous"`` as the very last
    step, after every other field has been derived.
    """
    if not isinstance(raw, dict):
        return raw

    doc = copy.deepcopy(raw)
    metadata = dict(doc.get("metadata") or {})
    metadata["category"] = KNOWLEDGE_HUB
    doc["kind"] = "resource"

    source_path = file_path or doc.get("filePath") or ""
    doc["slug"] = doc.get("slug") or _slug_from_canonical(doc.get("seo")) or PurePath(source_path).stem

    doc["name"] = doc.get("name") or doc.get("title") or doc["slug"]
    doc["description"] = (
        doc.get("description") or doc.get("summary") or metadata.get("description") or doc.get("excerpt") or ""
    )
    doc["summary"] = doc.get("summary") or doc["description"]

    doc["metadata"] = metadata
    article_type = metadata.get("article_type")
    doc["pillar"] = doc.get("pillar") or metadata.get("pillar") or infer_pillar(article_type, doc["slug"])
    subcategory = doc.get("subcategory") or metadata.get("subcategory") or infer_subcategory(article_type)
    if subcategory:
        doc["subcategory"] = subcategory

    legacy = doc.get("content") if isinstance(doc.get("content"), dict) else {}
    tags = doc.get("tags") or metadata.get("topics") or doc.get("topics") or legacy.get("topics") or legacy.get("tags") or []
    doc["tags"] = tags
    if not metadata.get("topics") and isinstance(tags, list):
        metadata["topics"] = tags

    reading_minutes = doc.get("readingMinutes")
    if reading_minutes is None:
        reading_minutes = parse_reading_minutes(doc.get("reading_time"))
    if reading_minutes is None:
        reading_minutes = parse_reading_minutes(metadata.get("read_time"))
    if reading_minutes is not None:
        doc["readingMinutes"] = reading_minutes

    reading_time = doc.get("reading_time") or metadata.get("read_time")
    if not reading_time and reading_minutes:
        reading_time = f"{reading_minutes} min read"
    if reading_time:
        doc["reading_time"] = reading_time

    published_at = doc.get("publishedAt") or metadata.get("published_date") or metadata.get("publishedAt")
    if published_at:
        doc["publishedAt"] = published_at
    updated_at = doc.get("updatedAt") or metadata.get("updatedAt")
    if updated_at:
        doc["updatedAt"] = updated_at

    doc_format = doc.get("format") or metadata.get("format")
    doc["format"] = doc_format if doc_format in ALLOWED_FORMATS else "article"

    body = build_body_from_legacy(doc)
    if body:
        doc["body"] = body

    sanitized = strip_asterisks(doc)
    sanitized["authors"] = [ANONYMOUS]
    sanitized["author"] = ANONYMOUS
    sanitized["metadata"]["author"] = ANONYMOUS

    return sanitized
