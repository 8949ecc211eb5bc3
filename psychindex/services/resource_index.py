"""Prebuilt resource index - built from data/resources, served with a TTL cache."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from psychindex.content.discovery import discover_categories
from psychindex.core.logging import get_logger

log = get_logger("resource_index")

INDEX_FILE_NAME = "index.json"


def _index_entry(content: Dict[str, Any], category: str, subcategory: Optional[str], stamp: str) -> Dict[str, Any]:
    slug = content.get("slug") or content.get("id")
    source_metadata = content.get("metadata") if isinstance(content.get("metadata"), dict) else {}
    return {
        "id": f"json-{slug}",
        "name": content["name"],
        "title": content["name"],
        "slug": slug,
        "description": content.get("description") or "",
        "type": "resource",
        "content": content,
        "pillar": content.get("pillar"),
        "metadata": {
            **source_metadata,
            "category": source_metadata.get("category") or category,
            "subcategory": subcategory,
            "source": "json-file",
        },
        "status": "active",
        "created_at": stamp,
        "updated_at": stamp,
    }


def _scan(directory: Path, category: str, subcategory: Optional[str], stamp: str, out: List[Dict[str, Any]], skipped: List[str]) -> None:
    for entry in sorted(directory.iterdir()):
        if entry.is_dir():
            _scan(entry, category, entry.name, stamp, out, skipped)
            continue
        if entry.suffix != ".json" or entry.name == INDEX_FILE_NAME:
            continue
        try:
            content = json.loads(entry.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            log.warning(f"Skipping {entry}: {exc}")
            skipped.append(str(entry))
            continue
        if not isinstance(content, dict) or not content.get("name") or not (content.get("slug") or content.get("id")):
            log.warning(f"Skipping invalid resource file: {entry.name}")
            skipped.append(str(entry))
            continue
        out.append(_index_entry(content, category, subcategory, stamp))


def build_resource_index(resources_dir: Path, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Walk every resource category recursively and collect entity-shaped entries.

    ``index.json`` files are ignored, as are documents lacking ``name`` or
    lacking both ``slug`` and ``id``. Raises FileNotFoundError when the
    resources directory does not exist.
    """
    resources_dir = Path(resources_dir)
    if not resources_dir.is_dir():
        raise FileNotFoundError(f"Resources directory not found: {resources_dir}")

    stamp = (now or datetime.now(timezone.utc)).isoformat()
    resources: List[Dict[str, Any]] = []
    skipped: List[str] = []

    categories = discover_categories(resources_dir)
    log.info(f"Found {len(categories)} resource categories: {', '.join(categories)}")
    for category in categories:
        _scan(resources_dir / category, category, None, stamp, resources, skipped)

    log.info(f"Built resource index with {len(resources)} resources ({len(skipped)} skipped)")
    return {"resources": resources, "generated": stamp}


def write_resource_index(index: Dict[str, Any], output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(index, indent=2, ensure_ascii=False), encoding="utf-8")
    return output_path


class ResourceIndex:
    """Reads the prebuilt index file, memoized in memory for ``ttl_seconds``."""

    def __init__(self, path: Path, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._cache: Optional[List[Dict[str, Any]]] = None
        self._loaded_at: float = 0.0

    def all(self) -> List[Dict[str, Any]]:
        now = self.clock()
        if self._cache is not None and now - self._loaded_at < self.ttl_seconds:
            return self._cache

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            log.warning(f"Resource index not found at {self.path}; run the index builder to generate it")
            return []
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            log.error(f"Failed to load resource index {self.path}: {exc}")
            return []

        resources = data.get("resources") if isinstance(data, dict) else data
        if not isinstance(resources, list):
            log.error(f"Resource index {self.path} has no resources list")
            return []

        self._cache = resources
        self._loaded_at = now
        log.debug(f"Loaded {len(resources)} resources from index")
        return resources

    def by_category(self, category: str) -> List[Dict[str, Any]]:
        return [
            r for r in self.all()
            if r.get("pillar") == category or (r.get("metadata") or {}).get("category") == category
        ]

    def by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return next((r for r in self.all() if r.get("slug") == slug), None)

    def clear_cache(self) -> None:
        self._cache = None
        self._loaded_at = 0.0
