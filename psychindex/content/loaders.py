"""Slug -> document loaders built from ordered lookup strategies.

A strategy is a callable ``slug -> LoadedDocument | None``. A loader tries
its strategies in order and returns the first hit; ``None`` after the last
one means "not found" and is never an exception. Unreadable or malformed
files are logged and skipped so the next strategy still gets its turn.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from psychindex.content.discovery import CategoryCatalog
from psychindex.content.shape import KNOWLEDGE_HUB, transform_knowledge_hub_article
from psychindex.core.logging import get_logger

log = get_logger("content.loaders")


@dataclass(frozen=True)
class LoadedDocument:
    data: Dict[str, Any]
    category: str
    path: Path


LookupStrategy = Callable[[str], Optional[LoadedDocument]]


def is_safe_name(name: str) -> bool:
    """Reject slugs/categories that could escape the content root."""
    return bool(name) and not name.startswith(".") and "/" not in name and "\\" not in name


def read_json_document(path: Path) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from disk; log and return None on any failure."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        log.warning(f"Skipping unreadable document {path}: {exc}")
        return None
    if not isinstance(data, dict):
        log.warning(f"Skipping {path}: top-level JSON value is not an object")
        return None
    return data


# -----------------------------------------------------------------------------
# Strategies
# -----------------------------------------------------------------------------


def find_file_recursive(base: Path, file_name: str) -> Optional[Path]:
    """Depth-first search for ``file_name`` under ``base``, stopping at the first match.

    Directories whose name starts with ``_`` (taxonomy, unsorted) are skipped.
    """
    if not base.is_dir():
        return None

    stack = [base]
    while stack:
        directory = stack.pop()
        candidate = directory / file_name
        if candidate.is_file():
            return candidate
        try:
            children = sorted(entry for entry in directory.iterdir() if entry.is_dir() and not entry.name.startswith("_"))
        except OSError as exc:
            log.warning(f"Cannot list {directory}: {exc}")
            continue
        stack.extend(reversed(children))
    return None


def knowledge_hub_strategy(base: Path) -> LookupStrategy:
    """Curated knowledge-hub area, searched recursively; documents are upgraded on load."""

    def lookup(slug: str) -> Optional[LoadedDocument]:
        path = find_file_recursive(base, f"{slug}.json")
        if not path:
            return None
        raw = read_json_document(path)
        if raw is None:
            return None
        log.debug(f"Loaded {slug} from {base}")
        return LoadedDocument(data=transform_knowledge_hub_article(raw, file_path=str(path)), category=KNOWLEDGE_HUB, path=path)

    return lookup


def category_strategy(catalog: CategoryCatalog, search_subdirs: bool = False) -> LookupStrategy:
    """Direct ``<root>/<category>/<slug>.json`` path for each discovered category.

    With ``search_subdirs`` one further level of subdirectories is tried
    inside each category before moving to the next category.
    """

    def lookup(slug: str) -> Optional[LoadedDocument]:
        file_name = f"{slug}.json"
        for category in catalog.categories():
            category_dir = catalog.root / category
            candidates = [category_dir / file_name]
            if search_subdirs:
                try:
                    subdirs = sorted(entry for entry in category_dir.iterdir() if entry.is_dir())
                except OSError as exc:
                    log.debug(f"Error listing {category_dir}: {exc}")
                    subdirs = []
                candidates.extend(subdir / file_name for subdir in subdirs)

            for path in candidates:
                if not path.is_file():
                    continue
                data = read_json_document(path)
                if data is None:
                    continue
                log.debug(f"Found {slug} in category: {category}")
                return LoadedDocument(data=data, category=category, path=path)
        return None

    return lookup


def slug_index_strategy(catalog: CategoryCatalog) -> LookupStrategy:
    """Case-insensitive fallback through the catalog's slug index."""

    def lookup(slug: str) -> Optional[LoadedDocument]:
        entry = catalog.slug_index().get(slug.lower())
        if not entry:
            return None
        path = catalog.root / entry.category / entry.file_name
        data = read_json_document(path)
        if data is None:
            return None
        log.debug(f"Found {slug} via case-insensitive match ({entry.file_name}) in {entry.category}")
        return LoadedDocument(data=data, category=entry.category, path=path)

    return lookup


# -----------------------------------------------------------------------------
# Loaders
# -----------------------------------------------------------------------------


class ContentLoader:
    """Resolves slugs against one content root using an ordered strategy list."""

    def __init__(self, catalog: CategoryCatalog, strategies: Sequence[LookupStrategy]):
        self.catalog = catalog
        self.strategies: List[LookupStrategy] = list(strategies)

    def load_by_slug(self, slug: str) -> Optional[LoadedDocument]:
        if not is_safe_name(slug):
            return None
        for strategy in self.strategies:
            found = strategy(slug)
            if found is not None:
                return found
        return None

    def load_by_category(self, category: str) -> List[str]:
        if not is_safe_name(category):
            return []
        return self.catalog.slugs_in_category(category)

    def available_categories(self) -> List[str]:
        return self.catalog.categories()

    def clear_cache(self) -> None:
        self.catalog.clear_cache()


def resource_loader(catalog: CategoryCatalog, knowledge_hub_dir: Path) -> ContentLoader:
    return ContentLoader(
        catalog,
        [
            knowledge_hub_strategy(knowledge_hub_dir),
            category_strategy(catalog, search_subdirs=True),
            slug_index_strategy(catalog),
        ],
    )


def treatment_loader(catalog: CategoryCatalog) -> ContentLoader:
    return ContentLoader(catalog, [category_strategy(catalog), slug_index_strategy(catalog)])


def condition_loader(catalog: CategoryCatalog) -> ContentLoader:
    return ContentLoader(catalog, [category_strategy(catalog)])
