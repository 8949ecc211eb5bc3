"""Category discovery over the category-organized content tree.

A category is an immediate subdirectory of a content root
(``data/treatments/medications``). Discovery results are cached on a
``CategoryCatalog`` instance until ``clear_cache()``; there is no TTL.
Filesystem problems are logged and reported as "nothing found" so that a
missing or unreadable directory never breaks a request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from psychindex.core.logging import get_logger

log = get_logger("content.discovery")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SlugEntry:
    category: str
    file_name: str


@dataclass(frozen=True)
class CategorySnapshot:
    categories: Tuple[str, ...]
    built_at: datetime


def discover_categories(root: Path) -> List[str]:
    """List immediate subdirectories of ``root``, sorted."""
    try:
        if not root.exists():
            log.warning(f"Content directory not found: {root}")
            return []
        return sorted(entry.name for entry in root.iterdir() if entry.is_dir())
    except OSError as exc:
        log.error(f"Error discovering categories under {root}: {exc}")
        return []


def list_slugs(category_dir: Path) -> List[str]:
    """Slugs (file stems) of the ``.json`` files directly inside a category directory."""
    try:
        if not category_dir.is_dir():
            return []
        return sorted(p.stem for p in category_dir.iterdir() if p.is_file() and p.suffix == ".json")
    except OSError as exc:
        log.error(f"Error reading category {category_dir}: {exc}")
        return []


def build_slug_index(root: Path, categories: List[str]) -> Dict[str, SlugEntry]:
    """Map lowercased slug -> (category, on-disk file name).

    Categories are walked in the given order and the first occurrence of a
    slug wins; later duplicates are ignored.
    """
    index: Dict[str, SlugEntry] = {}
    for category in categories:
        category_dir = root / category
        try:
            if not category_dir.is_dir():
                continue
            file_names = sorted(p.name for p in category_dir.iterdir() if p.is_file() and p.name.lower().endswith(".json"))
        except OSError as exc:
            log.error(f"Error indexing category {category_dir}: {exc}")
            continue

        for file_name in file_names:
            key = file_name[: -len(".json")].lower()
            if key in index:
                log.debug(f"Duplicate slug '{key}' in {category}; keeping {index[key].category}")
                continue
            index[key] = SlugEntry(category=category, file_name=file_name)

    return index


class CategoryCatalog:
    """Cached view of the categories (and slug index) under one content root.

    Rebuilding replaces the cached references wholesale; readers holding an
    older snapshot keep a consistent, never-mutated copy.
    """

    def __init__(self, root: Path, clock: Clock = _utcnow):
        self.root = Path(root)
        self._clock = clock
        self._snapshot: Optional[CategorySnapshot] = None
        self._slug_index: Optional[Dict[str, SlugEntry]] = None

    def snapshot(self) -> CategorySnapshot:
        if self._snapshot is None:
            categories = tuple(discover_categories(self.root))
            self._snapshot = CategorySnapshot(categories=categories, built_at=self._clock())
            log.debug(f"Discovered categories under {self.root}: {list(categories)}")
        return self._snapshot

    def categories(self) -> List[str]:
        return list(self.snapshot().categories)

    def slug_index(self) -> Dict[str, SlugEntry]:
        if self._slug_index is None:
            self._slug_index = build_slug_index(self.root, self.categories())
            log.debug(f"Built slug index for {self.root} with {len(self._slug_index)} entries")
        return self._slug_index

    def slugs_in_category(self, category: str) -> List[str]:
        """All slugs in one category; empty for a missing or empty directory."""
        return list_slugs(self.root / category)

    def clear_cache(self) -> None:
        self._snapshot = None
        self._slug_index = None
