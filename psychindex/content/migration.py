"""Legacy articles -> curated knowledge-hub tree.

Each legacy article is mapped to a pillar/subcategory, rewritten to the
article contract and written to ``<target>/<pillar>/<subcategory>/<slug>.json``.
Articles that cannot be placed go to ``<target>/_unsorted`` untouched. A run
also records old -> new URL redirects, taxonomy lists and a Markdown report.
Files whose content is unchanged are not rewritten, so re-running is safe.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePath
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from psychindex.content.articles import (
    RESERVED_DIRS,
    find_article_files,
    read_json,
    validation_messages,
    write_json,
)
from psychindex.content.shape import parse_reading_minutes
from psychindex.core.logging import get_logger
from psychindex.schemas.article import Article, parse_iso_datetime

log = get_logger("content.migration")

LEGACY_URL_PREFIX = "/resources/articles-guides"
CANONICAL_URL_PREFIX = "/resources/knowledge-hub"
DEFAULT_AUTHOR = "Editorial Team"
SUMMARY_WORDS = 30
SEO_DESCRIPTION_LENGTH = 155
UNSORTED_DIR, TAXONOMY_DIR = "_unsorted", "_taxonomy"

_NON_SLUG = re.compile(r"[^a-z0-9]+")


class UnsortedArticle(ValueError):
    """No pillar/subcategory could be determined for an article."""


@dataclass(frozen=True)
class PillarMapping:
    pillar: str
    subcategory: str


def determine_pillar_and_subcategory(
    legacy_path: str,
    metadata: Dict[str, Any],
    topics: Sequence[str],
) -> Optional[PillarMapping]:
    """Place an article by ``metadata.article_type``, then by its legacy directory, then by slug."""
    article_type = metadata.get("article_type")
    directories = PurePath(legacy_path).parts[:-1]
    slug = PurePath(legacy_path).stem

    if article_type == "research" or "research" in directories:
        return PillarMapping("research-and-science", "psychology")
    if article_type == "lived-experience" or "lived-experience" in directories:
        return PillarMapping("community-and-stories", "personal-stories")
    if article_type == "latest" or "latest" in directories:
        return PillarMapping("research-and-science", "mental-health-trends")
    if article_type == "how-to" or "how-to" in directories:
        if "insurance" in slug or any("insurance" in t for t in topics):
            return PillarMapping("how-to-guides", "insurance")
        if "therapist" in slug or "therapy" in slug or any("therapy" in t for t in topics):
            return PillarMapping("how-to-guides", "therapy-access")
        return PillarMapping("how-to-guides", "health-systems")

    # Root-level guides
    if slug in ("finding-a-therapist", "understanding-therapy-types"):
        return PillarMapping("how-to-guides", "therapy-access")
    if slug == "insurance-navigation":
        return PillarMapping("how-to-guides", "insurance")
    return None


def normalize_slug(value: Any) -> str:
    return _NON_SLUG.sub("-", str(value).lower()).strip("-")


def generate_summary(content: Any, description: Optional[str] = None, summary: Optional[str] = None) -> str:
    """Existing summary, then description, then the first 30 words of the legacy text."""
    if summary:
        return summary
    if description:
        return description

    legacy = content if isinstance(content, dict) else {}
    sections = legacy.get("sections") if isinstance(legacy.get("sections"), list) else []
    first = sections[0] if sections and isinstance(sections[0], dict) else {}
    intro = legacy.get("introduction") or first.get("text") or first.get("content") or ""
    words = " ".join(str(intro).split()[:SUMMARY_WORDS])
    return f"{words}..." if words else "No summary available"


def convert_content_to_blocks(content: Any, sections: Any) -> List[Dict[str, Any]]:
    """Article body blocks from blog-style ``content.sections`` or guide-style ``sections``."""
    legacy = content if isinstance(content, dict) else {}
    blocks: List[Dict[str, Any]] = []

    if legacy.get("introduction"):
        blocks.append({"type": "p", "text": legacy["introduction"]})

    if isinstance(legacy.get("sections"), list):
        for section in legacy["sections"]:
            if not isinstance(section, dict):
                continue
            if section.get("heading"):
                blocks.append({"type": "h2", "text": section["heading"]})
            if isinstance(section.get("content"), str):
                blocks.extend({"type": "p", "text": p.strip()} for p in section["content"].split("\n\n") if p.strip())
    elif isinstance(sections, list):
        for section in sections:
            if not isinstance(section, dict):
                continue
            if section.get("title"):
                blocks.append({"type": "h2", "text": section["title"]})
            if section.get("text"):
                blocks.append({"type": "p", "text": section["text"]})

    if legacy.get("conclusion"):
        blocks.append({"type": "p", "text": legacy["conclusion"]})

    return blocks or [{"type": "p", "text": "Content unavailable"}]


def to_iso_timestamp(value: Any) -> str:
    """UTC ISO timestamp with millisecond precision and a ``Z`` suffix."""
    moment = value if isinstance(value, datetime) else parse_iso_datetime(str(value))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def transform_article(raw: Dict[str, Any], file_path: Path, now: datetime) -> Tuple[Dict[str, Any], List[str]]:
    """Rewrite a legacy article into the article contract.

    Returns the article and the names of the field edits applied. Raises
    UnsortedArticle when no pillar can be determined and ValueError for an
    unparseable ``published_date``.
    """
    metadata = raw.get("metadata") if isinstance(raw.get("metadata"), dict) else {}
    topics = [str(t) for t in (metadata.get("topics") or raw.get("topics") or [])]

    mapping = determine_pillar_and_subcategory(str(file_path), metadata, topics)
    if mapping is None:
        raise UnsortedArticle("Unable to determine pillar/subcategory")

    slug = normalize_slug(raw.get("slug") or PurePath(file_path).stem)
    title = raw.get("name") or raw.get("title") or "Untitled"
    summary = generate_summary(raw.get("content"), raw.get("description"), raw.get("summary"))
    author = raw.get("author") or DEFAULT_AUTHOR
    seo = raw.get("seo") if isinstance(raw.get("seo"), dict) else {}
    fmt = raw.get("format")
    audience = raw.get("audience")
    if isinstance(raw.get("target_populations"), list):
        audience = [normalize_slug(a) for a in raw["target_populations"]]

    article: Dict[str, Any] = {
        "title": title,
        "slug": slug,
        "pillar": mapping.pillar,
        "subcategory": mapping.subcategory,
        "summary": summary,
        "coverImage": raw.get("coverImage") or raw.get("cover_image"),
        "authors": list(author) if isinstance(author, list) else [author],
        "publishedAt": to_iso_timestamp(metadata["published_date"]) if metadata.get("published_date") else to_iso_timestamp(now),
        "readingMinutes": parse_reading_minutes(metadata.get("read_time") or raw.get("reading_time")),
        "tags": [normalize_slug(t) for t in topics],
        "audience": audience,
        "format": "article" if fmt == "guide" else (fmt or "article"),
        "seo": {
            "title": seo.get("title") or f"{title} | Knowledge Hub",
            "description": seo.get("description") or summary[:SEO_DESCRIPTION_LENGTH],
            "canonical": f"{CANONICAL_URL_PREFIX}/{mapping.pillar}/{mapping.subcategory}/{slug}",
        },
        "body": convert_content_to_blocks(raw.get("content"), raw.get("sections")),
    }
    article = {key: value for key, value in article.items() if value is not None}

    edits = []
    if not raw.get("authors"):
        edits.append("author->authors")
    if not raw.get("publishedAt"):
        edits.append("add publishedAt")
    if not raw.get("summary"):
        edits.append("generate summary")
    if not raw.get("seo"):
        edits.append("add seo")
    if isinstance(raw.get("content"), dict) and raw["content"].get("sections"):
        edits.append("convert content->body")
    return article, edits


def write_if_changed(path: Path, content: Any) -> bool:
    """Write JSON unless the file already holds equal content. Returns True when written."""
    path = Path(path)
    if path.is_file():
        try:
            if read_json(path) == content:
                return False
        except (OSError, ValueError):
            pass
    write_json(path, content)
    return True


# -----------------------------------------------------------------------------
# Migration run
# -----------------------------------------------------------------------------


@dataclass
class MigrationStats:
    total: int = 0
    migrated: int = 0
    unsorted: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    field_edits: Counter = field(default_factory=Counter)
    redirects: Dict[str, str] = field(default_factory=dict)
    unsorted_items: List[Dict[str, str]] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0


class ArticleMigrator:
    """Migrates one legacy article tree into the curated knowledge-hub tree."""

    def __init__(self, source_dir: Path, target_dir: Path, dry_run: bool = False, now: Optional[datetime] = None):
        self.source_dir = Path(source_dir)
        self.target_dir = Path(target_dir)
        self.dry_run = dry_run
        self.now = now or datetime.now(timezone.utc)
        self.stats = MigrationStats()

    def run(self) -> MigrationStats:
        files = find_article_files(self.source_dir, skip=())
        log.info(f"Found {len(files)} article files in {self.source_dir} (dry_run={self.dry_run})")
        for path in files:
            self.migrate_file(path)
        if not self.dry_run:
            self.write_taxonomy()
        return self.stats

    def legacy_url(self, path: Path) -> str:
        relative = path.relative_to(self.source_dir).with_suffix("").as_posix()
        return f"{LEGACY_URL_PREFIX}/{relative}"

    def migrate_file(self, path: Path) -> None:
        self.stats.total += 1
        try:
            raw = read_json(path)
            if not isinstance(raw, dict):
                raise ValueError("top-level JSON value is not an object")
            article, edits = transform_article(raw, path.relative_to(self.source_dir), self.now)
        except UnsortedArticle as exc:
            self._park_unsorted(path, raw, str(exc))
            return
        except (OSError, ValueError) as exc:
            self.stats.errors.append(f"{path}: {exc}")
            return

        try:
            Article.model_validate(article)
        except ValidationError as exc:
            self.stats.errors.append(f"{path}: Validation failed - {'; '.join(validation_messages(exc))}")
            return

        self.stats.field_edits.update(edits)
        target = self.target_dir / article["pillar"] / article.get("subcategory", "") / f"{article['slug']}.json"
        old_url, new_url = self.legacy_url(path), article["seo"]["canonical"]

        if self.dry_run:
            log.info(f"[DRY RUN] {path.name}: {old_url} -> {new_url} ({article['pillar']}/{article.get('subcategory')})")
        elif write_if_changed(target, article):
            log.info(f"Migrated {path.name} -> {target}")
        else:
            log.info(f"Skipped (unchanged): {path.name}")

        self.stats.redirects[old_url] = new_url
        self.stats.migrated += 1

    def _park_unsorted(self, path: Path, raw: Dict[str, Any], reason: str) -> None:
        self.stats.unsorted += 1
        self.stats.unsorted_items.append(
            {"file": path.name, "reason": reason, "suggested": "Review content and assign manually"}
        )
        if not self.dry_run:
            write_if_changed(self.target_dir / UNSORTED_DIR / path.name, raw)
            log.warning(f"Moved to {UNSORTED_DIR}: {path.name}")

    def migrated_articles(self) -> List[Dict[str, Any]]:
        articles = []
        for path in find_article_files(self.target_dir, skip=RESERVED_DIRS):
            try:
                data = read_json(path)
            except (OSError, ValueError) as exc:
                self.stats.warnings.append(f"{path}: {exc}")
                continue
            if isinstance(data, dict):
                articles.append(data)
        return articles

    def write_taxonomy(self) -> Dict[str, List[Dict[str, str]]]:
        """Sorted unique topics, audiences, formats and authors across the whole target tree."""
        values: Dict[str, set] = {"topics": set(), "audiences": set(), "formats": set(), "authors": set()}
        for article in self.migrated_articles():
            values["topics"].update(article.get("tags") or [])
            values["audiences"].update(article.get("audience") or [])
            if article.get("format"):
                values["formats"].add(article["format"])
            values["authors"].update(article.get("authors") or [])

        taxonomy = {name: [{"slug": v, "name": v} for v in sorted(found)] for name, found in values.items()}
        for name, entries in taxonomy.items():
            write_json(self.target_dir / TAXONOMY_DIR / f"{name}.json", entries)
        log.info(f"Generated taxonomy ({len(taxonomy['topics'])} topics, {len(taxonomy['authors'])} authors)")
        return taxonomy


def build_report(stats: MigrationStats, generated_at: datetime) -> str:
    lines = [
        "# Knowledge Hub Migration Report",
        "",
        f"**Date:** {to_iso_timestamp(generated_at)}",
        "",
        "## Summary",
        "",
        f"- Total articles processed: {stats.total}",
        f"- Successfully migrated: {stats.migrated}",
        f"- Moved to {UNSORTED_DIR}: {stats.unsorted}",
        f"- Errors: {len(stats.errors)}",
        f"- Warnings: {len(stats.warnings)}",
        "",
        "## Field Transformations",
        "",
    ]
    lines.extend(f"- {name}: {count} files" for name, count in sorted(stats.field_edits.items()))
    lines.append("")

    if stats.unsorted_items:
        lines.extend(["## Unsorted Items (Manual Review Required)", ""])
        for item in stats.unsorted_items:
            lines.extend([f"- **{item['file']}**", f"  - Reason: {item['reason']}", f"  - Suggested: {item['suggested']}", ""])
    if stats.errors:
        lines.extend(["## Errors", ""])
        lines.extend(f"- {err}" for err in stats.errors)
        lines.append("")
    if stats.warnings:
        lines.extend(["## Warnings", ""])
        lines.extend(f"- {warn}" for warn in stats.warnings)
        lines.append("")
    return "\n".join(lines)
