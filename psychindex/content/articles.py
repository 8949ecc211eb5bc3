"""Knowledge-hub article files on disk: discovery, validation and anonymization."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import ValidationError

from psychindex.content.shape import map_strings
from psychindex.core.logging import get_logger
from psychindex.schemas.article import Article

log = get_logger("content.articles")

# Generated by the migration, never articles themselves
RESERVED_DIRS = ("_taxonomy", "_unsorted")

ANONYMOUS_AUTHOR = "Anonymous"
PERSONAL_FIELDS = ("author_bio", "image_url")


def find_article_files(root: Path, skip: Iterable[str] = RESERVED_DIRS) -> List[Path]:
    """Every ``*.json`` below ``root``, sorted; a missing root yields nothing."""
    root = Path(root)
    if not root.is_dir():
        log.warning(f"Article directory not found: {root}")
        return []

    skipped = set(skip)
    files: List[Path] = []
    stack = [root]
    while stack:
        directory = stack.pop()
        for entry in sorted(directory.iterdir()):
            if entry.name in skipped:
                continue
            if entry.is_dir():
                stack.append(entry)
            elif entry.is_file() and entry.suffix == ".json":
                files.append(entry)
    return sorted(files)


def read_json(path: Path) -> Any:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def validation_messages(exc: ValidationError) -> List[str]:
    return [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors(include_url=False)]


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


@dataclass
class ArticleCheck:
    path: Path
    errors: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class ValidationSummary:
    checks: List[ArticleCheck] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.checks)

    @property
    def invalid(self) -> int:
        return sum(1 for c in self.checks if not c.valid)

    @property
    def valid(self) -> int:
        return self.total - self.invalid


def check_article_file(path: Path) -> ArticleCheck:
    """Parse one file and validate it against the article contract."""
    try:
        data = read_json(path)
    except (OSError, ValueError) as exc:
        return ArticleCheck(path=path, errors=[f"Parse error: {exc}"])

    try:
        Article.model_validate(data)
    except ValidationError as exc:
        return ArticleCheck(path=path, errors=validation_messages(exc))
    return ArticleCheck(path=path)


def validate_article_tree(root: Path) -> ValidationSummary:
    summary = ValidationSummary()
    for path in find_article_files(root):
        check = check_article_file(path)
        if not check.valid:
            log.debug(f"Invalid article {path}: {check.errors}")
        summary.checks.append(check)
    return summary


# -----------------------------------------------------------------------------
# Anonymization
# -----------------------------------------------------------------------------


def strip_bold(value: Any) -> Any:
    """Remove markdown ``**`` markers from every nested string."""
    return map_strings(value, lambda text: text.replace("**", ""))


def anonymize_article(article: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Anonymous author, no personal fields, no bold markers. Returns the new document and what changed."""
    doc = dict(article)
    changes: List[str] = []

    if doc.get("author") and doc["author"] != ANONYMOUS_AUTHOR:
        changes.append(f"Anonymized author: {doc['author']}")
        doc["author"] = ANONYMOUS_AUTHOR

    for name in PERSONAL_FIELDS:
        if doc.get(name):
            changes.append(f"Removed {name}")
        doc.pop(name, None)

    return strip_bold(doc), changes


@dataclass
class AnonymizeResult:
    path: Path
    changes: List[str] = field(default_factory=list)
    error: str | None = None


def anonymize_file(path: Path, dry_run: bool = False) -> AnonymizeResult:
    """Rewrite one article in place; read and parse failures are returned, not raised."""
    try:
        article = read_json(path)
    except (OSError, ValueError) as exc:
        return AnonymizeResult(path=path, error=str(exc))
    if not isinstance(article, dict):
        return AnonymizeResult(path=path, error="top-level JSON value is not an object")

    cleaned, changes = anonymize_article(article)
    if not dry_run:
        write_json(path, cleaned)
    return AnonymizeResult(path=path, changes=changes)
