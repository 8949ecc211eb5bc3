"""Shared fixtures: throwaway content trees and an in-memory entity store."""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Set, Tuple

import pytest

from psychindex.services.entity_store import UpsertOutcome


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def medication(slug: str, **extra: Any) -> Dict[str, Any]:
    doc = {"slug": slug, "name": slug.replace("-", " ").title(), "description": f"About {slug}"}
    doc.update(extra)
    return doc


def crisis_helpline(slug: str, **extra: Any) -> Dict[str, Any]:
    doc = {
        "kind": "resource",
        "slug": slug,
        "name": slug.replace("-", " ").title(),
        "phone": "988",
        "metadata": {"category": "crisis-helplines"},
    }
    doc.update(extra)
    return doc


def article(slug: str = "coping-with-panic", **extra: Any) -> Dict[str, Any]:
    doc = {
        "title": "Coping With Panic",
        "slug": slug,
        "pillar": "how-to-guides",
        "subcategory": "therapy-access",
        "summary": "Grounding techniques for panic attacks.",
        "authors": ["Editorial Team"],
        "publishedAt": "2024-03-01T00:00:00.000Z",
        "body": [{"type": "h2", "text": "Breathing"}, {"type": "p", "text": "Slow down."}],
    }
    doc.update(extra)
    return doc


def legacy_article(slug: str, article_type: str = "research", **extra: Any) -> Dict[str, Any]:
    doc = {
        "slug": slug,
        "name": slug.replace("-", " ").title(),
        "description": f"About {slug}",
        "author": "Dr. Lee",
        "metadata": {"article_type": article_type, "topics": ["Anxiety", "Sleep"], "read_time": "6 min read"},
        "content": {
            "introduction": "Why this matters.",
            "sections": [{"heading": "Findings", "content": "First point.\n\nSecond point."}],
        },
    }
    doc.update(extra)
    return doc


class InMemoryEntityStore:
    """EntityStore double keyed by (type, slug), last write wins."""

    def __init__(self, fail_on_slugs: Set[str] = frozenset()):
        self.rows: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[List[Dict[str, Any]]] = []
        self.fail_on_slugs = set(fail_on_slugs)

    async def upsert_entities(self, rows: List[Dict[str, Any]]) -> UpsertOutcome:
        self.calls.append(list(rows))
        if any(row["slug"] in self.fail_on_slugs for row in rows):
            raise RuntimeError("connection reset by peer")

        outcome = UpsertOutcome()
        for row in rows:
            key = (row["type"], row["slug"])
            if key in self.rows:
                outcome.updated += 1
            else:
                outcome.created += 1
            self.rows[key] = copy.deepcopy(row)
        return outcome


@pytest.fixture
def data_dir(tmp_path) -> Path:
    """A small content repository.

    data/
      treatments/medications/{sertraline,Escitalopram-Lexapro}.json
      treatments/therapy/cbt.json
      treatments/empty-category/          (no files)
      conditions/anxiety-fear/generalized-anxiety-disorder.json
      resources/crisis-helplines/988-lifeline.json
      resources/articles-blogs/coping-with-panic.json
    """
    root = tmp_path / "data"
    write_json(root / "treatments" / "medications" / "sertraline.json", medication("sertraline", brand_names=["Zoloft"]))
    write_json(root / "treatments" / "medications" / "Escitalopram-Lexapro.json", medication("escitalopram-lexapro"))
    write_json(root / "treatments" / "therapy" / "cbt.json", medication("cbt", name="Cognitive Behavioral Therapy"))
    (root / "treatments" / "empty-category").mkdir(parents=True)
    write_json(
        root / "conditions" / "anxiety-fear" / "generalized-anxiety-disorder.json",
        {
            "slug": "generalized-anxiety-disorder",
            "name": "Generalized Anxiety Disorder",
            "dsm5_code": "300.02",
            "icd10_code": "F41.1",
        },
    )
    write_json(root / "resources" / "crisis-helplines" / "988-lifeline.json", crisis_helpline("988-lifeline"))
    write_json(
        root / "resources" / "articles-blogs" / "coping-with-panic.json",
        {
            "slug": "coping-with-panic",
            "title": "Coping **with** Panic",
            "author": "Dr. Someone",
            "metadata": {"category": "articles-blogs", "article_type": "how-to", "read_time": "6 min read"},
            "content": {"introduction": "Panic passes.", "sections": [{"heading": "Breathe", "content": "Slowly.\n\nAgain."}]},
        },
    )
    return root


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()
