"""Path-based classification of content files.

Entity types come from an ordered list of ``(path fragment, type)`` rules;
the first fragment contained in the file's posix path wins.
"""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import Any, Optional, Sequence, Tuple

TypeRule = Tuple[str, str]

TYPE_RULES: Sequence[TypeRule] = (
    ("/treatments/medications/", "medication"),
    ("/treatments/therapy/", "therapy"),
    ("/treatments/interventional/", "interventional"),
    ("/treatments/investigational/", "investigational"),
    ("/treatments/alternative/", "alternative"),
    ("/treatments/supplements/", "supplement"),
    ("/treatments/", "treatment"),
    ("/conditions/", "condition"),
    ("/resources/", "resource"),
)

UNKNOWN_TYPE = "unknown"

# Treatment category directory -> entity type, for documents served straight from disk
CATEGORY_ENTITY_TYPES = {
    "medications": "medication",
    "interventional": "interventional",
    "investigational": "investigational",
    "alternative": "alternative",
    "therapy": "therapy",
    "supplements": "supplement",
}


def infer_type_from_path(path: PurePath | str, rules: Sequence[TypeRule] = TYPE_RULES) -> str:
    posix = "/" + PurePath(path).as_posix().lstrip("/")
    for fragment, entity_type in rules:
        if fragment in posix:
            return entity_type
    return UNKNOWN_TYPE


def determine_entity_type(path: PurePath | str, content: Any, rules: Sequence[TypeRule] = TYPE_RULES) -> str:
    """Explicit ``type`` in the document wins; otherwise infer from the path."""
    if isinstance(content, dict) and isinstance(content.get("type"), str) and content["type"]:
        return content["type"]
    return infer_type_from_path(path, rules)


def extract_category(path: Path, data_dir: Path) -> Optional[str]:
    """Directory segment after the top-level type directory.

    ``data/conditions/anxiety-fear/gad.json`` -> ``anxiety-fear``. Files that
    sit directly in the type directory have no category.
    """
    try:
        parts = Path(path).resolve().relative_to(Path(data_dir).resolve()).parts
    except ValueError:
        return None
    if len(parts) < 3:
        return None
    return parts[1]


def category_to_entity_type(category: str) -> str:
    return CATEGORY_ENTITY_TYPES.get(category, "treatment")
