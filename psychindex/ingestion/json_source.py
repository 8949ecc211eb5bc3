"""JSON content-tree source: every ``*.json`` file below one directory."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

from psychindex.core.logging import get_logger
from .base import BaseSource, FetchResult, SourceDocument, SourceError

log = get_logger("ingestion.json")


class JsonTreeSource(BaseSource):
    """Recursively reads a directory of JSON documents (e.g. ``data/treatments``)."""

    def __init__(self, name: str, directory: Path):
        self.name = name
        self.directory = Path(directory)

    def list_files(self) -> List[Path]:
        if not self.directory.is_dir():
            log.warning(f"Directory not found: {self.directory}")
            return []
        return sorted(p for p in self.directory.rglob("*.json") if p.is_file())

    async def fetch(self) -> FetchResult:
        result = FetchResult()
        for path in self.list_files():
            try:
                with path.open("r", encoding="utf-8") as f:
                    payload = json.load(f)
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
                log.warning(f"Failed to parse {path}: {exc}")
                result.errors.append(SourceError(path=path, error=f"Invalid JSON: {exc}"))
                continue
            result.documents.append(SourceDocument(path=path, payload=payload))

        log.info(f"Source={self.name} documents={len(result.documents)} parse_errors={len(result.errors)}")
        return result
