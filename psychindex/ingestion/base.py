"""Abstract source interface for content ingestion."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List


@dataclass
class SourceDocument:
    path: Path
    payload: Any


@dataclass
class SourceError:
    path: Path
    error: str


@dataclass
class FetchResult:
    documents: List[SourceDocument] = field(default_factory=list)
    errors: List[SourceError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.documents) + len(self.errors)


class BaseSource(ABC):
    """Abstract base class for content sources."""

    name: str

    @abstractmethod
    async def fetch(self) -> FetchResult:
        """Read every document (parse failures go to ``errors``, never raise)."""

