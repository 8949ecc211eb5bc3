"""Knowledge-hub article contract.

This is the file format of the curated ``content/knowledge-hub`` area. It is
stricter than ``KnowledgeHubResource``: kebab-case slug, at least one author,
an ISO ``publishedAt`` and a typed ``body``. Unknown keys are ignored.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from psychindex.schemas.resource import KnowledgeHubPillar, Number

ArticleFormat = Literal["article", "video", "podcast", "infographic"]


class H2Block(BaseModel):
    type: Literal["h2"]
    text: str


class ParagraphBlock(BaseModel):
    type: Literal["p"]
    text: str


class ListBlock(BaseModel):
    type: Literal["list"]
    items: List[str]


class RelatedBlock(BaseModel):
    type: Literal["related"]
    slugs: List[str]


ContentBlock = Annotated[Union[H2Block, ParagraphBlock, ListBlock, RelatedBlock], Field(discriminator="type")]


class ArticleSeo(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    canonical: Optional[str] = None


def parse_iso_datetime(value: str) -> datetime:
    """ISO 8601 date or datetime; a trailing ``Z`` is accepted."""
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


class Article(BaseModel):
    title: str = Field(min_length=1)
    slug: str = Field(pattern=r"^[a-z0-9-]+$")
    pillar: KnowledgeHubPillar
    subcategory: Optional[str] = None
    summary: str = Field(min_length=1)
    coverImage: Optional[str] = None
    authors: List[str] = Field(min_length=1)
    publishedAt: str
    updatedAt: Optional[str] = None
    readingMinutes: Optional[Number] = None
    tags: Optional[List[str]] = None
    audience: Optional[List[str]] = None
    format: Optional[ArticleFormat] = None
    seo: Optional[ArticleSeo] = None
    body: List[ContentBlock]
    schemaOrg: Optional[Dict[str, Any]] = None

    @field_validator("publishedAt")
    @classmethod
    def published_at_is_iso(cls, value: str) -> str:
        try:
            parse_iso_datetime(value)
        except ValueError:
            raise ValueError("Invalid ISO date string") from None
        return value
