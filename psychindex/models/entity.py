"""Mirror table for the JSON content tree - one generic row per document."""

import uuid

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from psychindex.models.base import Base

ENTITY_TYPES = (
    "condition",
    "medication",
    "therapy",
    "interventional",
    "investigational",
    "alternative",
    "supplement",
    "resource",
    "provider",
    "treatment",
    "unknown",
)

TREATMENT_TYPES = (
    "medication",
    "therapy",
    "interventional",
    "supplement",
    "treatment",
    "alternative",
    "investigational",
)

ENTITY_STATUSES = ("active", "draft", "archived")


class Entity(Base):
    """A normalized content record keyed naturally by (type, slug).

    Slugs are unique per type only: a condition and a medication may share one.
    `content` holds the full source document; `metadata` holds classification
    fields (category, source, type-specific extras).
    """

    __tablename__ = "entities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    content: Mapped[dict] = mapped_column(JSONB, nullable=True, server_default=text("'{}'::jsonb"))

    # "metadata" attribute name is reserved by SQLAlchemy; use column name metadata with safe attribute.
    meta: Mapped[dict] = mapped_column("metadata", JSONB, nullable=True, server_default=text("'{}'::jsonb"))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", server_default="active")

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("type", "slug", name="entities_type_slug_key"),
        Index("idx_entities_type", "type"),
        Index("idx_entities_status", "status"),
        Index("idx_entities_type_status", "type", "status"),
        Index("idx_entities_content_gin", "content", postgresql_using="gin"),
        Index("idx_entities_metadata_gin", "metadata", postgresql_using="gin"),
    )
