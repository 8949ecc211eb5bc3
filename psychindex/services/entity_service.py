"""Entity Service - read-only queries over the entities mirror table."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from psychindex.core.logging import get_logger
from psychindex.ingestion.rules import category_to_entity_type
from psychindex.models.entity import TREATMENT_TYPES, Entity
from psychindex.schemas.api import EntityOut, EntitySchemaOut

log = get_logger("entity_service")

# schema name -> (display name, icon, color)
SCHEMA_META: Dict[str, tuple] = {
    "treatment": ("Treatment", "pill", "green"),
    "medication": ("Medication", "pill", "purple"),
    "interventional": ("Interventional", "zap", "yellow"),
    "investigational": ("Investigational", "flask-conical", "cyan"),
    "alternative": ("Alternative", "leaf", "emerald"),
    "therapy": ("Therapy", "message-circle", "orange"),
    "supplement": ("Supplement", "heart", "pink"),
    "condition": ("Condition", "brain", "blue"),
    "resource": ("Resource", "book", "slate"),
    "provider": ("Provider", "user", "gray"),
}
FALLBACK_META = ("Entity", "circle", "gray")


def entity_schema(entity_type: Optional[str], category: Optional[str] = None) -> EntitySchemaOut:
    """Display schema for a row; untyped rows fall back to their category."""
    schema_name = entity_type if entity_type in SCHEMA_META else None
    if schema_name is None and category:
        schema_name = category_to_entity_type(category)
    schema_name = schema_name or entity_type or "treatment"

    display_name, icon, color = SCHEMA_META.get(schema_name, FALLBACK_META)
    return EntitySchemaOut(
        id=f"schema-{schema_name}",
        entity_type=schema_name,
        schema_name=schema_name,
        display_name=display_name,
        icon=icon,
        color=color,
    )


def to_entity_view(entity: Entity) -> EntityOut:
    metadata: Dict[str, Any] = dict(entity.meta or {})
    schema = entity_schema(entity.type, metadata.get("category"))
    return EntityOut(
        id=str(entity.id),
        schema_id=schema.id,
        name=entity.title,
        slug=entity.slug,
        description=entity.description,
        data=dict(entity.content or {}),
        metadata=metadata,
        status=entity.status,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        schema=schema,
    )


def escape_like(value: str) -> str:
    """Make LIKE/ILIKE wildcards in user input match literally (used with ``escape="\\"``)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_search_query(query: str, entity_types: Optional[Sequence[str]] = None) -> Select:
    pattern = f"%{escape_like(query.strip())}%"
    stmt = select(Entity).where(
        Entity.status == "active",
        or_(Entity.title.ilike(pattern, escape="\\"), Entity.description.ilike(pattern, escape="\\")),
    )
    if entity_types:
        stmt = stmt.where(Entity.type.in_(list(entity_types)))
    return stmt


class EntityService:
    """Handles entity lookups - reads from DB only, active rows only."""

    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return select(Entity).where(Entity.status == "active")

    def get_by_slug(self, slug: str, entity_type: Optional[str] = None) -> Optional[Entity]:
        stmt = self._active().where(Entity.slug == slug)
        if entity_type:
            stmt = stmt.where(Entity.type == entity_type)
        return self.db.execute(stmt.order_by(Entity.title).limit(1)).scalars().first()

    def get_by_type(self, entity_type: str) -> List[Entity]:
        stmt = self._active().where(Entity.type == entity_type).order_by(Entity.title)
        return list(self.db.execute(stmt).scalars().all())

    def get_by_type_and_category(self, entity_type: str, category: str) -> List[Entity]:
        stmt = (
            self._active()
            .where(Entity.type == entity_type, Entity.meta["category"].astext == category)
            .order_by(Entity.title)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_treatments_by_category(self, category_prefix: str) -> List[Entity]:
        """Any treatment type whose category starts with the given prefix."""
        stmt = (
            self._active()
            .where(
                Entity.type.in_(TREATMENT_TYPES),
                Entity.meta["category"].astext.like(f"{escape_like(category_prefix)}%", escape="\\"),
            )
            .order_by(Entity.title)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_categories_by_type(self, entity_type: str) -> List[str]:
        category = Entity.meta["category"].astext
        stmt = (
            select(category)
            .where(Entity.status == "active", Entity.type == entity_type, category.isnot(None))
            .distinct()
            .order_by(category)
        )
        return [value for value in self.db.execute(stmt).scalars().all() if value]

    def search(
        self,
        query: str,
        entity_types: Optional[Sequence[str]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Entity], int]:
        """Title/description search over active rows; returns one page plus the filtered total."""
        stmt = build_search_query(query, entity_types)
        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar() or 0
        rows = self.db.execute(stmt.order_by(Entity.title, Entity.slug).offset(offset).limit(limit)).scalars().all()
        return list(rows), int(total)

    def search_treatments(self, query: str, limit: int = 20) -> List[Entity]:
        rows, _ = self.search(query, TREATMENT_TYPES, limit=limit)
        return rows
