"""Write side of the mirror store - idempotent upserts keyed on (type, slug)."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Protocol

from sqlalchemy import func, literal_column
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.orm import Session

from psychindex.core.logging import get_logger
from psychindex.models.entity import Entity

log = get_logger("entity_store")

# Every non-key column is overwritten on conflict; id and created_at survive.
UPSERT_COLUMNS = ("title", "description", "content", "metadata", "status")


@dataclass
class UpsertOutcome:
    created: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated


class EntityStore(Protocol):
    async def upsert_entities(self, rows: List[Dict[str, Any]]) -> UpsertOutcome:
        """Insert-or-overwrite rows keyed on (type, slug)."""


def build_upsert_statement(rows: List[Dict[str, Any]]) -> Insert:
    """``INSERT ... ON CONFLICT (type, slug) DO UPDATE`` for a batch of entity rows."""
    table = Entity.__table__
    stmt = insert(table).values(rows)
    set_ = {name: stmt.excluded[name] for name in UPSERT_COLUMNS}
    set_["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.type, table.c.slug],
        set_=set_,
    )
    # xmax is 0 only for freshly inserted tuples
    return stmt.returning(table.c.id, literal_column("(xmax = 0)").label("inserted"))


class SqlEntityStore:
    """PostgreSQL-backed store; each batch runs in a worker thread with its own session."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _upsert_sync(self, rows: List[Dict[str, Any]]) -> UpsertOutcome:
        stmt = build_upsert_statement(rows)
        with self.session_factory() as db:
            try:
                results = db.execute(stmt).all()
                db.commit()
            except Exception:
                db.rollback()
                raise

        created = sum(1 for row in results if row.inserted)
        return UpsertOutcome(created=created, updated=len(results) - created)

    async def upsert_entities(self, rows: List[Dict[str, Any]]) -> UpsertOutcome:
        if not rows:
            return UpsertOutcome()
        outcome = await asyncio.to_thread(self._upsert_sync, rows)
        log.debug(f"Upserted {len(rows)} entities (created={outcome.created} updated={outcome.updated})")
        return outcome
