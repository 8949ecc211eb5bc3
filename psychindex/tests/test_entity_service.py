"""Entity view shaping tests"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

from sqlalchemy.dialects import postgresql

from psychindex.models.entity import Entity
from psychindex.services.entity_service import (
    EntityService,
    build_search_query,
    entity_schema,
    escape_like,
    to_entity_view,
)


class TestEntitySchema:
    """Test the display schema table"""

    def test_known_type(self):
        schema = entity_schema("medication")
        assert (schema.display_name, schema.icon, schema.color) == ("Medication", "pill", "purple")
        assert schema.id == "schema-medication"

    def test_category_fallback(self):
        assert entity_schema("unknown", "supplements").entity_type == "supplement"
        assert entity_schema(None, "lifestyle").entity_type == "treatment"

    def test_unmapped_type(self):
        schema = entity_schema("unknown")
        assert schema.display_name == "Entity"


class TestEntityView:
    def test_view_from_row(self):
        entity = Entity(
            id=uuid.UUID("00000000-0000-0000-0000-000000000001"),
            type="condition",
            slug="gad",
            title="Generalized Anxiety Disorder",
            description="Worry",
            content={"slug": "gad"},
            meta={"category": "anxiety-fear"},
            status="active",
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            updated_at=datetime(2026, 1, 2, tzinfo=timezone.utc),
        )
        view = to_entity_view(entity)
        dumped = view.model_dump(by_alias=True)

        assert dumped["name"] == "Generalized Anxiety Disorder"
        assert dumped["data"] == {"slug": "gad"}
        assert dumped["metadata"] == {"category": "anxiety-fear"}
        assert dumped["schema"]["icon"] == "brain"
        assert dumped["schema_id"] == "schema-condition"


class RecordingSession:
    """Session double returning a fixed total and page, recording every statement."""

    def __init__(self, total, rows):
        self.total = total
        self.rows = rows
        self.statements = []

    def execute(self, stmt):
        self.statements.append(stmt)
        return SimpleNamespace(scalar=lambda: self.total, scalars=lambda: SimpleNamespace(all=lambda: self.rows))


def compiled(stmt):
    return stmt.compile(dialect=postgresql.dialect())


class TestSearch:
    """Test cross-type entity search"""

    def test_escape_like(self):
        assert escape_like("100%_club") == "100\\%\\_club"
        assert escape_like("a\\b") == "a\\\\b"
        assert escape_like("sertraline") == "sertraline"

    def test_wildcards_match_literally(self):
        query = compiled(build_search_query("  50% off_ "))
        assert "%50\\% off\\_%" in query.params.values()
        assert str(query).count("ESCAPE") == 2

    def test_type_filter(self):
        sql = str(compiled(build_search_query("calm", ["medication", "therapy"])))
        assert "entities.type IN" in sql
        assert "entities.status" in sql
        assert "entities.type IN" not in str(compiled(build_search_query("calm")))

    def test_page_and_total(self):
        rows = [object(), object()]
        session = RecordingSession(total=7, rows=rows)

        found, total = EntityService(session).search("an", ["condition"], limit=2, offset=4)

        assert (found, total) == (rows, 7)
        count_sql, page_sql = (str(compiled(s)) for s in session.statements)
        assert count_sql.startswith("SELECT count(*)")
        assert "ORDER BY entities.title, entities.slug" in page_sql
        assert "LIMIT" in page_sql and "OFFSET" in page_sql

    def test_treatment_search_is_restricted_to_treatment_types(self):
        session = RecordingSession(total=0, rows=[])
        EntityService(session).search_treatments("ssri", limit=5)
        page = compiled(session.statements[1])
        assert "entities.type IN" in str(page)
        assert 5 in page.params.values()

    def test_category_prefix_is_escaped(self):
        session = RecordingSession(total=0, rows=[])
        EntityService(session).get_treatments_by_category("anti_")
        query = compiled(session.statements[-1])
        assert "anti\\_%" in query.params.values()
        assert "ESCAPE" in str(query)
