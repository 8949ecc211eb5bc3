"""API endpoint tests"""

import asyncio
import json
import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from psychindex.api.deps import (
    get_condition_loader,
    get_db,
    get_entity_service,
    get_provider_service,
    get_resource_index,
    get_resource_loader,
    get_treatment_loader,
)
from psychindex.api.routes.sync import build_sync_service
from psychindex.schemas import api as api_schemas
from psychindex.content.discovery import CategoryCatalog
from psychindex.content.loaders import condition_loader, resource_loader, treatment_loader
from psychindex.main import app
from psychindex.models.entity import Entity
from psychindex.services.provider_service import ProviderSearchService
from psychindex.services.resource_index import ResourceIndex
from psychindex.services.sync_service import ContentSyncService
from psychindex.tests.conftest import crisis_helpline, write_json


class StubProviderService(ProviderSearchService):
    def __init__(self, fetch, timeout=1.0):
        super().__init__(db=None, timeout=timeout)
        self.fetch = fetch

    async def _fetch(self, query):
        return await self.fetch()


class StubEntityService:
    def __init__(self, entities):
        self.entities = entities

    def get_by_type(self, entity_type):
        return [e for e in self.entities if e.type == entity_type]

    def get_by_type_and_category(self, entity_type, category):
        return [e for e in self.get_by_type(entity_type) if e.meta.get("category") == category]

    def get_categories_by_type(self, entity_type):
        return sorted({e.meta["category"] for e in self.get_by_type(entity_type)})

    def get_by_slug(self, slug, entity_type=None):
        return next((e for e in self.get_by_type(entity_type) if e.slug == slug), None)

    def search(self, q, entity_types=None, limit=50, offset=0):
        if q == "boom":
            raise RuntimeError("relation does not exist")
        hits = [e for e in self.entities if q.lower() in e.title.lower() and (not entity_types or e.type in entity_types)]
        return hits[offset : offset + limit], len(hits)

    def search_treatments(self, q, limit=20):
        return [e for e in self.entities if q.lower() in e.title.lower()][:limit]

    def get_treatments_by_category(self, prefix):
        return [e for e in self.entities if e.meta.get("category", "").startswith(prefix)]


class FakeResult:
    def scalar_one_or_none(self):
        return SimpleNamespace(status="success")


class FakeSession:
    def __init__(self, healthy=True):
        self.healthy = healthy

    def execute(self, stmt):
        if not self.healthy:
            raise RuntimeError("could not connect to server")
        return FakeResult()


def entity(entity_type, slug, category):
    return Entity(
        id=uuid.uuid4(),
        type=entity_type,
        slug=slug,
        title=slug.replace("-", " ").title(),
        description=None,
        content={"slug": slug},
        meta={"category": category},
        status="active",
    )


class TestAPI:
    """Test API endpoints"""

    @pytest.fixture
    def client(self, data_dir, tmp_path):
        """Create test client over a throwaway content tree"""
        hub = tmp_path / "content" / "knowledge-hub"
        index_path = tmp_path / "resources-index.json"
        index_path.write_text(json.dumps({"resources": [{"slug": "988-lifeline", "metadata": {"category": "crisis-helplines"}}]}))

        app.dependency_overrides[get_treatment_loader] = lambda: treatment_loader(CategoryCatalog(data_dir / "treatments"))
        app.dependency_overrides[get_condition_loader] = lambda: condition_loader(CategoryCatalog(data_dir / "conditions"))
        app.dependency_overrides[get_resource_loader] = lambda: resource_loader(CategoryCatalog(data_dir / "resources"), hub)
        app.dependency_overrides[get_resource_index] = lambda: ResourceIndex(index_path)
        app.dependency_overrides[get_db] = lambda: FakeSession()
        app.dependency_overrides[build_sync_service] = lambda: ContentSyncService(None, data_dir)
        app.dependency_overrides[get_entity_service] = lambda: StubEntityService(
            [entity("condition", "gad", "anxiety-fear"), entity("medication", "sertraline", "medications")]
        )
        yield TestClient(app)
        app.dependency_overrides.clear()

    # -------------------------------------------------------------------------
    # Treatments
    # -------------------------------------------------------------------------

    def test_treatment_envelope(self, client):
        response = client.get("/api/treatments/sertraline")
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == "json-sertraline"
        assert body["name"] == "Sertraline"
        assert body["content"] == body["data"]
        assert body["metadata"]["file_category"] == "medications"
        assert body["metadata"]["source"] == "json-file"
        assert body["schema"] == {"schema_name": "medications", "display_name": "Medications", "entity_type": "medication"}

    def test_treatment_case_insensitive(self, client):
        response = client.get("/api/treatments/escitalopram-lexapro")
        assert response.status_code == 200
        assert response.json()["slug"] == "escitalopram-lexapro"

    def test_treatment_schema_from_category(self, client):
        assert client.get("/api/treatments/cbt").json()["schema"]["entity_type"] == "therapy"

    def test_treatment_not_found(self, client):
        response = client.get("/api/treatments/unknown-drug")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Treatment 'unknown-drug' not found"
        assert body["available_categories"] == ["empty-category", "medications", "therapy"]
        assert "medications" in body["suggestion"]

    def test_treatment_options(self, client):
        response = client.options("/api/treatments/anything")
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "GET, OPTIONS"
        body = response.json()
        assert body["category_count"] == 3
        assert "discovered_at" in body

    def test_treatment_category_listing(self, client):
        assert client.get("/api/treatments/category/medications").json() == {
            "category": "medications",
            "slugs": ["Escitalopram-Lexapro", "sertraline"],
        }
        assert client.get("/api/treatments/category/empty-category").json()["slugs"] == []

    def test_loader_failure_is_opaque_500(self, client):
        class Exploding:
            def load_by_slug(self, slug):
                raise OSError("disk on fire")

        app.dependency_overrides[get_treatment_loader] = lambda: Exploding()
        response = client.get("/api/treatments/sertraline")
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal server error"
        assert body["slug"] == "sertraline"
        assert "timestamp" in body

    # -------------------------------------------------------------------------
    # Conditions
    # -------------------------------------------------------------------------

    def test_condition_envelope(self, client):
        body = client.get("/api/conditions/generalized-anxiety-disorder").json()
        assert body["type"] == "condition"
        assert body["metadata"]["category"] == "anxiety-fear"
        assert body["schema"]["entity_type"] == "condition"

    def test_condition_not_found(self, client):
        response = client.get("/api/conditions/nope")
        assert response.status_code == 404
        assert response.json()["available_categories"] == ["anxiety-fear"]

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def test_resource_normalized(self, client):
        body = client.get("/api/resources/988-lifeline").json()
        assert body["kind"] == "resource"
        assert body["metadata"]["category"] == "crisis-helplines"
        assert body["phone"] == "988"

    def test_legacy_article_upgraded(self, client):
        body = client.get("/api/resources/coping-with-panic").json()
        assert body["metadata"]["category"] == "knowledge-hub"
        assert body["name"] == "Coping with Panic"
        assert body["author"] == "anonymous"
        assert body["authors"] == ["anonymous"]
        assert body["pillar"] == "how-to-guides"
        assert body["readingMinutes"] == 6

    def test_resource_contract_failure(self, client, data_dir):
        write_json(data_dir / "resources" / "crisis-helplines" / "bad-line.json", crisis_helpline("bad-line", phone=["1", "2"]))
        response = client.get("/api/resources/bad-line")
        assert response.status_code == 422
        assert any(d["field"].endswith("phone") for d in response.json()["details"])

    def test_resource_without_contract_passes_through(self, client, data_dir):
        write_json(data_dir / "resources" / "misc" / "loose.json", {"slug": "loose", "name": "Loose"})
        response = client.get("/api/resources/loose")
        assert response.status_code == 200
        assert response.json()["metadata"]["category"] == "misc"

    def test_resource_not_found(self, client):
        response = client.get("/api/resources/nothing-here")
        assert response.status_code == 404
        assert response.json()["available_categories"] == ["articles-blogs", "crisis-helplines"]

    def test_resource_options(self, client):
        response = client.options("/api/resources/x")
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.json()["available_categories"] == ["articles-blogs", "crisis-helplines"]

    def test_resource_index_listing(self, client):
        assert client.get("/api/resources").json()["resources"][0]["slug"] == "988-lifeline"
        assert client.get("/api/resources?category=digital-tools").json() == {"resources": []}

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    def test_provider_validation_lists_every_field(self, client):
        response = client.get("/api/providers/search?limit=51&state=ca&offset=-1")
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid query parameters"
        assert {d["field"] for d in body["details"]} == {"limit", "state", "offset"}

    def test_provider_search(self, client):
        async def fetch():
            return [SimpleNamespace(id="1", slug="dr-a", content={"first_name": "A", "address": {"city": "Austin", "state": "TX"}})], 1

        app.dependency_overrides[get_provider_service] = lambda: StubProviderService(fetch)
        response = client.get("/api/providers/search?state=TX&limit=50")
        assert response.status_code == 200
        body = response.json()
        assert body["totalCount"] == 1
        assert "loadTimeMs" in body
        assert body["providers"][0]["business"]["practiceAddress"] == {"city": "Austin", "state": "TX"}
        assert body["providers"][0]["specialties"] == ["general_psychiatry"]

    def test_provider_search_timeout(self, client):
        async def fetch():
            await asyncio.sleep(0.2)
            return [], 0

        app.dependency_overrides[get_provider_service] = lambda: StubProviderService(fetch, timeout=0.05)
        response = client.get("/api/providers/search")
        assert response.status_code == 500
        body = response.json()
        assert body["providers"] == []
        assert body["totalCount"] == 0
        assert body["error"].startswith("Search timeout")

    # -------------------------------------------------------------------------
    # Entities
    # -------------------------------------------------------------------------

    def test_entities_by_type(self, client):
        body = client.get("/api/entities?type=condition").json()
        assert body["count"] == 1
        assert body["data"][0]["schema"]["entity_type"] == "condition"

    def test_entities_by_category(self, client):
        assert client.get("/api/entities?type=medication&category=ssri").json()["count"] == 0

    def test_entity_categories(self, client):
        assert client.get("/api/entities/categories?type=medication").json() == {"type": "medication", "categories": ["medications"]}

    def test_entity_search(self, client):
        assert client.get("/api/entities/search?q=sert").json()["data"][0]["slug"] == "sertraline"

    def test_cross_type_search(self, client):
        body = client.get("/api/search?q=a&type=condition").json()
        assert body["results"] == []
        assert body["message"] == "Search query must be at least 2 characters"

        body = client.get("/api/search?q=ad").json()
        assert [r["slug"] for r in body["results"]] == ["gad"]
        assert body["results"][0]["schema"]["entity_type"] == "condition"
        assert body["totalCount"] == 1
        assert body["hasMore"] is False
        assert body["nextOffset"] == 50
        assert "loadTimeMs" in body

    def test_cross_type_search_paging(self, client):
        app.dependency_overrides[get_entity_service] = lambda: StubEntityService(
            [entity("medication", f"med-{i}", "medications") for i in range(5)]
        )
        body = client.get("/api/search?q=med&limit=2&offset=2").json()
        assert [r["slug"] for r in body["results"]] == ["med-2", "med-3"]
        assert body["totalCount"] == 5
        assert body["hasMore"] is True
        assert body["nextOffset"] == 4

    def test_cross_type_search_filters_type(self, client):
        assert client.get("/api/search?q=sert&type=condition").json()["totalCount"] == 0
        assert client.get("/api/search?q=sert&type=bogus").status_code == 400
        assert client.get("/api/search?q=sert&limit=101").status_code == 422

    def test_cross_type_search_failure(self, client):
        response = client.get("/api/search?q=boom")
        assert response.status_code == 500
        assert response.json() == {"error": "Search failed. Please try again."}

    def test_entity_by_slug(self, client):
        assert client.get("/api/entities/condition/gad").json()["name"] == "Gad"
        assert client.get("/api/entities/condition/missing").status_code == 404
        assert client.get("/api/entities/bogus/gad").status_code == 400

    # -------------------------------------------------------------------------
    # Sync / health
    # -------------------------------------------------------------------------

    def test_sync_dry_run(self, client):
        response = client.post("/sync/run/treatments?dry_run=true")
        assert response.status_code == 200
        body = response.json()
        assert body["dry_run"] is True
        assert body["total_synced"] == 3
        assert body["stats"]["treatments"]["created"] == 3

    def test_sync_unknown_type(self, client):
        assert client.post("/sync/run/providers").status_code == 422

    def test_health(self, client):
        assert client.get("/health").json() == {"database": "ok", "last_sync_status": "success"}

    def test_health_database_down(self, client):
        app.dependency_overrides[get_db] = lambda: FakeSession(healthy=False)
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["database"].startswith("down")

    def test_invalid_endpoint(self, client):
        assert client.get("/invalid").status_code == 404


class TestResponseSchemas:
    """Test response model shapes"""

    def test_search_response_aliases(self):
        dumped = api_schemas.EntitySearchResponse(total_count=3, has_more=False, next_offset=50).model_dump(
            by_alias=True, exclude_none=True
        )
        assert dumped == {"results": [], "totalCount": 3, "hasMore": False, "nextOffset": 50}

    def test_no_untyped_json_alias(self):
        assert not hasattr(api_schemas, "JsonValue")
