"""Resource index build and TTL cache tests"""

import json
from datetime import datetime, timezone

import pytest

from psychindex.services.resource_index import ResourceIndex, build_resource_index, write_resource_index
from psychindex.tests.conftest import crisis_helpline, write_json


class TestBuildResourceIndex:
    """Test building the prebuilt index from data/resources"""

    @pytest.fixture
    def resources_dir(self, data_dir):
        root = data_dir / "resources"
        write_json(root / "crisis-helplines" / "index.json", {"items": ["988-lifeline"]})
        write_json(root / "crisis-helplines" / "regional" / "warmline.json", crisis_helpline("warmline"))
        write_json(root / "crisis-helplines" / "nameless.json", {"slug": "nameless"})
        write_json(root / "digital-tools" / "by-id.json", {"id": "calm-app", "name": "Calm"})
        write_json(root / "education-guides" / "moved.json", {"slug": "moved-article", "name": "Moved", "metadata": {"category": "knowledge-hub"}})
        return root

    def test_entries(self, resources_dir):
        index = build_resource_index(resources_dir, now=datetime(2026, 3, 1, tzinfo=timezone.utc))
        by_slug = {entry["slug"]: entry for entry in index["resources"]}

        assert set(by_slug) == {"988-lifeline", "warmline", "calm-app", "moved-article"}
        assert index["generated"] == "2026-03-01T00:00:00+00:00"

        lifeline = by_slug["988-lifeline"]
        assert lifeline["id"] == "json-988-lifeline"
        assert lifeline["type"] == "resource"
        assert lifeline["metadata"]["source"] == "json-file"
        assert lifeline["metadata"]["subcategory"] is None

    def test_subdirectory_becomes_subcategory(self, resources_dir):
        index = build_resource_index(resources_dir)
        warmline = next(e for e in index["resources"] if e["slug"] == "warmline")
        assert warmline["metadata"]["category"] == "crisis-helplines"
        assert warmline["metadata"]["subcategory"] == "regional"

    def test_document_category_wins_over_directory(self, resources_dir):
        index = build_resource_index(resources_dir)
        article = next(e for e in index["resources"] if e["slug"] == "moved-article")
        assert article["metadata"]["category"] == "knowledge-hub"

    def test_id_used_when_slug_missing(self, resources_dir):
        index = build_resource_index(resources_dir)
        calm = next(e for e in index["resources"] if e["slug"] == "calm-app")
        assert calm["id"] == "json-calm-app"
        assert calm["metadata"]["category"] == "digital-tools"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            build_resource_index(tmp_path / "missing")

    def test_write(self, resources_dir, tmp_path):
        out = write_resource_index(build_resource_index(resources_dir), tmp_path / "public" / "resources-index.json")
        assert len(json.loads(out.read_text())["resources"]) == 4


class TestResourceIndexCache:
    """Test the TTL-memoized reader"""

    @pytest.fixture
    def index_file(self, tmp_path):
        path = tmp_path / "resources-index.json"
        path.write_text(json.dumps({"resources": [
            {"slug": "a", "pillar": "how-to-guides", "metadata": {"category": "knowledge-hub"}},
            {"slug": "b", "metadata": {"category": "crisis-helplines"}},
        ]}))
        return path

    def test_filters(self, index_file):
        index = ResourceIndex(index_file)
        assert [r["slug"] for r in index.by_category("how-to-guides")] == ["a"]
        assert [r["slug"] for r in index.by_category("crisis-helplines")] == ["b"]
        assert index.by_slug("b")["metadata"]["category"] == "crisis-helplines"
        assert index.by_slug("zzz") is None

    def test_ttl(self, index_file):
        now = [0.0]
        index = ResourceIndex(index_file, ttl_seconds=300, clock=lambda: now[0])
        assert len(index.all()) == 2

        index_file.write_text(json.dumps({"resources": []}))
        now[0] = 299.0
        assert len(index.all()) == 2

        now[0] = 300.0
        assert index.all() == []

    def test_clear_cache(self, index_file):
        index = ResourceIndex(index_file)
        index.all()
        index_file.write_text(json.dumps({"resources": [{"slug": "c"}]}))
        index.clear_cache()
        assert [r["slug"] for r in index.all()] == ["c"]

    def test_missing_or_broken_index_is_empty(self, tmp_path):
        assert ResourceIndex(tmp_path / "none.json").all() == []
        broken = tmp_path / "broken.json"
        broken.write_text("{")
        assert ResourceIndex(broken).all() == []
