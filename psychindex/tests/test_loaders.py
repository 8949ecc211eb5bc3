"""Slug loader and lookup strategy tests"""

import pytest

from psychindex.content.discovery import CategoryCatalog
from psychindex.content.loaders import (
    ContentLoader,
    condition_loader,
    find_file_recursive,
    resource_loader,
    treatment_loader,
)
from psychindex.tests.conftest import crisis_helpline, medication, write_json


class TestTreatmentLoader:
    """Test direct category lookup with case-insensitive fallback"""

    @pytest.fixture
    def loader(self, data_dir):
        return treatment_loader(CategoryCatalog(data_dir / "treatments"))

    def test_direct_hit(self, loader):
        found = loader.load_by_slug("sertraline")
        assert found.category == "medications"
        assert found.data["brand_names"] == ["Zoloft"]

    def test_case_insensitive_fallback(self, loader):
        """A file named Escitalopram-Lexapro.json resolves from the lowercase slug"""
        found = loader.load_by_slug("escitalopram-lexapro")
        assert found is not None
        assert found.path.name == "Escitalopram-Lexapro.json"
        assert found.category == "medications"

    def test_not_found_is_none(self, loader):
        assert loader.load_by_slug("does-not-exist") is None

    def test_unsafe_slug_is_none(self, loader):
        assert loader.load_by_slug("../conditions/anxiety-fear/generalized-anxiety-disorder") is None
        assert loader.load_by_category("../resources") == []

    def test_malformed_file_skipped(self, data_dir, loader):
        (data_dir / "treatments" / "therapy" / "broken.json").write_text("{not json")
        assert loader.load_by_slug("broken") is None

    def test_load_by_category(self, loader):
        assert loader.load_by_category("therapy") == ["cbt"]
        assert loader.load_by_category("empty-category") == []

    def test_missing_root(self, tmp_path):
        loader = treatment_loader(CategoryCatalog(tmp_path / "missing"))
        assert loader.load_by_slug("anything") is None
        assert loader.available_categories() == []


class TestConditionLoader:
    def test_no_case_insensitive_fallback(self, data_dir):
        write_json(data_dir / "conditions" / "mood" / "Major-Depression.json", medication("major-depression"))
        loader = condition_loader(CategoryCatalog(data_dir / "conditions"))
        assert loader.load_by_slug("Major-Depression") is not None
        assert loader.load_by_slug("major-depression") is None


class TestResourceLoader:
    """Test knowledge-hub first, then categories with one subdirectory level"""

    @pytest.fixture
    def hub(self, tmp_path):
        return tmp_path / "content" / "knowledge-hub"

    @pytest.fixture
    def loader(self, data_dir, hub):
        return resource_loader(CategoryCatalog(data_dir / "resources"), hub)

    def test_knowledge_hub_searched_first(self, loader, hub, data_dir):
        write_json(hub / "research" / "2025" / "988-lifeline.json", {"title": "Hub copy", "author": "Someone"})
        found = loader.load_by_slug("988-lifeline")
        assert found.category == "knowledge-hub"
        assert found.data["name"] == "Hub copy"
        assert found.data["slug"] == "988-lifeline"
        assert found.data["authors"] == ["anonymous"]

    def test_underscore_directories_skipped(self, hub):
        write_json(hub / "_drafts" / "secret.json", {"title": "Draft"})
        assert find_file_recursive(hub, "secret.json") is None

    def test_category_direct_path(self, loader):
        found = loader.load_by_slug("988-lifeline")
        assert found.category == "crisis-helplines"

    def test_one_level_of_subdirectories(self, loader, data_dir):
        write_json(data_dir / "resources" / "crisis-helplines" / "national" / "warmline.json", crisis_helpline("warmline"))
        found = loader.load_by_slug("warmline")
        assert found.category == "crisis-helplines"
        assert found.path.parent.name == "national"

    def test_strategies_tried_in_order(self, data_dir):
        seen = []

        def recorder(name, result=None):
            def lookup(slug):
                seen.append(name)
                return result
            return lookup

        loader = ContentLoader(CategoryCatalog(data_dir), [recorder("a"), recorder("b"), recorder("c")])
        assert loader.load_by_slug("x") is None
        assert seen == ["a", "b", "c"]
