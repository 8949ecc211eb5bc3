"""Provider search validation, query building and timeout tests"""

import asyncio
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import DBAPIError

from psychindex.core.config import settings
from psychindex.schemas.api import ProviderSearchParams
from psychindex.services.provider_service import (
    DATABASE_TIMEOUT_MESSAGE,
    SEARCH_FAILED_MESSAGE,
    SEARCH_TIMEOUT_MESSAGE,
    ProviderSearchService,
    ProviderSearchValidationError,
    build_provider_query,
    parse_search_params,
    shape_provider,
)


def failing_fields(query):
    with pytest.raises(ProviderSearchValidationError) as exc_info:
        parse_search_params(query)
    return {detail.field for detail in exc_info.value.details}


class StubSearchService(ProviderSearchService):
    """Search service whose store call is replaced by a coroutine."""

    def __init__(self, fetch, timeout=1.0):
        super().__init__(db=None, timeout=timeout)
        self.fetch = fetch
        self.queries = []

    async def _fetch(self, query):
        self.queries.append(query)
        return await self.fetch()


class TestSearchParams:
    """Test the query-parameter contract"""

    def test_defaults(self):
        params = parse_search_params({})
        assert params.limit == 20
        assert params.offset == 0

    def test_limit_boundary(self):
        assert parse_search_params({"limit": "50"}).limit == 50
        assert failing_fields({"limit": "51"}) == {"limit"}
        assert failing_fields({"limit": "0"}) == {"limit"}

    def test_state_must_be_uppercase(self):
        assert parse_search_params({"state": "CA"}).state == "CA"
        assert failing_fields({"state": "ca"}) == {"state"}
        assert failing_fields({"state": "CAL"}) == {"state"}

    def test_negative_offset(self):
        assert failing_fields({"offset": "-1"}) == {"offset"}

    def test_zip_and_gender(self):
        assert failing_fields({"zip": "9410"}) == {"zip"}
        assert failing_fields({"gender": "X"}) == {"gender"}
        assert parse_search_params({"zip": "94110", "gender": "F"}).gender == "F"

    def test_boolean_flags_use_aliases(self):
        params = parse_search_params({"acceptingOnly": "true", "telehealthOnly": "false"})
        assert params.accepting_only == "true"
        assert params.telehealth_only == "false"
        assert failing_fields({"acceptingOnly": "yes"}) == {"acceptingOnly"}

    def test_length_limits(self):
        assert failing_fields({"q": "x" * 101}) == {"q"}
        assert failing_fields({"city": "x" * 101}) == {"city"}
        assert failing_fields({"specialization": "x" * 201}) == {"specialization"}

    def test_every_failing_field_reported(self):
        assert failing_fields({"limit": "51", "state": "ca", "offset": "-1", "zip": "abc"}) == {
            "limit",
            "state",
            "offset",
            "zip",
        }

    def test_specializations_split(self):
        params = parse_search_params({"specialization": "adhd, anxiety ,,"})
        assert params.specializations == ["adhd", "anxiety"]


class TestProviderQuery:
    """Test the SQL built for a search"""

    def compiled(self, **query):
        built = build_provider_query(ProviderSearchParams.model_validate(query))
        return (
            str(built.page.compile(dialect=postgresql.dialect())),
            str(built.count.compile(dialect=postgresql.dialect())),
        )

    def test_base_filters_and_order(self):
        page, count = self.compiled()
        assert "entities.type = " in page
        assert "entities.status = " in page
        assert "ORDER BY entities.slug ASC" in page
        assert "LIMIT" in page and "OFFSET" in page
        assert "count(*)" in count

    def test_name_is_case_insensitive_substring(self):
        page, _ = self.compiled(q="smith")
        assert "ILIKE" in page

    def test_state_uses_nested_path(self):
        page, _ = self.compiled(state="NY")
        assert "#>>" in page

    def test_each_specialization_is_containment(self):
        page, count = self.compiled(specialization="adhd,anxiety")
        assert page.count("@>") == 2
        assert count.count("@>") == 2

    def literal_page(self, **query):
        built = build_provider_query(ProviderSearchParams.model_validate(query))
        return str(built.page.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))

    def test_flags_only_filter_when_true(self):
        assert "accepting_new_patients" not in self.literal_page(acceptingOnly="false")
        page = self.literal_page(acceptingOnly="true", telehealthOnly="true")
        assert "accepting_new_patients" in page
        assert "telehealth_available" in page


class TestShapeProvider:
    """Test defensive response shaping"""

    def test_defaults_for_empty_document(self):
        view = shape_provider("row-1", None, None)
        assert view.npi == "row-1"
        assert view.slug == "provider-row-1"
        assert view.name.first == "" and view.name.last == ""
        assert view.taxonomy.primary.specialization == "General Psychiatry"
        assert view.specialties == ["general_psychiatry"]
        assert view.business.practice_address.city == ""
        assert view.business.phone is None

    def test_full_document(self):
        content = {
            "npi": 1234567890,
            "first_name": "Ada",
            "last_name": "Lovelace",
            "credentials": "MD",
            "primary_specialty": "Child Psychiatry",
            "taxonomy_code": "2084P0804X",
            "specialties": ["adhd", "anxiety"],
            "address": {"city": "Boston", "state": "MA"},
            "phone": "555-0100",
        }
        view = shape_provider("row-1", "ada-lovelace-md", content)
        assert view.npi == "1234567890"
        assert view.name.credential == "MD"
        assert view.taxonomy.primary.code == "2084P0804X"
        assert view.taxonomy.primary.specialization == "adhd"
        assert view.specialties == ["adhd", "anxiety"]
        assert view.business.practice_address.state == "MA"

    def test_specialization_is_first_own_specialty(self):
        view = shape_provider(1, "dr-x", {"specialties": ["Addiction Psychiatry", "Geriatric Psychiatry"], "primary_specialty": "Other"})
        assert view.taxonomy.primary.specialization == "Addiction Psychiatry"
        assert view.specialties == ["Addiction Psychiatry", "Geriatric Psychiatry"]

    def test_empty_specialty_list_uses_defaults(self):
        view = shape_provider(1, "dr-x", {"specialties": []})
        assert view.taxonomy.primary.specialization == "General Psychiatry"
        assert view.specialties == ["general_psychiatry"]

    def test_malformed_nested_values(self):
        view = shape_provider("row-1", "x", {"address": "Boston, MA", "specialties": "adhd", "first_name": {"a": 1}})
        assert view.business.practice_address.city == ""
        assert view.specialties == ["general_psychiatry"]
        assert view.name.first == ""


class TestProviderSearchService:
    """Test the timeout race and error mapping"""

    async def test_success(self):
        rows = [SimpleNamespace(id="1", slug="a-provider", content={"first_name": "A", "specialties": ["adhd"]})]

        async def fetch():
            return rows, 41

        result = await StubSearchService(fetch).search(parse_search_params({"limit": "1"}))

        assert result.status_code == 200
        assert result.body.total_count == 41
        assert result.body.providers[0].slug == "a-provider"
        assert result.body.load_time_ms is not None
        assert result.body.error is None

    async def test_timeout_returns_empty_result(self):
        """Scenario: the store does not answer within the timeout"""
        finished = []

        async def fetch():
            await asyncio.sleep(0.3)
            finished.append(True)
            return [], 0

        service = StubSearchService(fetch, timeout=0.05)
        result = await asyncio.wait_for(service.search(parse_search_params({})), timeout=2)

        # the abandoned query has left the worker before the session can be released
        assert finished == [True]
        assert result.body.providers == []
        assert result.body.total_count == 0
        assert result.body.error == SEARCH_TIMEOUT_MESSAGE
        assert result.status_code == 500

    async def test_late_query_failure_still_reports_timeout(self):
        async def fetch():
            await asyncio.sleep(0.2)
            raise RuntimeError("canceling statement due to statement timeout")

        result = await StubSearchService(fetch, timeout=0.05).search(parse_search_params({}))
        assert result.body.error == SEARCH_TIMEOUT_MESSAGE

    async def test_statement_timeout(self):
        class QueryCanceled(Exception):
            pgcode = "57014"

        async def fetch():
            raise DBAPIError("SELECT 1", {}, QueryCanceled("canceling statement due to statement timeout"))

        result = await StubSearchService(fetch).search(parse_search_params({}))
        assert result.body.error == DATABASE_TIMEOUT_MESSAGE

    async def test_other_failures(self):
        async def fetch():
            raise RuntimeError("boom")

        result = await StubSearchService(fetch).search(parse_search_params({}))
        assert result.body.error == SEARCH_FAILED_MESSAGE
        assert result.body.details == "boom"

    async def test_details_hidden_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "ENV", "prod")

        async def fetch():
            raise RuntimeError("connection string leaked")

        result = await StubSearchService(fetch).search(parse_search_params({}))
        assert result.body.error == SEARCH_FAILED_MESSAGE
        assert result.body.details is None


class RecordingDb:
    """Session double: records executed statements and rollbacks."""

    def __init__(self, fail_on=None):
        self.statements = []
        self.rollbacks = 0
        self.fail_on = fail_on

    def execute(self, stmt):
        self.statements.append(stmt)
        if self.fail_on is not None and len(self.statements) == self.fail_on:
            raise RuntimeError("server closed the connection unexpectedly")
        return SimpleNamespace(scalar=lambda: 3, all=lambda: ["row"])

    def rollback(self):
        self.rollbacks += 1


class TestStatementTimeout:
    """Test that the store enforces the search timeout itself"""

    def test_statement_timeout_set_before_queries(self):
        db = RecordingDb()
        service = ProviderSearchService(db, timeout=1.5)

        rows, total = service._execute(build_provider_query(ProviderSearchParams()))

        assert (rows, total) == (["row"], 3)
        assert str(db.statements[0]) == "SET LOCAL statement_timeout = 1500"
        assert len(db.statements) == 3
        assert db.rollbacks == 1

    def test_transaction_closed_on_failure(self):
        db = RecordingDb(fail_on=2)
        with pytest.raises(RuntimeError):
            ProviderSearchService(db, timeout=15)._execute(build_provider_query(ProviderSearchParams()))
        assert str(db.statements[0]) == "SET LOCAL statement_timeout = 15000"
        assert db.rollbacks == 1

    def test_default_timeout(self):
        assert ProviderSearchService(None).statement_timeout_ms == int(settings.PROVIDER_SEARCH_TIMEOUT_SECONDS * 1000)
