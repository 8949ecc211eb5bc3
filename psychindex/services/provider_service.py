"""Provider search - filtered, paginated queries over provider entities.

Every search races a timeout. A slow or failing query never surfaces as an
unhandled error: the caller always gets a well-formed body with an empty
provider list and an ``error`` message.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError
from sqlalchemy import Select, func, select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from psychindex.core.config import settings
from psychindex.core.logging import get_logger
from psychindex.models.entity import Entity
from psychindex.schemas.api import (
    FieldError,
    PracticeAddress,
    ProviderBusiness,
    ProviderName,
    ProviderSearchParams,
    ProviderSearchResponse,
    ProviderTaxonomy,
    ProviderTaxonomyEntry,
    ProviderView,
)

log = get_logger("provider_service")

DEFAULT_SPECIALTY = "general_psychiatry"
DEFAULT_SPECIALIZATION = "General Psychiatry"

SEARCH_TIMEOUT_MESSAGE = "Search timeout - please try a more specific search"
DATABASE_TIMEOUT_MESSAGE = "Database timeout - please try filtering your search"
SEARCH_FAILED_MESSAGE = "Search failed"

# Postgres "canceling statement due to statement timeout"
QUERY_CANCELED_PGCODE = "57014"


class ProviderSearchValidationError(Exception):
    """One or more query parameters are invalid."""

    def __init__(self, details: List[FieldError]):
        self.details = details
        super().__init__("Invalid query parameters")


def parse_search_params(query: Mapping[str, Any]) -> ProviderSearchParams:
    """Validate raw query-string values; every failing field is reported."""
    try:
        return ProviderSearchParams.model_validate(dict(query))
    except ValidationError as exc:
        details = [
            FieldError(field=".".join(str(part) for part in err["loc"]), message=err["msg"])
            for err in exc.errors(include_url=False)
        ]
        raise ProviderSearchValidationError(details) from exc


@dataclass
class ProviderQuery:
    page: Select
    count: Select


def build_provider_query(params: ProviderSearchParams) -> ProviderQuery:
    content = Entity.content
    conditions = [
        Entity.type == "provider",
        Entity.status == "active",
        content.isnot(None),
    ]

    if params.q and params.q.strip():
        conditions.append(content["full_name"].astext.ilike(f"%{params.q.strip()}%"))
    if params.state:
        conditions.append(content[("address", "state")].astext == params.state.upper())
    if params.city and params.city.strip():
        conditions.append(content[("address", "city")].astext.ilike(f"%{params.city.strip()}%"))
    if params.zip:
        conditions.append(content[("address", "zip")].astext == params.zip)
    # Each term must be present in the specialties array
    for term in params.specializations:
        conditions.append(content.contains({"specialties": [term]}))
    if params.gender:
        conditions.append(content["gender"].astext == params.gender)
    if params.accepting_only == "true":
        conditions.append(content["accepting_new_patients"].astext == "true")
    if params.telehealth_only == "true":
        conditions.append(content["telehealth_available"].astext == "true")

    page = (
        select(Entity.id, Entity.slug, Entity.content)
        .where(*conditions)
        .order_by(Entity.slug.asc())
        .offset(params.offset)
        .limit(params.limit)
    )
    count = select(func.count()).select_from(Entity).where(*conditions)
    return ProviderQuery(page=page, count=count)


# -----------------------------------------------------------------------------
# Response shaping
# -----------------------------------------------------------------------------


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def shape_provider(row_id: Any, slug: Optional[str], content: Any) -> ProviderView:
    """Map a stored provider document to the public view, filling defaults for missing fields."""
    data = _dict(content)
    address = _dict(data.get("address"))

    specialties = data.get("specialties")
    own_specialties = [str(s) for s in specialties if s is not None] if isinstance(specialties, list) else []

    return ProviderView(
        npi=_text(data.get("npi")) or _text(row_id),
        slug=slug or _text(data.get("slug")) or f"provider-{row_id}",
        name=ProviderName(
            first=_text(data.get("first_name")) or "",
            last=_text(data.get("last_name")) or "",
            suffix=_text(data.get("suffix")),
            credential=_text(data.get("credentials")) or _text(data.get("credential")),
        ),
        taxonomy=ProviderTaxonomy(
            primary=ProviderTaxonomyEntry(
                code=_text(data.get("taxonomy_code")),
                specialization=(_text(own_specialties[0]) if own_specialties else None) or DEFAULT_SPECIALIZATION,
            )
        ),
        specialties=own_specialties or [DEFAULT_SPECIALTY],
        business=ProviderBusiness(
            practice_address=PracticeAddress(
                city=_text(address.get("city")) or "",
                state=_text(address.get("state")) or "",
            ),
            phone=_text(data.get("phone")),
        ),
    )


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


@dataclass
class SearchResult:
    body: ProviderSearchResponse
    status_code: int = 200


class ProviderSearchService:
    """Runs provider searches against the mirror store under a timeout."""

    def __init__(self, db: Optional[Session], timeout: Optional[float] = None):
        self.db = db
        self.timeout = timeout if timeout is not None else settings.PROVIDER_SEARCH_TIMEOUT_SECONDS

    @property
    def statement_timeout_ms(self) -> int:
        return max(1, int(self.timeout * 1000))

    def _execute(self, query: ProviderQuery) -> Tuple[Sequence[Any], int]:
        try:
            # SET LOCAL lasts until the rollback below; Postgres cancels the statement with 57014
            self.db.execute(text(f"SET LOCAL statement_timeout = {self.statement_timeout_ms}"))
            total = self.db.execute(query.count).scalar() or 0
            rows = self.db.execute(query.page).all()
            return rows, int(total)
        finally:
            self.db.rollback()

    async def _fetch(self, query: ProviderQuery) -> Tuple[Sequence[Any], int]:
        return await asyncio.to_thread(self._execute, query)

    async def search(self, params: ProviderSearchParams) -> SearchResult:
        start = time.perf_counter()
        query = build_provider_query(params)

        fetch = asyncio.ensure_future(self._fetch(query))
        try:
            rows, total = await asyncio.wait_for(asyncio.shield(fetch), timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning(f"Provider search timed out after {self.timeout}s (params={params.model_dump(exclude_none=True)})")
            await self._settle(fetch)
            return self._failure(SEARCH_TIMEOUT_MESSAGE, f"Query timeout after {self.timeout:g} seconds")
        except DBAPIError as exc:
            log.error(f"Provider search query failed: {exc}")
            if getattr(exc.orig, "pgcode", None) == QUERY_CANCELED_PGCODE:
                return self._failure(DATABASE_TIMEOUT_MESSAGE, str(exc))
            return self._failure(SEARCH_FAILED_MESSAGE, str(exc))
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Provider search failed: {exc}")
            return self._failure(SEARCH_FAILED_MESSAGE, str(exc))

        providers = [shape_provider(row.id, row.slug, row.content) for row in rows]
        load_time_ms = int((time.perf_counter() - start) * 1000)
        log.debug(f"Provider search returned {len(providers)} of {total} in {load_time_ms}ms")
        return SearchResult(
            body=ProviderSearchResponse(providers=providers, total_count=total, load_time_ms=load_time_ms)
        )

    async def _settle(self, fetch: "asyncio.Future") -> None:
        """Wait for an abandoned query to leave its worker thread before the session is released."""
        await asyncio.wait({fetch})
        if not fetch.cancelled() and fetch.exception() is not None:
            log.debug(f"Timed-out provider query ended with: {fetch.exception()}")

    def _failure(self, message: str, details: str) -> SearchResult:
        return SearchResult(
            body=ProviderSearchResponse(
                providers=[],
                total_count=0,
                error=message,
                details=None if settings.is_production else details,
            ),
            status_code=500,
        )
