from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# -----------------------------------------------------------------------------
# Provider search
# -----------------------------------------------------------------------------


class ProviderSearchParams(BaseModel):
    """Query parameters accepted by the provider search endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    q: Optional[str] = Field(None, max_length=100, description="Name substring")
    state: Optional[str] = Field(None, min_length=2, max_length=2, pattern=r"^[A-Z]{2}$")
    city: Optional[str] = Field(None, max_length=100)
    zip: Optional[str] = Field(None, pattern=r"^\d{5}$")
    specialization: Optional[str] = Field(None, max_length=200, description="Comma-separated, all must match")
    gender: Optional[Literal["M", "F"]] = None
    accepting_only: Optional[Literal["true", "false"]] = Field(None, alias="acceptingOnly")
    telehealth_only: Optional[Literal["true", "false"]] = Field(None, alias="telehealthOnly")
    limit: int = Field(20, ge=1, le=50)
    offset: int = Field(0, ge=0)

    @property
    def specializations(self) -> List[str]:
        if not self.specialization:
            return []
        return [term.strip() for term in self.specialization.split(",") if term.strip()]


class FieldError(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    error: str
    details: List[FieldError]


class ProviderName(BaseModel):
    first: str = ""
    last: str = ""
    suffix: Optional[str] = None
    credential: Optional[str] = None


class ProviderTaxonomyEntry(BaseModel):
    code: Optional[str] = None
    specialization: str


class ProviderTaxonomy(BaseModel):
    primary: ProviderTaxonomyEntry


class PracticeAddress(BaseModel):
    city: str = ""
    state: str = ""


class ProviderBusiness(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    practice_address: PracticeAddress = Field(default_factory=PracticeAddress, alias="practiceAddress")
    phone: Optional[str] = None


class ProviderView(BaseModel):
    npi: Optional[str] = None
    slug: str
    name: ProviderName
    taxonomy: ProviderTaxonomy
    specialties: List[str]
    business: ProviderBusiness


class ProviderSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    providers: List[ProviderView] = Field(default_factory=list)
    total_count: int = Field(0, alias="totalCount")
    load_time_ms: Optional[int] = Field(None, alias="loadTimeMs")
    error: Optional[str] = None
    details: Optional[str] = None


# -----------------------------------------------------------------------------
# Entities
# -----------------------------------------------------------------------------


class EntitySchemaOut(BaseModel):
    id: str
    entity_type: str
    schema_name: str
    display_name: str
    icon: str
    color: str


class EntityOut(BaseModel):
    id: str
    schema_id: str
    name: str
    slug: str
    description: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    status: str
    visibility: str = "public"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    schema_: EntitySchemaOut = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class EntityListResponse(BaseModel):
    request_id: str
    api_latency_ms: int
    count: int
    data: List[EntityOut]


class CategoryListResponse(BaseModel):
    type: str
    categories: List[str]


class CategorySlugsResponse(BaseModel):
    category: str
    slugs: List[str]


class CategoryDiscoveryResponse(BaseModel):
    available_categories: List[str]
    category_count: int
    discovered_at: datetime


class EntitySearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: List[EntityOut] = Field(default_factory=list)
    total_count: Optional[int] = Field(None, alias="totalCount")
    has_more: Optional[bool] = Field(None, alias="hasMore")
    next_offset: Optional[int] = Field(None, alias="nextOffset")
    load_time_ms: Optional[int] = Field(None, alias="loadTimeMs")
    message: Optional[str] = None


class NotFoundResponse(BaseModel):
    error: str
    available_categories: List[str]
    suggestion: str


# -----------------------------------------------------------------------------
# Health / sync observability
# -----------------------------------------------------------------------------


class HealthResponse(BaseModel):
    database: str
    last_sync_status: str | None


class SyncRunOut(BaseModel):
    run_id: str
    content_type: str
    status: str
    dry_run: bool
    records_synced: int
    error_count: int
    error_message: str | None = None
    started_at: datetime
    ended_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class SyncTypeStatsOut(BaseModel):
    total: int
    created: int
    updated: int
    skipped: int
    errors: int
    synced: int
    batches: int
    failed_batches: int
    error_details: List[Dict[str, str]]


class SyncReportOut(BaseModel):
    success: bool
    dry_run: bool
    elapsed_seconds: float
    total_synced: int
    total_errors: int
    stats: Dict[str, SyncTypeStatsOut]
