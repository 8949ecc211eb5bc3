"""Resource shape contracts, one per resource category.

Every contract extends ``ResourceBase``; the variant is selected by
``metadata.category``. Unknown keys are kept (``extra="allow"``) so new
document fields pass through untouched; only type mismatches and missing
base fields are rejected.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter

ResourceCategory = Literal[
    "assessments-screeners",
    "support-community",
    "knowledge-hub",
    "crisis-helplines",
    "education-guides",
    "digital-tools",
]

RESOURCE_CATEGORIES = (
    "assessments-screeners",
    "support-community",
    "knowledge-hub",
    "crisis-helplines",
    "education-guides",
    "digital-tools",
)

KnowledgeHubPillar = Literal[
    "self-help-and-wellness",
    "research-and-science",
    "how-to-guides",
    "latest",
    "community-and-stories",
]


Number = Union[int, float]


class _Open(BaseModel):
    model_config = ConfigDict(extra="allow")


class ResourceMetadata(_Open):
    category: Optional[ResourceCategory] = None


class Section(_Open):
    type: Optional[str] = None
    title: Optional[str] = None
    text: Optional[str] = None


class Reference(_Open):
    title: Optional[str] = None
    authors: Optional[str] = None
    journal: Optional[str] = None
    year: Optional[Union[int, str]] = None
    volume: Optional[Union[str, int]] = None
    pages: Optional[str] = None
    doi: Optional[str] = None


class Copyright(_Open):
    notice: Optional[str] = None
    usage: Optional[str] = None


class Seo(_Open):
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[List[str]] = None


class ResourceBase(_Open):
    kind: Literal["resource"]
    slug: str = Field(min_length=1)
    name: str = Field(min_length=1)
    full_name: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    purpose: Optional[str] = None
    tags: Optional[List[str]] = None
    validated: Optional[bool] = None
    free: Optional[bool] = None
    duration: Optional[str] = None
    age_range: Optional[str] = None
    languages: Optional[List[str]] = None
    administration: Optional[str] = None
    order: Optional[Number] = None
    featured: Optional[bool] = None
    downloadable_pdf: Optional[bool] = None
    interactive_version: Optional[bool] = None
    conditions: Optional[List[str]] = None
    target_populations: Optional[List[str]] = None
    limitations: Optional[List[str]] = None
    metadata: Optional[ResourceMetadata] = None
    sections: Optional[List[Section]] = None
    psychometric_properties: Optional[Dict[str, str]] = None
    clinical_alerts: Optional[Dict[str, str]] = None
    clinical_use: Optional[Dict[str, bool]] = None
    references: Optional[List[Reference]] = None
    copyright: Optional[Copyright] = None
    seo: Optional[Seo] = None

    @property
    def resource_category(self) -> Optional[str]:
        return self.metadata.category if self.metadata else None


# ---------------------------------------------------------------------------
# Assessments & screeners
# ---------------------------------------------------------------------------


class ResponseOption(_Open):
    value: Number
    label: str


class AssessmentItem(_Open):
    id: str
    text: str
    type: Optional[str] = None
    response_set: Optional[str] = None
    alert: Optional[Union[bool, str]] = None


class LegacyQuestion(_Open):
    number: Number
    text: str
    weight: Optional[Number] = None
    warning: Optional[str] = None
    dsm_criterion: Optional[str] = None
    options: Optional[List[ResponseOption]] = None


class FunctionalQuestion(_Open):
    number: Optional[Number] = None
    text: Optional[str] = None
    options: Optional[List[str]] = None
    note: Optional[str] = None


class ScoreBand(_Open):
    min: Number
    max: Number
    label: str


class ScoringRules(_Open):
    numeric_mapping: Optional[Dict[str, Number]] = None
    substance_mapping: Optional[Dict[str, Any]] = None
    risk_thresholds: Optional[Dict[str, Any]] = None
    injection_question: Optional[str] = None
    part_a: Optional[List[Number]] = None
    part_b: Optional[List[Number]] = None
    domains: Optional[Dict[str, List[Number]]] = None
    total: Optional[Dict[str, Any]] = None
    severity: Optional[Dict[str, Any]] = None
    alerts: Optional[Dict[str, Any]] = None
    types: Optional[List[Any]] = None


class Scoring(_Open):
    type: Optional[Literal["sum", "weighted-sum", "custom"]] = None
    engineKey: Optional[str] = None
    engine: Optional[str] = None
    max_per_item: Optional[Number] = None
    range: Optional[str] = None
    interpretation: Optional[Dict[str, str]] = None
    cutoff_scores: Optional[Dict[str, Union[Number, str]]] = None
    additional_scoring: Optional[Dict[str, str]] = None
    bands: Optional[List[ScoreBand]] = None
    rules: Optional[ScoringRules] = None


class AssessmentMetadata(ResourceMetadata):
    category: Literal["assessments-screeners"]


class AssessmentResource(ResourceBase):
    metadata: AssessmentMetadata
    items: Optional[List[AssessmentItem]] = None
    questions: Optional[List[LegacyQuestion]] = None
    # Legacy flat list, or response sets keyed by name
    response_options: Optional[Union[List[ResponseOption], Dict[str, List[ResponseOption]]]] = None
    functional_question: Optional[FunctionalQuestion] = None
    scoring: Optional[Scoring] = None
    ui: Optional[Dict[str, Any]] = None
    clinical_interpretations: Optional[Dict[str, str]] = None
    assessment_type: Optional[str] = None
    category: Optional[str] = None


# ---------------------------------------------------------------------------
# Other categories
# ---------------------------------------------------------------------------


class SupportCommunityMetadata(ResourceMetadata):
    category: Literal["support-community"]


class SupportCommunityResource(ResourceBase):
    metadata: SupportCommunityMetadata
    meeting_times: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    group_type: Optional[str] = None
    cost: Optional[str] = None
    registration_required: Optional[bool] = None
    accessibility: Optional[str] = None


class KnowledgeHubMetadata(ResourceMetadata):
    category: Literal["knowledge-hub"]


class KnowledgeHubResource(ResourceBase):
    metadata: KnowledgeHubMetadata
    pillar: Optional[KnowledgeHubPillar] = None
    subcategory: Optional[str] = None
    authors: Optional[List[str]] = None
    author: Optional[str] = None
    publishedAt: Optional[str] = None
    updatedAt: Optional[str] = None
    readingMinutes: Optional[Number] = None
    reading_time: Optional[str] = None
    audience: Optional[List[str]] = None
    format: Optional[Literal["article", "video", "podcast", "infographic"]] = None
    external_url: Optional[str] = None
    excerpt: Optional[str] = None
    related_topics: Optional[List[str]] = None
    body: Optional[List[Any]] = None


class CrisisHelplinesMetadata(ResourceMetadata):
    category: Literal["crisis-helplines"]


class CrisisHelplinesResource(ResourceBase):
    metadata: CrisisHelplinesMetadata
    phone: Optional[str] = None
    text_number: Optional[str] = None
    hours: Optional[str] = None
    coverage_area: Optional[str] = None
    specialties: Optional[List[str]] = None
    training_required: Optional[str] = None


class EducationGuidesMetadata(ResourceMetadata):
    category: Literal["education-guides"]


class EducationGuidesResource(ResourceBase):
    metadata: EducationGuidesMetadata
    learning_objectives: Optional[List[str]] = None
    difficulty_level: Optional[str] = None
    downloadable: Optional[bool] = None
    external_url: Optional[str] = None
    format: Optional[str] = None
    prerequisites: Optional[List[str]] = None
    certification: Optional[bool] = None
    continuing_education: Optional[str] = None


class DigitalToolsMetadata(ResourceMetadata):
    category: Literal["digital-tools"]


class DigitalToolsResource(ResourceBase):
    metadata: DigitalToolsMetadata
    app_rating: Optional[Number] = None
    total_reviews: Optional[int] = None
    platforms: Optional[List[str]] = None
    privacy_certified: Optional[bool] = None
    app_store_url: Optional[str] = None
    website: Optional[str] = None
    system_requirements: Optional[str] = None
    offline_access: Optional[bool] = None
    subscription_model: Optional[str] = None
    data_export: Optional[bool] = None


def _resource_category(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        metadata = value.get("metadata")
        return metadata.get("category") if isinstance(metadata, dict) else None
    metadata = getattr(value, "metadata", None)
    return getattr(metadata, "category", None)


AnyResource = Annotated[
    Union[
        Annotated[AssessmentResource, Tag("assessments-screeners")],
        Annotated[SupportCommunityResource, Tag("support-community")],
        Annotated[KnowledgeHubResource, Tag("knowledge-hub")],
        Annotated[CrisisHelplinesResource, Tag("crisis-helplines")],
        Annotated[EducationGuidesResource, Tag("education-guides")],
        Annotated[DigitalToolsResource, Tag("digital-tools")],
    ],
    Discriminator(_resource_category),
]

any_resource_adapter: TypeAdapter[AnyResource] = TypeAdapter(AnyResource)
