"""
Domain models (Pydantic).

These types are the contract between the core and its callers:
- catalog entities (`CaseRecord` and its parts)
- query inputs (`FilterSpec`, `SortKey`, `CaseQuery`, `SearchRequest`)
- derived outputs (`PageResult`, `MapPoint`, `Cluster`, `SearchResult`, stats)

Python attributes are snake_case; JSON uses camelCase aliases (`totalPages`,
`hasNextPage`, `isFeatured`, ...) because that is the shape the web frontend and
the catalog files already speak. Dump with `by_alias=True` when serializing.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ProjectType(str, Enum):
    INDOOR_FIXED = "indoor_fixed"
    OUTDOOR_ADVERTISING = "outdoor_advertising"
    RENTAL_EVENT = "rental_event"
    BROADCAST_STUDIO = "broadcast_studio"
    RETAIL_DISPLAY = "retail_display"
    SPORTS_VENUE = "sports_venue"
    TRANSPORTATION = "transportation"
    CORPORATE = "corporate"
    EDUCATION = "education"
    HEALTHCARE = "healthcare"
    GOVERNMENT = "government"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class IndustryType(str, Enum):
    ADVERTISING = "advertising"
    RETAIL = "retail"
    SPORTS = "sports"
    ENTERTAINMENT = "entertainment"
    EDUCATION = "education"
    HEALTHCARE = "healthcare"
    GOVERNMENT = "government"
    TRANSPORTATION = "transportation"
    HOSPITALITY = "hospitality"
    CORPORATE = "corporate"
    BROADCAST = "broadcast"
    EVENTS = "events"
    RELIGIOUS = "religious"
    OTHER = "other"


class CaseStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    FEATURED = "featured"


class SortKey(str, Enum):
    """Supported orderings for case listings. Every ordering is stable."""

    TITLE_ASC = "title_asc"
    TITLE_DESC = "title_desc"
    PROJECT_DATE_ASC = "project_date_asc"
    PROJECT_DATE_DESC = "project_date_desc"
    CREATED_ASC = "created_asc"
    CREATED_DESC = "created_desc"
    UPDATED_ASC = "updated_asc"
    UPDATED_DESC = "updated_desc"
    VIEW_COUNT_ASC = "view_count_asc"
    VIEW_COUNT_DESC = "view_count_desc"
    INVESTMENT_ASC = "investment_asc"
    INVESTMENT_DESC = "investment_desc"
    AREA_ASC = "area_asc"
    AREA_DESC = "area_desc"
    FEATURED = "featured"
    SHOWCASE = "showcase"


PROJECT_TYPE_LABELS: dict[ProjectType, str] = {
    ProjectType.INDOOR_FIXED: "Indoor Fixed",
    ProjectType.OUTDOOR_ADVERTISING: "Outdoor Advertising",
    ProjectType.RENTAL_EVENT: "Rental & Event",
    ProjectType.BROADCAST_STUDIO: "Broadcast Studio",
    ProjectType.RETAIL_DISPLAY: "Retail Display",
    ProjectType.SPORTS_VENUE: "Sports Venue",
    ProjectType.TRANSPORTATION: "Transportation",
    ProjectType.CORPORATE: "Corporate",
    ProjectType.EDUCATION: "Education",
    ProjectType.HEALTHCARE: "Healthcare",
    ProjectType.GOVERNMENT: "Government",
    ProjectType.ENTERTAINMENT: "Entertainment",
    ProjectType.OTHER: "Other",
}

INDUSTRY_LABELS: dict[IndustryType, str] = {
    IndustryType.ADVERTISING: "Advertising",
    IndustryType.RETAIL: "Retail",
    IndustryType.SPORTS: "Sports",
    IndustryType.ENTERTAINMENT: "Entertainment",
    IndustryType.EDUCATION: "Education",
    IndustryType.HEALTHCARE: "Healthcare",
    IndustryType.GOVERNMENT: "Government",
    IndustryType.TRANSPORTATION: "Transportation",
    IndustryType.HOSPITALITY: "Hospitality",
    IndustryType.CORPORATE: "Corporate",
    IndustryType.BROADCAST: "Broadcast",
    IndustryType.EVENTS: "Events",
    IndustryType.RELIGIOUS: "Religious",
    IndustryType.OTHER: "Other",
}

SearchField = Literal["title", "summary", "description", "customer", "tags", "features", "solutions"]
DateField = Literal["projectStartDate", "projectEndDate", "createdAt", "updatedAt", "publishedAt"]


# ---- Catalog entities ----


class Coordinates(FrozenCamelModel):
    """A bare latitude/longitude pair in decimal degrees (not range-checked)."""

    latitude: float
    longitude: float


class GeoLocation(FrozenCamelModel):
    """Where a project was installed.

    Coordinates are intentionally not range-checked here: stored records may carry
    bad coordinates, and the geo layer skips them instead of failing the whole load.
    """

    latitude: float
    longitude: float
    address: str = ""
    city: str
    state: str | None = None
    country: str
    postal_code: str | None = None
    timezone: str | None = None


class Customer(FrozenCamelModel):
    name: str
    industry: IndustryType | None = None
    website: str | None = None
    description: str | None = None


class ProjectScale(FrozenCamelModel):
    total_screen_area: float = Field(..., ge=0)
    number_of_screens: int | None = Field(default=None, ge=0)
    total_investment: float | None = Field(default=None, ge=0)
    currency: str | None = None


class CaseRecord(FrozenCamelModel):
    """One showcased installation/project entry."""

    id: str
    slug: str
    title: str
    summary: str = ""
    full_description: str = ""

    project_type: ProjectType
    industry: IndustryType
    status: CaseStatus = CaseStatus.PUBLISHED

    customer: Customer
    location: GeoLocation
    project_scale: ProjectScale

    tags: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    solutions: list[str] = Field(default_factory=list)

    project_start_date: date
    project_end_date: date | None = None
    created_at: date | None = None
    updated_at: date | None = None
    published_at: date | None = None

    view_count: int = Field(0, ge=0)
    is_featured: bool = False
    is_showcase: bool = False

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: list[str]) -> list[str]:
        # Tags are a set semantically; keep first-seen order for stable output.
        return list(dict.fromkeys(t.strip() for t in tags if t and t.strip()))


# ---- Query inputs ----


class ScaleRange(FrozenCamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid")

    min_area: float | None = None
    max_area: float | None = None
    min_investment: float | None = None
    max_investment: float | None = None


class DateRange(FrozenCamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid")

    start: date
    end: date
    field: DateField = "projectStartDate"

    @model_validator(mode="after")
    def _validate_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("dateRange.end must not be before dateRange.start")
        return self


_MULTI_VALUE_FIELDS = ("project_type", "industry", "status", "country", "region", "city", "tags", "features")


class FilterSpec(FrozenCamelModel):
    """Closed set of filter criteria; absent fields impose no constraint.

    Classification fields accept a single value or a list and are normalized to a
    list (an empty list counts as absent).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid")

    project_type: list[ProjectType] | None = None
    industry: list[IndustryType] | None = None
    status: list[CaseStatus] | None = None
    country: list[str] | None = None
    region: list[str] | None = None
    city: list[str] | None = None
    tags: list[str] | None = None
    features: list[str] | None = None
    is_featured: bool | None = None
    is_showcase: bool | None = None
    project_scale: ScaleRange | None = None
    date_range: DateRange | None = None
    search: str | None = None

    @field_validator(*_MULTI_VALUE_FIELDS, mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (str, Enum)):
            return [value]
        if isinstance(value, (list, tuple, set, frozenset)):
            return list(value) or None
        return value


class CaseQuery(CamelModel):
    """A listing request: filters + ordering + page window."""

    filters: FilterSpec | None = None
    sort_by: SortKey | None = None
    page: int = 1
    limit: int | None = None
    settings_overrides: dict[str, Any] | None = None


class SearchRequest(CamelModel):
    query: str
    search_fields: list[SearchField] | None = None
    min_score: float | None = Field(default=None, ge=0, le=1)
    fuzzy_match: bool | None = None
    limit: int | None = Field(default=None, ge=1)
    settings_overrides: dict[str, Any] | None = None


class CompareRequest(CamelModel):
    case_ids: list[str]


# ---- Derived outputs ----


class BoundingBox(CamelModel):
    north: float
    south: float
    east: float
    west: float
    center: Coordinates


class PageResult(CamelModel):
    items: list[CaseRecord]
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class CaseQueryResult(PageResult):
    filters: FilterSpec | None = None
    sort_by: SortKey | None = None


class MapPoint(CamelModel):
    """Lightweight projection of a case for map markers."""

    id: str
    title: str
    customer: str
    location: GeoLocation
    project_type: ProjectType
    industry: IndustryType
    is_featured: bool
    is_showcase: bool


class Cluster(CamelModel):
    id: str
    latitude: float
    longitude: float
    count: int = Field(..., ge=2)
    cases: list[MapPoint]

    @model_validator(mode="after")
    def _validate_count(self) -> "Cluster":
        if self.count != len(self.cases):
            raise ValueError("cluster count must equal the number of member cases")
        return self


class ClusterResult(CamelModel):
    clusters: list[Cluster]
    single_points: list[MapPoint]


class MapPayload(CamelModel):
    """Everything a map widget needs in one response."""

    points: list[MapPoint]
    bounds: BoundingBox
    clusters: ClusterResult
    cluster_distance_km: float
    zoom: int


class SearchResult(CamelModel):
    case: CaseRecord
    score: float = Field(..., gt=0, le=1)


class SearchSuggestion(CamelModel):
    type: Literal["case", "customer", "location", "industry", "tag"]
    id: str
    text: str
    description: str | None = None
    count: int | None = None


class FacetCount(CamelModel):
    value: str
    count: int
    label: str | None = None


class NumericRange(CamelModel):
    min: float
    max: float


class InvestmentRange(NumericRange):
    currencies: list[str] = Field(default_factory=list)


class FacetStats(CamelModel):
    """Per-dimension counts and ranges used to drive filter controls."""

    project_types: list[FacetCount]
    industries: list[FacetCount]
    countries: list[FacetCount]
    tags: list[FacetCount]
    features: list[FacetCount]
    year_range: NumericRange
    investment_range: InvestmentRange
    area_range: NumericRange


class InvestmentTotal(CamelModel):
    currency: str
    amount: float


class ViewedCase(CamelModel):
    id: str
    title: str
    views: int


class ViewStats(CamelModel):
    total_views: int
    average_views: float
    top_viewed: list[ViewedCase]


class CaseStats(CamelModel):
    total: int
    published: int
    featured: int
    showcase: int
    by_project_type: list[FacetCount]
    by_industry: list[FacetCount]
    by_country: list[FacetCount]
    by_year: list[FacetCount]
    total_investment: list[InvestmentTotal]
    total_area: float
    average_project_duration: float
    top_tags: list[FacetCount]
    view_stats: ViewStats


class ComparisonValue(CamelModel):
    case_id: str
    value: str
    unit: str | None = None


class ComparisonItem(CamelModel):
    name: str
    values: list[ComparisonValue]


class ComparisonCategory(CamelModel):
    category: str
    items: list[ComparisonItem]


class CaseComparison(CamelModel):
    cases: list[CaseRecord]
    comparison: list[ComparisonCategory]
