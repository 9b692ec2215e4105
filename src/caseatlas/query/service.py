from __future__ import annotations

# Orchestration on top of the pure pipeline:
# - `query_cases`: filters -> sort -> page window, with defaults from settings
# - `compute_case_stats`: dashboard-style aggregates over a record set
# - `compare_cases`: side-by-side metrics for 2..4 cases
#
# The case store is always passed in (a `CaseRepository`); nothing here keeps state.

import logging
from collections import defaultdict
from typing import Sequence

from caseatlas.catalog.repository import CaseRepository, get_case
from caseatlas.config.overrides import apply_settings_overrides
from caseatlas.config.settings import Settings, get_settings
from caseatlas.core.errors import InvalidArgumentError
from caseatlas.core.geo import format_coordinates, location_display_name
from caseatlas.domain.models import (
    INDUSTRY_LABELS,
    PROJECT_TYPE_LABELS,
    CaseComparison,
    CaseQuery,
    CaseQueryResult,
    CaseRecord,
    CaseStats,
    CaseStatus,
    ComparisonCategory,
    ComparisonItem,
    ComparisonValue,
    FacetCount,
    IndustryType,
    InvestmentTotal,
    ProjectType,
    ViewedCase,
    ViewStats,
)
from caseatlas.query.pipeline import apply_filters, count_values, paginate, sort_records

logger = logging.getLogger(__name__)

TOP_TAGS = 10
TOP_VIEWED = 5


def query_cases(
    repository: CaseRepository,
    query: CaseQuery,
    *,
    settings: Settings | None = None,
) -> CaseQueryResult:
    """Run one listing query against the store."""
    settings = settings or get_settings()
    settings = apply_settings_overrides(settings, query.settings_overrides)

    limit = query.limit if query.limit is not None else settings.query.default_limit
    if limit > settings.query.max_limit:
        raise InvalidArgumentError(f"limit must not exceed {settings.query.max_limit}, got {limit}")
    sort_by = query.sort_by or settings.query.default_sort

    records = repository.list_cases()
    filtered = apply_filters(records, query.filters)
    ordered = sort_records(filtered, sort_by)
    page = paginate(ordered, query.page, limit)

    logger.debug(
        "query_cases: %d matched of %d, sort=%s page=%d/%d",
        page.total,
        len(records),
        sort_by.value,
        page.page,
        page.total_pages,
    )
    return CaseQueryResult(**dict(page), filters=query.filters, sort_by=sort_by)


def _facets(pairs: list[tuple[str, int]], labels: dict | None = None, enum_type: type | None = None) -> list[FacetCount]:
    out = []
    for value, count in pairs:
        label = labels[enum_type(value)] if labels is not None and enum_type is not None else None
        out.append(FacetCount(value=value, count=count, label=label))
    return out


def compute_case_stats(records: Sequence[CaseRecord]) -> CaseStats:
    """Dashboard aggregates (totals, breakdowns, investment, views)."""
    investment: dict[str, float] = defaultdict(float)
    durations: list[int] = []
    for r in records:
        scale = r.project_scale
        if scale.total_investment:
            investment[scale.currency or "USD"] += scale.total_investment
        if r.project_end_date is not None and r.project_end_date >= r.project_start_date:
            durations.append((r.project_end_date - r.project_start_date).days)

    total_views = sum(r.view_count for r in records)
    top_viewed = sorted(records, key=lambda r: r.view_count, reverse=True)[:TOP_VIEWED]
    by_year = sorted(count_values(str(r.project_start_date.year) for r in records), key=lambda kv: kv[0])

    return CaseStats(
        total=len(records),
        published=sum(1 for r in records if r.status == CaseStatus.PUBLISHED),
        featured=sum(1 for r in records if r.is_featured),
        showcase=sum(1 for r in records if r.is_showcase),
        by_project_type=_facets(
            count_values(r.project_type.value for r in records), PROJECT_TYPE_LABELS, ProjectType
        ),
        by_industry=_facets(count_values(r.industry.value for r in records), INDUSTRY_LABELS, IndustryType),
        by_country=_facets(count_values(r.location.country for r in records)),
        by_year=_facets(by_year),
        total_investment=[InvestmentTotal(currency=c, amount=a) for c, a in investment.items()],
        total_area=sum(r.project_scale.total_screen_area for r in records),
        average_project_duration=(sum(durations) / len(durations)) if durations else 0.0,
        top_tags=_facets(count_values(t for r in records for t in r.tags)[:TOP_TAGS]),
        view_stats=ViewStats(
            total_views=total_views,
            average_views=(total_views / len(records)) if records else 0.0,
            top_viewed=[ViewedCase(id=r.id, title=r.title, views=r.view_count) for r in top_viewed],
        ),
    )


def _row(name: str, cases: list[CaseRecord], render, unit: str | None = None) -> ComparisonItem:
    return ComparisonItem(
        name=name,
        values=[ComparisonValue(case_id=c.id, value=render(c), unit=unit) for c in cases],
    )


def _fmt_number(value: float | int | None) -> str:
    if value is None:
        return "-"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def compare_cases(
    repository: CaseRepository,
    case_ids: Sequence[str],
    *,
    settings: Settings | None = None,
) -> CaseComparison:
    """Build a side-by-side comparison of the given cases.

    Raises InvalidArgumentError for fewer than `compare.min_cases`, more than
    `compare.max_cases`, or duplicate ids; CaseNotFoundError for unknown ids.
    """
    settings = settings or get_settings()
    ids = list(case_ids)
    if len(ids) < settings.compare.min_cases:
        raise InvalidArgumentError(f"At least {settings.compare.min_cases} cases are required for comparison")
    if len(ids) > settings.compare.max_cases:
        raise InvalidArgumentError(f"Cannot compare more than {settings.compare.max_cases} cases")
    if len(set(ids)) != len(ids):
        raise InvalidArgumentError("Case ids to compare must be distinct")

    cases = [get_case(repository, case_id) for case_id in ids]

    def _duration(c: CaseRecord) -> str:
        if c.project_end_date is None:
            return "-"
        return str((c.project_end_date - c.project_start_date).days)

    comparison = [
        ComparisonCategory(
            category="Overview",
            items=[
                _row("Customer", cases, lambda c: c.customer.name),
                _row("Project type", cases, lambda c: PROJECT_TYPE_LABELS[c.project_type]),
                _row("Industry", cases, lambda c: INDUSTRY_LABELS[c.industry]),
                _row("Location", cases, lambda c: location_display_name(c.location)),
                _row(
                    "Coordinates",
                    cases,
                    lambda c: format_coordinates(c.location.latitude, c.location.longitude),
                ),
            ],
        ),
        ComparisonCategory(
            category="Scale",
            items=[
                _row("Screen area", cases, lambda c: _fmt_number(c.project_scale.total_screen_area), unit="m²"),
                _row("Screens", cases, lambda c: _fmt_number(c.project_scale.number_of_screens)),
                _row(
                    "Investment",
                    cases,
                    lambda c: (
                        f"{_fmt_number(c.project_scale.total_investment)} {c.project_scale.currency or ''}".strip()
                        if c.project_scale.total_investment is not None
                        else "-"
                    ),
                ),
            ],
        ),
        ComparisonCategory(
            category="Timeline",
            items=[
                _row("Start date", cases, lambda c: c.project_start_date.isoformat()),
                _row("Duration", cases, _duration, unit="days"),
            ],
        ),
        ComparisonCategory(
            category="Engagement",
            items=[_row("Views", cases, lambda c: _fmt_number(c.view_count))],
        ),
    ]
    return CaseComparison(cases=cases, comparison=comparison)
