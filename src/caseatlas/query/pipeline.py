"""
Filter / sort / paginate pipeline over case records.

Every function here is pure: it takes a sequence of records and returns a new list
(or result model) without touching its input.

- `apply_filters`: AND of the predicates present in a `FilterSpec`
- `sort_records`: stable ordering by a `SortKey`
- `paginate`: 1-indexed page window + page metadata
- `compute_facet_stats`: counts/ranges used to drive filter controls
"""

from __future__ import annotations

import logging
import math
import unicodedata
from datetime import date
from typing import Any, Callable, Iterable, Sequence

from caseatlas.core.errors import InvalidArgumentError
from caseatlas.domain.models import (
    INDUSTRY_LABELS,
    PROJECT_TYPE_LABELS,
    CaseRecord,
    FacetCount,
    FacetStats,
    FilterSpec,
    IndustryType,
    InvestmentRange,
    NumericRange,
    PageResult,
    ProjectType,
    SortKey,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[CaseRecord], bool]


def searchable_text(record: CaseRecord) -> str:
    """Lower-cased haystack used by the plain `search` filter."""
    parts = [
        record.title,
        record.summary,
        record.full_description,
        record.customer.name,
        *record.tags,
        *record.features,
        *record.solutions,
    ]
    return " ".join(parts).lower()


_DATE_GETTERS: dict[str, Callable[[CaseRecord], date | None]] = {
    "projectStartDate": lambda r: r.project_start_date,
    "projectEndDate": lambda r: r.project_end_date,
    "createdAt": lambda r: r.created_at,
    # Records without a publish date fall back to their creation date.
    "publishedAt": lambda r: r.published_at or r.created_at,
    "updatedAt": lambda r: r.updated_at,
}


def _build_predicates(spec: FilterSpec) -> list[Predicate]:
    predicates: list[Predicate] = []

    if spec.project_type:
        project_types = set(spec.project_type)
        predicates.append(lambda r: r.project_type in project_types)
    if spec.industry:
        industries = set(spec.industry)
        predicates.append(lambda r: r.industry in industries)
    if spec.status:
        statuses = set(spec.status)
        predicates.append(lambda r: r.status in statuses)
    if spec.country:
        countries = set(spec.country)
        predicates.append(lambda r: r.location.country in countries)
    if spec.region:
        regions = set(spec.region)
        predicates.append(lambda r: r.location.state is not None and r.location.state in regions)
    if spec.city:
        cities = set(spec.city)
        predicates.append(lambda r: r.location.city in cities)
    # Tags and features match when the record shares at least one requested value.
    if spec.tags:
        tags = set(spec.tags)
        predicates.append(lambda r: not tags.isdisjoint(r.tags))
    if spec.features:
        features = set(spec.features)
        predicates.append(lambda r: not features.isdisjoint(r.features))
    if spec.is_featured is not None:
        is_featured = spec.is_featured
        predicates.append(lambda r: r.is_featured == is_featured)
    if spec.is_showcase is not None:
        is_showcase = spec.is_showcase
        predicates.append(lambda r: r.is_showcase == is_showcase)

    scale = spec.project_scale
    if scale is not None:
        if scale.min_area is not None:
            min_area = scale.min_area
            predicates.append(lambda r: r.project_scale.total_screen_area >= min_area)
        if scale.max_area is not None:
            max_area = scale.max_area
            predicates.append(lambda r: r.project_scale.total_screen_area <= max_area)
        # Records without an investment figure never satisfy an investment bound.
        if scale.min_investment is not None:
            min_inv = scale.min_investment
            predicates.append(
                lambda r: r.project_scale.total_investment is not None
                and r.project_scale.total_investment >= min_inv
            )
        if scale.max_investment is not None:
            max_inv = scale.max_investment
            predicates.append(
                lambda r: r.project_scale.total_investment is not None
                and r.project_scale.total_investment <= max_inv
            )

    if spec.date_range is not None:
        get_date = _DATE_GETTERS[spec.date_range.field]
        start, end = spec.date_range.start, spec.date_range.end

        def _in_range(r: CaseRecord) -> bool:
            d = get_date(r)
            return d is not None and start <= d <= end

        predicates.append(_in_range)

    if spec.search and spec.search.strip():
        term = spec.search.strip().lower()
        predicates.append(lambda r: term in searchable_text(r))

    return predicates


def apply_filters(records: Sequence[CaseRecord], spec: FilterSpec | None) -> list[CaseRecord]:
    """Return records matching every present predicate in `spec`, in input order."""
    if spec is None:
        return list(records)
    predicates = _build_predicates(spec)
    out = [r for r in records if all(p(r) for p in predicates)]
    logger.debug("apply_filters: %d predicate(s), %d -> %d record(s)", len(predicates), len(records), len(out))
    return out


def title_sort_key(title: str) -> str:
    """Locale-style collation key: accents folded, case-insensitive."""
    decomposed = unicodedata.normalize("NFKD", title)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _date_or_min(d: date | None) -> date:
    return d if d is not None else date.min


# SortKey -> (key function, reverse). Python's sort is stable in both directions, so
# ties keep input order.
_SORTS: dict[SortKey, tuple[Callable[[CaseRecord], Any], bool]] = {
    SortKey.TITLE_ASC: (lambda r: title_sort_key(r.title), False),
    SortKey.TITLE_DESC: (lambda r: title_sort_key(r.title), True),
    SortKey.PROJECT_DATE_ASC: (lambda r: r.project_start_date, False),
    SortKey.PROJECT_DATE_DESC: (lambda r: r.project_start_date, True),
    SortKey.CREATED_ASC: (lambda r: _date_or_min(r.created_at), False),
    SortKey.CREATED_DESC: (lambda r: _date_or_min(r.created_at), True),
    SortKey.UPDATED_ASC: (lambda r: _date_or_min(r.updated_at), False),
    SortKey.UPDATED_DESC: (lambda r: _date_or_min(r.updated_at), True),
    SortKey.VIEW_COUNT_ASC: (lambda r: r.view_count, False),
    SortKey.VIEW_COUNT_DESC: (lambda r: r.view_count, True),
    SortKey.INVESTMENT_ASC: (lambda r: r.project_scale.total_investment or 0.0, False),
    SortKey.INVESTMENT_DESC: (lambda r: r.project_scale.total_investment or 0.0, True),
    SortKey.AREA_ASC: (lambda r: r.project_scale.total_screen_area, False),
    SortKey.AREA_DESC: (lambda r: r.project_scale.total_screen_area, True),
    # Stable partitions: flagged records first, relative order otherwise untouched.
    SortKey.FEATURED: (lambda r: not r.is_featured, False),
    SortKey.SHOWCASE: (lambda r: not r.is_showcase, False),
}


def sort_records(records: Sequence[CaseRecord], key: SortKey | str) -> list[CaseRecord]:
    """Return a stably sorted copy of `records`."""
    try:
        sort_key = SortKey(key)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown sort key '{key}'") from e
    key_fn, reverse = _SORTS[sort_key]
    return sorted(records, key=key_fn, reverse=reverse)


def paginate(records: Sequence[CaseRecord], page: int = 1, limit: int = 12) -> PageResult:
    """Slice `records` to the 1-indexed page `[(page-1)*limit, page*limit)`.

    Pages past the end come back empty with correct totals.
    """
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise InvalidArgumentError(f"page must be an integer >= 1, got {page!r}")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidArgumentError(f"limit must be an integer >= 1, got {limit!r}")

    total = len(records)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit
    return PageResult(
        items=list(records[start : start + limit]),
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1 and total > 0,
    )


def count_values(values: Iterable[str]) -> list[tuple[str, int]]:
    """Count values, most frequent first; ties keep first-seen order."""
    counts: dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return sorted(counts.items(), key=lambda kv: -kv[1])


def _range(values: list[float]) -> NumericRange:
    if not values:
        return NumericRange(min=0, max=0)
    return NumericRange(min=min(values), max=max(values))


def compute_facet_stats(records: Sequence[CaseRecord]) -> FacetStats:
    """Aggregate per-dimension counts plus year/investment/area ranges."""
    investments = [
        r.project_scale.total_investment for r in records if r.project_scale.total_investment
    ]
    currencies = list(
        dict.fromkeys(
            r.project_scale.currency
            for r in records
            if r.project_scale.total_investment and r.project_scale.currency
        )
    )
    investment = _range(investments)

    return FacetStats(
        project_types=[
            FacetCount(value=v, count=c, label=PROJECT_TYPE_LABELS[ProjectType(v)])
            for v, c in count_values(r.project_type.value for r in records)
        ],
        industries=[
            FacetCount(value=v, count=c, label=INDUSTRY_LABELS[IndustryType(v)])
            for v, c in count_values(r.industry.value for r in records)
        ],
        countries=[FacetCount(value=v, count=c) for v, c in count_values(r.location.country for r in records)],
        tags=[FacetCount(value=v, count=c) for v, c in count_values(t for r in records for t in r.tags)],
        features=[
            FacetCount(value=v, count=c) for v, c in count_values(f for r in records for f in r.features)
        ],
        year_range=_range([r.project_start_date.year for r in records]),
        investment_range=InvestmentRange(min=investment.min, max=investment.max, currencies=currencies),
        area_range=_range([r.project_scale.total_screen_area for r in records]),
    )
