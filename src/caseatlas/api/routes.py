"""
API routes.

Thin HTTP adapter over the core; every handler loads the case store, calls one core
function and returns its result model (serialized with camelCase aliases).

Endpoints:
- GET  `/api/cases`: filtered/sorted/paginated listing (query-string filters)
- POST `/api/cases/query`: same, with a full `CaseQuery` body
- POST `/api/cases/search` and GET `/api/cases/search?q=`: ranked text search
- GET  `/api/cases/suggestions?q=`: typeahead suggestions
- GET  `/api/cases/map`: map points, bounds and clusters for a filtered set
- GET  `/api/cases/facets`, GET `/api/cases/stats`: aggregates
- POST `/api/cases/compare`: side-by-side comparison of 2..4 cases
- GET  `/api/cases/{case_id}` and `/api/cases/{case_id}/related`
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from caseatlas.catalog.repository import InMemoryCaseRepository, get_case
from caseatlas.config.overrides import apply_settings_overrides
from caseatlas.config.settings import get_settings
from caseatlas.core.errors import CaseNotFoundError
from caseatlas.domain.models import (
    CaseComparison,
    CaseQuery,
    CaseQueryResult,
    CaseRecord,
    CaseStats,
    CompareRequest,
    FacetStats,
    FilterSpec,
    MapPayload,
    ScaleRange,
    SearchRequest,
    SearchResult,
    SearchSuggestion,
    SortKey,
)
from caseatlas.mapping.projection import build_map_payload
from caseatlas.query.pipeline import apply_filters, compute_facet_stats
from caseatlas.query.service import compare_cases, compute_case_stats, query_cases
from caseatlas.search.ranking import advanced_search, find_related_cases, generate_search_suggestions

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def _repository() -> InMemoryCaseRepository:
    settings = get_settings()
    repo = InMemoryCaseRepository.from_catalog(settings.catalog.path)
    logger.info("Loaded case catalog: %d case(s) from %s", len(repo), settings.catalog.path)
    return repo


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Map core exceptions onto HTTP errors (400 bad input, 404 unknown case)."""
    try:
        yield
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": str(e)}) from e
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)}) from e


def _split(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [s.strip() for s in value.split(",") if s.strip()] or None


def _filters_from_params(
    *,
    project_type: str | None,
    industry: str | None,
    country: str | None,
    city: str | None,
    tags: str | None,
    is_featured: bool | None,
    is_showcase: bool | None,
    min_area: float | None,
    max_area: float | None,
    search: str | None,
) -> FilterSpec | None:
    scale = None
    if min_area is not None or max_area is not None:
        scale = ScaleRange(min_area=min_area, max_area=max_area)
    spec = FilterSpec(
        project_type=_split(project_type),
        industry=_split(industry),
        country=_split(country),
        city=_split(city),
        tags=_split(tags),
        is_featured=is_featured,
        is_showcase=is_showcase,
        project_scale=scale,
        search=search,
    )
    # Echo `null` rather than an all-empty object when nothing was requested.
    return spec if spec.model_dump(exclude_none=True) else None


@router.get("/api/cases", response_model=CaseQueryResult)
def list_cases(
    project_type: str | None = None,
    industry: str | None = None,
    country: str | None = None,
    city: str | None = None,
    tags: str | None = None,
    is_featured: bool | None = None,
    is_showcase: bool | None = None,
    min_area: float | None = None,
    max_area: float | None = None,
    search: str | None = None,
    sort_by: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> CaseQueryResult:
    """List cases; list-valued filters are comma separated (`?tags=outdoor,4k`)."""
    with _translate_errors():
        filters = _filters_from_params(
            project_type=project_type,
            industry=industry,
            country=country,
            city=city,
            tags=tags,
            is_featured=is_featured,
            is_showcase=is_showcase,
            min_area=min_area,
            max_area=max_area,
            search=search,
        )
        query = CaseQuery(filters=filters, sort_by=SortKey(sort_by) if sort_by else None, page=page, limit=limit)
        return query_cases(_repository(), query, settings=get_settings())


@router.post("/api/cases/query", response_model=CaseQueryResult)
def post_case_query(query: CaseQuery) -> CaseQueryResult:
    with _translate_errors():
        return query_cases(_repository(), query, settings=get_settings())


def _run_search(request: SearchRequest) -> list[SearchResult]:
    settings = apply_settings_overrides(get_settings(), request.settings_overrides)
    results = advanced_search(
        _repository().list_cases(),
        request.query,
        search_fields=request.search_fields,
        min_score=request.min_score,
        fuzzy_match=request.fuzzy_match,
        settings=settings,
    )
    return results[: request.limit or settings.search.max_results]


@router.post("/api/cases/search", response_model=list[SearchResult])
def post_search(request: SearchRequest) -> list[SearchResult]:
    with _translate_errors():
        return _run_search(request)


@router.get("/api/cases/search", response_model=list[SearchResult])
def get_search(q: str = "", limit: int | None = None) -> list[SearchResult]:
    with _translate_errors():
        return _run_search(SearchRequest(query=q, limit=limit))


@router.get("/api/cases/suggestions", response_model=list[SearchSuggestion])
def get_suggestions(q: str = "", limit: int | None = None) -> list[SearchSuggestion]:
    return generate_search_suggestions(_repository().list_cases(), q, limit, settings=get_settings())


@router.get("/api/cases/map", response_model=MapPayload)
def get_map(
    project_type: str | None = None,
    industry: str | None = None,
    country: str | None = None,
    tags: str | None = None,
    is_featured: bool | None = None,
    search: str | None = None,
    zoom: int | None = None,
    radius_km: float | None = None,
) -> MapPayload:
    """Map payload for the (optionally filtered) case set."""
    with _translate_errors():
        filters = _filters_from_params(
            project_type=project_type,
            industry=industry,
            country=country,
            city=None,
            tags=tags,
            is_featured=is_featured,
            is_showcase=None,
            min_area=None,
            max_area=None,
            search=search,
        )
        records = apply_filters(_repository().list_cases(), filters)
        return build_map_payload(records, zoom=zoom, radius_km=radius_km, settings=get_settings())


@router.get("/api/cases/facets", response_model=FacetStats)
def get_facets() -> FacetStats:
    return compute_facet_stats(_repository().list_cases())


@router.get("/api/cases/stats", response_model=CaseStats)
def get_stats() -> CaseStats:
    return compute_case_stats(_repository().list_cases())


@router.post("/api/cases/compare", response_model=CaseComparison)
def post_compare(request: CompareRequest) -> CaseComparison:
    with _translate_errors():
        return compare_cases(_repository(), request.case_ids, settings=get_settings())


@router.get("/api/cases/{case_id}", response_model=CaseRecord)
def get_case_detail(case_id: str) -> CaseRecord:
    with _translate_errors():
        return get_case(_repository(), case_id)


@router.get("/api/cases/{case_id}/related", response_model=list[CaseRecord])
def get_related(case_id: str, limit: int | None = None) -> list[CaseRecord]:
    with _translate_errors():
        repo = _repository()
        return find_related_cases(repo.list_cases(), get_case(repo, case_id), limit, settings=get_settings())
