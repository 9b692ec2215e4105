from __future__ import annotations

from datetime import date

import pytest

from caseatlas.catalog.repository import InMemoryCaseRepository
from caseatlas.config.settings import get_settings
from caseatlas.core.errors import CaseNotFoundError, InvalidArgumentError
from caseatlas.domain.models import CaseQuery, FilterSpec, SortKey
from caseatlas.query.service import compare_cases, compute_case_stats, query_cases


@pytest.fixture
def repo(city_cases):
    return InMemoryCaseRepository(city_cases)


def test_query_cases_uses_configured_defaults(repo):
    result = query_cases(repo, CaseQuery())

    settings = get_settings()
    assert result.sort_by == settings.query.default_sort
    assert result.limit == settings.query.default_limit
    assert result.total == 4
    assert result.filters is None


def test_query_cases_filters_sorts_and_pages(repo):
    query = CaseQuery(
        filters=FilterSpec(tags=["indoor", "outdoor"]),
        sort_by=SortKey.VIEW_COUNT_DESC,
        page=2,
        limit=2,
    )
    result = query_cases(repo, query)

    assert [c.id for c in result.items] == ["nyc-2", "tokyo-1"]
    assert (result.page, result.total, result.total_pages) == (2, 4, 2)
    assert result.has_prev_page and not result.has_next_page
    assert result.filters == query.filters


def test_query_cases_rejects_limit_above_max(repo):
    with pytest.raises(InvalidArgumentError, match="must not exceed"):
        query_cases(repo, CaseQuery(limit=get_settings().query.max_limit + 1))


def test_query_cases_rejects_page_zero(repo):
    with pytest.raises(InvalidArgumentError):
        query_cases(repo, CaseQuery(page=0))


def test_query_cases_applies_settings_overrides(repo):
    query = CaseQuery(settings_overrides={"query": {"default_limit": 1, "default_sort": "title_asc"}})
    result = query_cases(repo, query)
    assert result.limit == 1
    assert result.sort_by == SortKey.TITLE_ASC
    assert [c.id for c in result.items] == ["nyc-2"]


def test_query_cases_rejects_max_limit_override(repo):
    with pytest.raises(ValueError, match=r"query\.max_limit"):
        query_cases(repo, CaseQuery(settings_overrides={"query": {"max_limit": 10_000}}))


def test_compute_case_stats(make_case):
    records = [
        make_case(
            "a",
            status="published",
            is_featured=True,
            view_count=10,
            tags=["outdoor"],
            project_scale={"total_screen_area": 100, "total_investment": 1000, "currency": "USD"},
            project_start_date=date(2022, 1, 1),
            project_end_date=date(2022, 1, 11),
        ),
        make_case(
            "b",
            status="draft",
            view_count=30,
            tags=["outdoor", "indoor"],
            project_scale={"total_screen_area": 50, "total_investment": 500},
            project_start_date=date(2023, 1, 1),
            project_end_date=date(2023, 1, 31),
        ),
        make_case(
            "c",
            is_showcase=True,
            project_scale={"total_screen_area": 25, "total_investment": 200, "currency": "EUR"},
            project_start_date=date(2022, 6, 1),
        ),
    ]

    stats = compute_case_stats(records)

    assert (stats.total, stats.published, stats.featured, stats.showcase) == (3, 2, 1, 1)
    assert stats.total_area == 175
    assert {t.currency: t.amount for t in stats.total_investment} == {"USD": 1500, "EUR": 200}
    assert stats.average_project_duration == pytest.approx(20)
    assert [(f.value, f.count) for f in stats.by_year] == [("2022", 2), ("2023", 1)]
    assert [(f.value, f.count) for f in stats.top_tags] == [("outdoor", 2), ("indoor", 1)]
    assert stats.view_stats.total_views == 40
    assert stats.view_stats.average_views == pytest.approx(40 / 3)
    assert [v.id for v in stats.view_stats.top_viewed] == ["b", "a", "c"]
    assert stats.by_industry[0].label == "Corporate"


def test_compute_case_stats_empty():
    stats = compute_case_stats([])
    assert stats.total == 0
    assert stats.view_stats.average_views == 0
    assert stats.average_project_duration == 0


def test_compare_cases_builds_aligned_rows(repo):
    comparison = compare_cases(repo, ["nyc-1", "london-1"])

    assert [c.id for c in comparison.cases] == ["nyc-1", "london-1"]
    assert [cat.category for cat in comparison.comparison] == ["Overview", "Scale", "Timeline", "Engagement"]
    for category in comparison.comparison:
        for item in category.items:
            assert [v.case_id for v in item.values] == ["nyc-1", "london-1"]

    overview = {item.name: [v.value for v in item.values] for item in comparison.comparison[0].items}
    assert overview["Customer"] == ["Times Square Media", "Customer london-1"]
    assert overview["Location"] == ["New York, NY, United States", "London, United Kingdom"]


@pytest.mark.parametrize("ids", [["nyc-1"], ["nyc-1", "nyc-2", "london-1", "tokyo-1", "nyc-1"], ["nyc-1", "nyc-1"]])
def test_compare_cases_rejects_bad_id_lists(repo, ids):
    with pytest.raises(InvalidArgumentError):
        compare_cases(repo, ids)


def test_compare_cases_unknown_id(repo):
    with pytest.raises(CaseNotFoundError, match="missing"):
        compare_cases(repo, ["nyc-1", "missing"])
