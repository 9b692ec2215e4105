from __future__ import annotations

import pytest

from caseatlas.config.settings import get_settings
from caseatlas.core.errors import InvalidArgumentError
from caseatlas.query.pipeline import searchable_text
from caseatlas.search.ranking import (
    advanced_search,
    edit_distance,
    find_related_cases,
    generate_search_suggestions,
    string_similarity,
)


def test_edit_distance_and_similarity():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3
    assert string_similarity("", "") == 1.0
    assert string_similarity("times square", "tmes square") == pytest.approx(11 / 12)


def test_exact_title_match_scores_weight_over_field_count(make_case):
    record = make_case("ts", title="Times Square", customer={"name": "Acme"})
    results = advanced_search([record], "  TIMES square ")
    assert len(results) == 1
    # title weight 3 * 1.0, averaged over the six default fields.
    assert results[0].score == pytest.approx(0.5)


def test_substring_match_scales_with_coverage(make_case):
    record = make_case("ts", title="Times Square", customer={"name": "Acme"})
    results = advanced_search([record], "times")
    assert results[0].score == pytest.approx(3 * 0.8 * (5 / 12) / 6)


def test_fuzzy_match_is_opt_in(make_case):
    record = make_case("ts", title="Times Square", customer={"name": "Acme"})

    fuzzy = advanced_search([record], "tmes square", fuzzy_match=True)
    assert fuzzy[0].score == pytest.approx(3 * 0.6 * (11 / 12) / 6)

    assert advanced_search([record], "tmes square") == []
    assert advanced_search([record], "tmes square", fuzzy_match=False) == []


def test_default_search_hits_all_contain_the_query(make_case):
    records = [
        make_case("typo", title="Tines Square", customer={"name": "Acme"}),
        make_case("tag", tags=["Time Square"], customer={"name": "Acme"}),
        make_case("title", title="Times Square Billboard", customer={"name": "Acme"}),
        make_case("summary", summary="Lit up Times Square at night", customer={"name": "Acme"}),
    ]

    results = advanced_search(records, "Times Square")

    assert [r.case.id for r in results] == ["title", "summary"]
    assert all("times square" in searchable_text(r.case) for r in results)


def test_results_are_ranked_by_score_then_input_order(make_case):
    partial = make_case("partial", title="Times Square Billboard", customer={"name": "Acme"})
    exact = make_case("exact", title="Times Square", customer={"name": "Acme"})
    twin = make_case("twin", title="Times Square", customer={"name": "Acme"})
    unrelated = make_case("none", title="Harbour Bridge", customer={"name": "Acme"})

    results = advanced_search([partial, exact, unrelated, twin], "times square")

    assert [r.case.id for r in results] == ["exact", "twin", "partial"]
    assert all(0 < r.score <= 1 for r in results)


def test_min_score_drops_weak_matches(make_case):
    partial = make_case("partial", title="Times Square Billboard", customer={"name": "Acme"})
    exact = make_case("exact", title="Times Square", customer={"name": "Acme"})
    results = advanced_search([partial, exact], "times square", min_score=0.3)
    assert [r.case.id for r in results] == ["exact"]


def test_score_is_clamped_to_one(make_case):
    record = make_case("acme", customer={"name": "Acme"})
    results = advanced_search([record], "acme", search_fields=["customer"])
    assert results[0].score == 1.0


def test_solutions_are_searchable_only_when_requested(make_case):
    record = make_case("s", solutions=["Remote content management"], customer={"name": "Acme"})
    assert advanced_search([record], "remote content") == []
    assert advanced_search([record], "remote content", search_fields=["solutions"])


def test_blank_query_returns_nothing(city_cases):
    assert advanced_search(city_cases, "") == []
    assert advanced_search(city_cases, "   ") == []


def test_search_fields_must_be_known_and_non_empty(city_cases):
    with pytest.raises(InvalidArgumentError):
        advanced_search(city_cases, "times", search_fields=[])
    with pytest.raises(InvalidArgumentError, match="colour"):
        advanced_search(city_cases, "times", search_fields=["colour"])


def test_search_weights_come_from_settings(make_case):
    record = make_case("ts", title="Times Square", customer={"name": "Acme"})
    settings = get_settings().model_copy(deep=True)
    settings.search.field_weights["title"] = 6.0
    results = advanced_search([record], "times square", settings=settings)
    assert results[0].score == pytest.approx(1.0)


def test_suggestions_order_cases_before_customers(city_cases):
    suggestions = generate_search_suggestions(city_cases, "times")
    assert [(s.type, s.id) for s in suggestions] == [("case", "nyc-1"), ("customer", "times-square-media")]
    assert suggestions[0].description == "Times Square Media"


def test_suggestions_accumulate_counts_per_value(city_cases):
    suggestions = generate_search_suggestions(city_cases, "new york")
    assert len(suggestions) == 1
    assert suggestions[0].type == "location"
    assert suggestions[0].text == "New York, United States"
    assert suggestions[0].count == 2


def test_suggestions_put_exact_text_matches_first(city_cases):
    suggestions = generate_search_suggestions(city_cases, "retail")
    assert [(s.type, s.text) for s in suggestions] == [
        ("industry", "Retail"),
        ("tag", "retail"),
        ("case", "Oxford Street Retail Wall"),
    ]


def test_suggestions_short_query_and_limit(city_cases):
    assert generate_search_suggestions(city_cases, "t") == []
    assert len(generate_search_suggestions(city_cases, "advert", limit=1)) == 1
    assert generate_search_suggestions(city_cases, "advert", limit=0) == []


def test_find_related_cases_ranks_by_overlap(make_case):
    case = make_case(
        "me", tags=["outdoor", "4k"], industry="advertising", project_type="outdoor_advertising"
    )
    same_industry = make_case("industry", industry="advertising")
    shared_tags = make_case("tags", tags=["4k", "outdoor"], industry="retail")
    same_type = make_case("type", project_type="outdoor_advertising")
    unrelated = make_case("none", industry="retail")

    related = find_related_cases(
        [case, unrelated, same_type, same_industry, shared_tags],
        case,
    )

    assert [r.id for r in related] == ["industry", "tags", "type"]
    assert find_related_cases([case, same_type], case, limit=0) == []
