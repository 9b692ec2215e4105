# src/caseatlas/search/ranking.py
"""
Weighted multi-field search, suggestions and related cases.

Scoring model (explainable, like the rest of the ranking code):
- Each searchable field scores 0..1 against the query:
  exact (case-insensitive) match = 1.0,
  substring match = `substring_weight * len(query) / len(field)`,
  opt-in fuzzy match (`fuzzy_match=True`) = `fuzzy_weight * similarity` when the
  Levenshtein similarity exceeds `fuzzy_threshold`. Off by default, so every hit
  contains the query somewhere in its searched text.
  List fields (tags/features/solutions) take their best item.
- A record's score is `min(sum(weight * field_score) / number_of_fields, 1)`.
- Records scoring 0 or below `min_score` are dropped; results are ordered by score
  (descending), ties kept in input order.

Weights and thresholds come from `settings.search` so they can be tuned per request.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Sequence

from caseatlas.config.settings import SearchSettings, Settings, get_settings
from caseatlas.core.errors import InvalidArgumentError
from caseatlas.domain.models import (
    INDUSTRY_LABELS,
    CaseRecord,
    SearchField,
    SearchResult,
    SearchSuggestion,
)

logger = logging.getLogger(__name__)

_FIELD_VALUES: dict[str, Callable[[CaseRecord], str | list[str]]] = {
    "title": lambda r: r.title,
    "summary": lambda r: r.summary,
    "description": lambda r: r.full_description,
    "customer": lambda r: r.customer.name,
    "tags": lambda r: r.tags,
    "features": lambda r: r.features,
    "solutions": lambda r: r.solutions,
}

_SUGGESTION_TYPE_ORDER = {"case": 1, "customer": 2, "location": 3, "industry": 4, "tag": 5}


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance (insert/delete/substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """1 - edit_distance / len(longer); 1.0 for two empty strings."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - edit_distance(a, b)) / longer


def field_score(value: str, term: str, *, fuzzy_match: bool, search: SearchSettings) -> float:
    """Score one text value against an already lower-cased, stripped term."""
    text = value.lower()
    if not text:
        return 0.0
    if text == term:
        return 1.0
    if term in text:
        return search.substring_weight * (len(term) / len(text))
    if fuzzy_match:
        similarity = string_similarity(text, term)
        if similarity > search.fuzzy_threshold:
            return search.fuzzy_weight * similarity
    return 0.0


def _list_field_score(values: list[str], term: str, *, fuzzy_match: bool, search: SearchSettings) -> float:
    return max((field_score(v, term, fuzzy_match=fuzzy_match, search=search) for v in values), default=0.0)


def score_record(
    record: CaseRecord,
    term: str,
    fields: Sequence[SearchField],
    *,
    fuzzy_match: bool,
    search: SearchSettings,
) -> float:
    total = 0.0
    for name in fields:
        value = _FIELD_VALUES[name](record)
        if isinstance(value, list):
            s = _list_field_score(value, term, fuzzy_match=fuzzy_match, search=search)
        else:
            s = field_score(value, term, fuzzy_match=fuzzy_match, search=search)
        total += search.field_weights.get(name, 1.0) * s
    return clamp01(total / len(fields))


def advanced_search(
    records: Sequence[CaseRecord],
    query: str,
    *,
    search_fields: Sequence[SearchField] | None = None,
    min_score: float | None = None,
    fuzzy_match: bool | None = None,
    settings: Settings | None = None,
) -> list[SearchResult]:
    """Rank records against a free-text query. Blank queries return []."""
    settings = settings or get_settings()
    search = settings.search

    term = (query or "").strip().lower()
    if not term:
        return []

    fields = list(search_fields) if search_fields is not None else list(search.default_fields)
    if not fields:
        raise InvalidArgumentError("search_fields must not be empty")
    unknown = [f for f in fields if f not in _FIELD_VALUES]
    if unknown:
        raise InvalidArgumentError(f"Unknown search field(s): {', '.join(map(str, unknown))}")

    threshold = search.min_score if min_score is None else float(min_score)
    fuzzy = search.fuzzy_match if fuzzy_match is None else bool(fuzzy_match)

    results: list[SearchResult] = []
    for record in records:
        score = score_record(record, term, fields, fuzzy_match=fuzzy, search=search)
        if score <= 0 or score < threshold:
            continue
        results.append(SearchResult(case=record, score=score))

    results.sort(key=lambda r: r.score, reverse=True)
    logger.debug("advanced_search %r: %d of %d record(s) matched", term, len(results), len(records))
    return results


def _slug(text: str) -> str:
    return re.sub(r"\s+", "-", text.strip().lower())


def generate_search_suggestions(
    records: Sequence[CaseRecord],
    query: str,
    limit: int | None = None,
    *,
    settings: Settings | None = None,
) -> list[SearchSuggestion]:
    """Typeahead suggestions drawn from titles, customers, locations, industries and tags."""
    settings = settings or get_settings()
    limit = settings.search.suggestion_limit if limit is None else limit

    term = (query or "").strip().lower()
    if len(term) < settings.search.suggestion_min_length or limit < 1:
        return []

    # (type, id) -> suggestion; counts accumulate across records sharing a value.
    found: dict[tuple[str, str], SearchSuggestion] = {}

    def _add(kind: str, ident: str, text: str, description: str | None = None) -> None:
        key = (kind, ident)
        existing = found.get(key)
        if existing is None:
            found[key] = SearchSuggestion(type=kind, id=ident, text=text, description=description, count=1)
        else:
            existing.count = (existing.count or 0) + 1

    for r in records:
        if term in r.title.lower():
            _add("case", r.id, r.title, r.customer.name)
    for r in records:
        if term in r.customer.name.lower():
            _add("customer", _slug(r.customer.name), r.customer.name)
    for r in records:
        location = f"{r.location.city}, {r.location.country}"
        if term in location.lower():
            _add("location", _slug(location), location)
    for r in records:
        label = INDUSTRY_LABELS[r.industry]
        if term in label.lower() or term in r.industry.value:
            _add("industry", r.industry.value, label)
    for r in records:
        for tag in r.tags:
            if term in tag.lower():
                _add("tag", tag, tag)

    ordered = sorted(
        found.values(),
        key=lambda s: (
            s.text.lower() != term,
            _SUGGESTION_TYPE_ORDER[s.type],
            -(s.count or 0),
        ),
    )
    return ordered[:limit]


def find_related_cases(
    records: Sequence[CaseRecord],
    case: CaseRecord,
    limit: int | None = None,
    *,
    settings: Settings | None = None,
) -> list[CaseRecord]:
    """Other cases sharing tags, industry or project type with `case`.

    Relevance = shared tag count + 2 (same industry) + 1 (same project type);
    records with no overlap are left out.
    """
    settings = settings or get_settings()
    limit = settings.search.related_limit if limit is None else limit
    if limit < 1:
        return []

    tags = set(case.tags)
    scored: list[tuple[int, CaseRecord]] = []
    for other in records:
        if other.id == case.id:
            continue
        relevance = len(tags.intersection(other.tags))
        if other.industry == case.industry:
            relevance += 2
        if other.project_type == case.project_type:
            relevance += 1
        if relevance > 0:
            scored.append((relevance, other))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [r for _, r in scored[:limit]]
