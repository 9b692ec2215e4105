"""
CaseAtlas CLI entrypoint.

Quick local queries against a case catalog without running the API. Every
subcommand loads the catalog into an `InMemoryCaseRepository` and delegates to the
same core functions the HTTP layer uses.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from pydantic import BaseModel

from caseatlas.catalog.repository import InMemoryCaseRepository
from caseatlas.config.settings import get_settings
from caseatlas.core.errors import CaseNotFoundError, InvalidArgumentError
from caseatlas.core.geo import find_cases_within_radius
from caseatlas.core.logging import configure_logging
from caseatlas.domain.models import CaseQuery, FilterSpec, ScaleRange, SortKey
from caseatlas.mapping.projection import build_map_payload
from caseatlas.query.pipeline import apply_filters, compute_facet_stats
from caseatlas.query.service import compare_cases, compute_case_stats, query_cases
from caseatlas.search.ranking import advanced_search, generate_search_suggestions


def _print_json(payload: Any) -> None:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True)
    elif isinstance(payload, list):
        payload = [p.model_dump(mode="json", by_alias=True) if isinstance(p, BaseModel) else p for p in payload]
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _repository(args: argparse.Namespace) -> InMemoryCaseRepository:
    return InMemoryCaseRepository.from_catalog(args.catalog or get_settings().catalog.path)


def _filters(args: argparse.Namespace) -> FilterSpec | None:
    scale = None
    if args.min_area is not None or args.max_area is not None:
        scale = ScaleRange(min_area=args.min_area, max_area=args.max_area)
    spec = FilterSpec(
        project_type=args.project_type or None,
        industry=args.industry or None,
        country=args.country or None,
        tags=args.tag or None,
        is_featured=True if args.featured else None,
        project_scale=scale,
        search=args.search,
    )
    return spec if spec.model_dump(exclude_none=True) else None


def _cmd_query(args: argparse.Namespace) -> int:
    query = CaseQuery(
        filters=_filters(args),
        sort_by=SortKey(args.sort) if args.sort else None,
        page=int(args.page),
        limit=int(args.limit) if args.limit is not None else None,
    )
    result = query_cases(_repository(args), query)
    if args.json:
        _print_json(result)
        return 0

    print(f"{result.total} case(s), page {result.page}/{max(result.total_pages, 1)}")
    for i, case in enumerate(result.items, start=(result.page - 1) * result.limit + 1):
        flag = " *" if case.is_featured else ""
        print(f"{i:>3}. {case.title} - {case.customer.name} ({case.location.city}, {case.location.country}){flag}")
    return 0


def _cmd_search(args: argparse.Namespace) -> int:
    results = advanced_search(
        _repository(args).list_cases(),
        args.text,
        search_fields=args.field or None,
        min_score=args.min_score,
    )
    if args.json:
        _print_json(results)
        return 0
    for r in results:
        print(f"{r.score:.3f}  {r.case.title}  [{r.case.id}]")
    return 0


def _cmd_suggest(args: argparse.Namespace) -> int:
    _print_json(generate_search_suggestions(_repository(args).list_cases(), args.text, args.limit))
    return 0


def _cmd_map(args: argparse.Namespace) -> int:
    records = apply_filters(_repository(args).list_cases(), _filters(args))
    _print_json(build_map_payload(records, zoom=args.zoom, radius_km=args.radius_km))
    return 0


def _cmd_nearby(args: argparse.Namespace) -> int:
    records = find_cases_within_radius(_repository(args).list_cases(), args.lat, args.lon, args.radius_km)
    for r in records:
        print(f"{r.id}  {r.title} ({r.location.city}, {r.location.country})")
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    records = _repository(args).list_cases()
    _print_json(compute_facet_stats(records) if args.facets else compute_case_stats(records))
    return 0


def _cmd_compare(args: argparse.Namespace) -> int:
    _print_json(compare_cases(_repository(args), args.case_id))
    return 0


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--project-type", dest="project_type", action="append", default=[])
    p.add_argument("--industry", action="append", default=[])
    p.add_argument("--country", action="append", default=[])
    p.add_argument("--tag", action="append", default=[], help="Repeatable; matches any.")
    p.add_argument("--featured", action="store_true", help="Only featured cases")
    p.add_argument("--min-area", dest="min_area", type=float, default=None)
    p.add_argument("--max-area", dest="max_area", type=float, default=None)
    p.add_argument("--search", type=str, default=None, help="Plain substring filter")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CaseAtlas CLI."""
    parser = argparse.ArgumentParser(prog="caseatlas")
    parser.add_argument("--catalog", type=str, default=None, help="Catalog JSON (default from settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    q = sub.add_parser("query", help="Filter, sort and paginate cases.")
    _add_filter_args(q)
    q.add_argument("--sort", choices=[k.value for k in SortKey], default=None)
    q.add_argument("--page", type=int, default=1)
    q.add_argument("--limit", type=int, default=None)
    q.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    q.set_defaults(func=_cmd_query)

    s = sub.add_parser("search", help="Ranked free-text search.")
    s.add_argument("text")
    s.add_argument(
        "--field",
        action="append",
        default=[],
        choices=["title", "summary", "description", "customer", "tags", "features", "solutions"],
        help="Repeatable. Omit to search the default fields.",
    )
    s.add_argument("--min-score", dest="min_score", type=float, default=None)
    s.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    s.set_defaults(func=_cmd_search)

    sg = sub.add_parser("suggest", help="Typeahead suggestions for a partial query.")
    sg.add_argument("text")
    sg.add_argument("--limit", type=int, default=None)
    sg.set_defaults(func=_cmd_suggest)

    m = sub.add_parser("map", help="Map points, bounds and clusters (JSON).")
    _add_filter_args(m)
    m.add_argument("--zoom", type=int, default=None)
    m.add_argument("--radius-km", dest="radius_km", type=float, default=None)
    m.set_defaults(func=_cmd_map)

    n = sub.add_parser("nearby", help="Cases within a radius of a point.")
    n.add_argument("--lat", required=True, type=float)
    n.add_argument("--lon", required=True, type=float)
    n.add_argument("--radius-km", dest="radius_km", required=True, type=float)
    n.set_defaults(func=_cmd_nearby)

    st = sub.add_parser("stats", help="Case statistics (JSON).")
    st.add_argument("--facets", action="store_true", help="Filter facet counts instead of dashboard stats")
    st.set_defaults(func=_cmd_stats)

    c = sub.add_parser("compare", help="Compare 2..4 cases side by side (JSON).")
    c.add_argument("case_id", nargs="+")
    c.set_defaults(func=_cmd_compare)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m caseatlas.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    try:
        return int(func(args))
    except (InvalidArgumentError, CaseNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
