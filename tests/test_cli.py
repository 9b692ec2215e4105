from __future__ import annotations

import json
from pathlib import Path

import pytest

from caseatlas.cli import main

CATALOG = str(Path(__file__).resolve().parents[1] / "data" / "catalogs" / "cases.json")


def test_cli_query_json(capsys):
    assert main(["--catalog", CATALOG, "query", "--country", "United States", "--sort", "title_asc", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    titles = [c["title"] for c in data["items"]]
    assert titles == sorted(titles, key=str.lower)
    assert all(c["location"]["country"] == "United States" for c in data["items"])


def test_cli_search_prints_ranked_lines(capsys):
    assert main(["--catalog", CATALOG, "search", "times square"]) == 0
    first = capsys.readouterr().out.splitlines()[0]
    assert "Times Square" in first


def test_cli_nearby(capsys):
    assert main(["--catalog", CATALOG, "nearby", "--lat", "40.7128", "--lon", "-74.0060", "--radius-km", "20"]) == 0
    out = capsys.readouterr().out
    assert "New York" in out
    assert "London" not in out


def test_cli_compare_unknown_case(capsys):
    assert main(["--catalog", CATALOG, "compare", "case-001", "does-not-exist"]) == 2
    assert "does-not-exist" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [
        ["compare", "case-001"],
        ["nearby", "--lat", "0", "--lon", "0", "--radius-km", "-1"],
        ["query", "--page", "0"],
    ],
)
def test_cli_invalid_arguments_exit_with_message(capsys, argv):
    assert main(["--catalog", CATALOG, *argv]) == 2
    captured = capsys.readouterr()
    assert captured.err.startswith("error: ")
    assert "Traceback" not in captured.err
