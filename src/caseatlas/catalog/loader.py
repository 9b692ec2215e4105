"""
Case catalog loader.

The catalog is a local JSON file (default: `data/catalogs/cases.json`) holding a list
of case records in the frontend's camelCase shape. We validate it into typed
Pydantic models so the query, map and search layers can assume a consistent shape.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from caseatlas.core.env import resolve_project_path
from caseatlas.domain.models import CaseRecord

logger = logging.getLogger(__name__)

_CASES_ADAPTER = TypeAdapter(list[CaseRecord])


def parse_cases(payload: object) -> list[CaseRecord]:
    """Validate an already-decoded JSON payload (a list, or `{"cases": [...]}`)."""
    if isinstance(payload, dict) and "cases" in payload:
        payload = payload["cases"]
    return _CASES_ADAPTER.validate_python(payload)


def load_cases(path: str | Path) -> list[CaseRecord]:
    """Load and validate a case catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    cases = parse_cases(payload)
    logger.debug("Loaded %d case(s) from %s", len(cases), resolved)
    return cases
