"""
Case store abstraction.

The query/map/search functions never reach for a global list of cases; callers pass
a `CaseRepository` (or a plain sequence taken from one). `InMemoryCaseRepository`
is the default implementation, backed by an immutable snapshot of the catalog.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol, Sequence

from caseatlas.catalog.loader import load_cases
from caseatlas.core.errors import CaseNotFoundError
from caseatlas.domain.models import CaseRecord


class CaseRepository(Protocol):
    def list_cases(self) -> Sequence[CaseRecord]:
        ...

    def find_case(self, case_id: str) -> CaseRecord | None:
        ...


class InMemoryCaseRepository:
    """Read-only store over a fixed tuple of case records."""

    def __init__(self, cases: Iterable[CaseRecord]):
        self._cases: tuple[CaseRecord, ...] = tuple(cases)
        self._by_id: dict[str, CaseRecord] = {}
        self._by_slug: dict[str, CaseRecord] = {}
        for c in self._cases:
            if c.id in self._by_id:
                raise ValueError(f"Duplicate case id '{c.id}'")
            self._by_id[c.id] = c
            self._by_slug.setdefault(c.slug, c)

    @classmethod
    def from_catalog(cls, path: str | Path) -> "InMemoryCaseRepository":
        return cls(load_cases(path))

    def __len__(self) -> int:
        return len(self._cases)

    def list_cases(self) -> tuple[CaseRecord, ...]:
        return self._cases

    def find_case(self, case_id: str) -> CaseRecord | None:
        return self._by_id.get(case_id)

    def find_by_slug(self, slug: str) -> CaseRecord | None:
        return self._by_slug.get(slug)


def get_case(repository: CaseRepository, case_id: str) -> CaseRecord:
    """Return the case with `case_id` or raise `CaseNotFoundError`."""
    case = repository.find_case(case_id)
    if case is None:
        raise CaseNotFoundError(case_id)
    return case
