"""
Error kinds raised by CaseAtlas.

Most of the library is made of total functions (bad coordinates are skipped, blank
queries return nothing, pages past the end are empty). Only caller-contract
violations surface as exceptions:

- `InvalidArgumentError`: the arguments can never produce a meaningful answer
  (e.g., comparing fewer than two cases, page 0, a negative radius).
- `CaseNotFoundError`: a referenced case id does not exist in the store.

`InvalidArgumentError` subclasses `ValueError` so the API layer can keep mapping
"bad input" to HTTP 400 the same way it does for Pydantic/settings errors.
"""

from __future__ import annotations


class InvalidArgumentError(ValueError):
    """A caller passed arguments that violate a function's contract."""


class CaseNotFoundError(LookupError):
    """A case id was not found in the case store."""

    def __init__(self, case_id: str):
        super().__init__(f"Case '{case_id}' not found")
        self.case_id = case_id
