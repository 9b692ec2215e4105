# src/caseatlas/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/caseatlas/config/defaults.yaml`, then optionally overridden by:
- environment variables (`CASEATLAS_LOG_LEVEL`, `CASEATLAS_CATALOG_PATH`)
- an external YAML file via `CASEATLAS_CONFIG_PATH`

Design rule:
- Tuning knobs (search weights, cluster radius, page sizes) live in YAML, not in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from caseatlas.core.env import load_dotenv_if_present
from caseatlas.domain.models import SearchField, SortKey


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `caseatlas.config`."""
    text = resources.files("caseatlas.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "CaseAtlas"
    log_level: str = "INFO"


class CatalogSettings(BaseModel):
    path: str = "data/catalogs/cases.json"


class GeoSettings(BaseModel):
    cluster_distance_km: float = Field(50.0, ge=0)
    min_cluster_size: int = Field(2, ge=2)
    default_zoom: int = Field(10, ge=0, le=22)


class QuerySettings(BaseModel):
    default_limit: int = Field(12, ge=1)
    max_limit: int = Field(100, ge=1)
    default_sort: SortKey = SortKey.CREATED_DESC

    @model_validator(mode="after")
    def _validate_limits(self) -> "QuerySettings":
        if self.default_limit > self.max_limit:
            raise ValueError("query.default_limit must not exceed query.max_limit")
        return self


class SearchSettings(BaseModel):
    field_weights: dict[SearchField, float] = Field(
        default_factory=lambda: {
            "title": 3.0,
            "summary": 2.0,
            "description": 1.5,
            "customer": 2.0,
            "tags": 1.5,
            "features": 1.5,
            "solutions": 1.0,
        }
    )
    default_fields: list[SearchField] = Field(
        default_factory=lambda: ["title", "summary", "description", "customer", "tags", "features"]
    )
    min_score: float = Field(0.0, ge=0, le=1)
    fuzzy_match: bool = False
    substring_weight: float = Field(0.8, gt=0, le=1)
    fuzzy_threshold: float = Field(0.6, ge=0, le=1)
    fuzzy_weight: float = Field(0.6, gt=0, le=1)
    max_results: int = Field(20, ge=1)
    suggestion_min_length: int = Field(2, ge=1)
    suggestion_limit: int = Field(5, ge=1)
    related_limit: int = Field(3, ge=1)


class CompareSettings(BaseModel):
    min_cases: int = Field(2, ge=2)
    max_cases: int = Field(4, ge=2)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    geo: GeoSettings = Field(default_factory=GeoSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    compare: CompareSettings = Field(default_factory=CompareSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    data = dict(data)
    log_level = os.getenv("CASEATLAS_LOG_LEVEL")
    if log_level:
        data["app"] = {**(data.get("app") or {}), "log_level": log_level}

    catalog_path = os.getenv("CASEATLAS_CATALOG_PATH")
    if catalog_path:
        data["catalog"] = {**(data.get("catalog") or {}), "path": catalog_path}

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("CASEATLAS_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
