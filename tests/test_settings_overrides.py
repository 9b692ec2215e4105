from __future__ import annotations

# We use pytest because the repository already standardizes on it for automated checks.
import pytest

# We import the existing Settings loader so tests run with the real default config structure.
from caseatlas.config.settings import get_settings

# We test the override helper directly because it is pure and guards what a request may change.
from caseatlas.config.overrides import apply_settings_overrides


def test_apply_settings_overrides_returns_same_object_when_none():
    # Load the baseline settings once (this is a cached Pydantic model).
    settings = get_settings()

    # When no overrides are provided, we expect a no-op and the same object back (fast path).
    out = apply_settings_overrides(settings, None)

    # Identity equality is intentional here: the function returns early without rebuilding the model.
    assert out is settings


def test_apply_settings_overrides_can_override_search_weights():
    # Load the baseline settings (do not mutate it; it is shared via lru_cache).
    settings = get_settings()

    # Override an allowed ranking knob: the weight of title matches.
    overrides = {"search": {"field_weights": {"title": 5.0}}}

    # Apply the override; this returns a NEW Settings model validated by Pydantic.
    out = apply_settings_overrides(settings, overrides)

    # The override should take effect on the returned model, and sibling weights survive the deep merge.
    assert out.search.field_weights["title"] == 5.0
    assert out.search.field_weights["summary"] == settings.search.field_weights["summary"]

    # The original shared settings should remain unchanged (important to avoid cross-request leakage).
    assert settings.search.field_weights["title"] != 5.0


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    settings = get_settings()

    # The catalog path is intentionally not overridable per request (could enable arbitrary file reads).
    overrides = {"catalog": {"path": "/etc/passwd"}}

    # We expect a ValueError with a dotted path so users can find the offending key quickly.
    with pytest.raises(ValueError, match=r"'catalog'"):
        apply_settings_overrides(settings, overrides)

    # Restricted subtrees report the full dotted path of the rejected leaf.
    with pytest.raises(ValueError, match=r"query\.max_limit"):
        apply_settings_overrides(settings, {"query": {"max_limit": 10_000}})


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    # `query` is a restricted subtree (only certain nested keys are allowed),
    # so its override must be an object/mapping, not a scalar.
    with pytest.raises(ValueError, match=r"settings_overrides key 'query' must be a mapping"):
        apply_settings_overrides(settings, {"query": 1})


def test_apply_settings_overrides_revalidates_ranges():
    settings = get_settings()

    # Allowed keys still go through Pydantic validation (min_cluster_size must be >= 2).
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"geo": {"min_cluster_size": 1}})


def test_get_settings_reads_env_overrides(monkeypatch):
    monkeypatch.setenv("CASEATLAS_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("CASEATLAS_CATALOG_PATH", "/tmp/cases.json")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.app.log_level == "DEBUG"
        assert settings.catalog.path == "/tmp/cases.json"
    finally:
        get_settings.cache_clear()


def test_get_settings_reads_external_yaml(monkeypatch, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("query:\n  default_limit: 5\n  max_limit: 10\n", encoding="utf-8")
    monkeypatch.setenv("CASEATLAS_CONFIG_PATH", str(config))
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert (settings.query.default_limit, settings.query.max_limit) == (5, 10)
        # Sections missing from the file fall back to model defaults.
        assert settings.geo.cluster_distance_km == 50
    finally:
        get_settings.cache_clear()
