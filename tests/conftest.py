from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from caseatlas.domain.models import CaseRecord


def build_case(case_id: str, **overrides: Any) -> CaseRecord:
    """Build a minimal valid case; nested dicts are merged over the defaults."""
    payload: dict[str, Any] = {
        "id": case_id,
        "slug": case_id,
        "title": f"Case {case_id}",
        "summary": "",
        "full_description": "",
        "project_type": "indoor_fixed",
        "industry": "corporate",
        "customer": {"name": f"Customer {case_id}"},
        "location": {"latitude": 40.7128, "longitude": -74.0060, "city": "New York", "country": "United States"},
        "project_scale": {"total_screen_area": 100},
        "project_start_date": date(2023, 1, 1),
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(payload.get(key), dict):
            payload[key] = {**payload[key], **value}
        else:
            payload[key] = value
    return CaseRecord.model_validate(payload)


@pytest.fixture
def make_case():
    return build_case


@pytest.fixture
def city_cases() -> list[CaseRecord]:
    # Two New York sites ~9 km apart plus London and Tokyo.
    return [
        build_case(
            "nyc-1",
            title="Times Square Billboard",
            customer={"name": "Times Square Media"},
            location={"latitude": 40.758, "longitude": -73.9855, "city": "New York", "state": "NY"},
            project_type="outdoor_advertising",
            industry="advertising",
            tags=["outdoor", "advertising"],
            is_featured=True,
            view_count=500,
            created_at=date(2023, 5, 1),
        ),
        build_case(
            "nyc-2",
            title="Brooklyn Arena Scoreboard",
            location={"latitude": 40.6826, "longitude": -73.9754, "city": "New York", "state": "NY"},
            project_type="sports_venue",
            industry="sports",
            tags=["indoor", "sports"],
            view_count=200,
            created_at=date(2022, 10, 1),
        ),
        build_case(
            "london-1",
            title="Oxford Street Retail Wall",
            location={"latitude": 51.5074, "longitude": -0.1278, "city": "London", "country": "United Kingdom"},
            project_type="retail_display",
            industry="retail",
            tags=["indoor", "retail"],
            is_showcase=True,
            view_count=300,
            created_at=date(2023, 6, 15),
        ),
        build_case(
            "tokyo-1",
            title="Shibuya Crossing Screen",
            location={"latitude": 35.6762, "longitude": 139.6503, "city": "Tokyo", "country": "Japan"},
            project_type="outdoor_advertising",
            industry="advertising",
            tags=["outdoor"],
            view_count=50,
        ),
    ]
