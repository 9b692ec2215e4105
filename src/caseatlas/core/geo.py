from __future__ import annotations

import logging
from dataclasses import dataclass, field
from math import atan2, cos, isfinite, radians, sin, sqrt
from typing import Any, Callable, Generic, Iterable, Protocol, Sequence, TypeVar

from caseatlas.core.errors import InvalidArgumentError
from caseatlas.domain.models import BoundingBox, CaseRecord, Coordinates, GeoLocation

"""
Geospatial helpers.

We keep a tiny geometry layer here (Haversine distance, bounding boxes, a greedy
clusterer) so the query and map layers can do spatial work without pulling in
heavier GIS dependencies.

Invalid coordinates (out of range, NaN, infinite, non-numeric) are skipped by every
collection-level helper. Only single-pair or parameter errors raise
`InvalidArgumentError`.
"""

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


class HasLatLon(Protocol):
    latitude: float
    longitude: float


def _is_real_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_coordinates(latitude: Any, longitude: Any) -> bool:
    """Return True iff both values are finite numbers within lat/lon ranges."""
    if not (_is_real_number(latitude) and _is_real_number(longitude)):
        return False
    if not (isfinite(latitude) and isfinite(longitude)):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def _haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    # Rounding can push `a` a hair above 1 for antipodal points.
    a = min(1.0, a)
    return 2 * EARTH_RADIUS_KM * atan2(sqrt(a), sqrt(1 - a))


def calculate_distance(p1: HasLatLon, p2: HasLatLon) -> float:
    """Compute great-circle distance in kilometers between two points."""
    for p in (p1, p2):
        if not is_valid_coordinates(p.latitude, p.longitude):
            raise InvalidArgumentError(f"Invalid coordinates: ({p.latitude}, {p.longitude})")
    return _haversine_km(p1.latitude, p1.longitude, p2.latitude, p2.longitude)


def format_coordinates(latitude: Any, longitude: Any, precision: int = 4) -> str:
    """Render a point as `40.7128°N, 74.0060°W`."""
    if not is_valid_coordinates(latitude, longitude):
        return "Invalid coordinates"
    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if longitude >= 0 else "W"
    return f"{abs(latitude):.{precision}f}°{lat_dir}, {abs(longitude):.{precision}f}°{lon_dir}"


def location_display_name(location: GeoLocation) -> str:
    parts = [location.city]
    if location.state:
        parts.append(location.state)
    parts.append(location.country)
    return ", ".join(parts)


def _record_latlon(record: CaseRecord) -> tuple[Any, Any]:
    return record.location.latitude, record.location.longitude


def _point_latlon(point: HasLatLon) -> tuple[Any, Any]:
    return point.latitude, point.longitude


def bounds_from_latlons(latlons: Iterable[tuple[float, float]]) -> BoundingBox | None:
    north = south = east = west = None
    for lat, lon in latlons:
        if north is None:
            north = south = lat
            east = west = lon
            continue
        north = max(north, lat)
        south = min(south, lat)
        east = max(east, lon)
        west = min(west, lon)
    if north is None:
        return None
    return BoundingBox(
        north=north,
        south=south,
        east=east,
        west=west,
        center=Coordinates(latitude=(north + south) / 2, longitude=(east + west) / 2),
    )


def valid_latlons(items: Iterable[T], get_latlon: Callable[[T], tuple[Any, Any]]) -> list[tuple[float, float]]:
    out: list[tuple[float, float]] = []
    for it in items:
        lat, lon = get_latlon(it)
        if is_valid_coordinates(lat, lon):
            out.append((float(lat), float(lon)))
    return out


def calculate_bounding_box(points: Iterable[HasLatLon]) -> BoundingBox | None:
    """Return the lat/lon box around all valid points, or None if there are none.

    The center is the midpoint of the box, not the centroid of the points.
    """
    return bounds_from_latlons(valid_latlons(points, _point_latlon))


def zero_bounding_box() -> BoundingBox:
    return BoundingBox(north=0, south=0, east=0, west=0, center=Coordinates(latitude=0, longitude=0))


def get_cases_bounds(records: Iterable[CaseRecord]) -> BoundingBox:
    """Bounding box of case locations; an all-zero box when nothing is valid.

    Note: the map layer uses a whole-world default instead (see
    `caseatlas.mapping.projection.get_map_bounds`). Callers depend on each default.
    """
    box = bounds_from_latlons(valid_latlons(records, _record_latlon))
    return box if box is not None else zero_bounding_box()


def is_point_in_bounding_box(point: HasLatLon, box: BoundingBox) -> bool:
    if not is_valid_coordinates(point.latitude, point.longitude):
        return False
    return box.south <= point.latitude <= box.north and box.west <= point.longitude <= box.east


def find_cases_within_radius(
    records: Sequence[CaseRecord], center_lat: float, center_lon: float, radius_km: float
) -> list[CaseRecord]:
    """Return records within `radius_km` of the center (inclusive), in input order."""
    if not is_valid_coordinates(center_lat, center_lon):
        raise InvalidArgumentError(f"Invalid center coordinates: ({center_lat}, {center_lon})")
    if not _is_real_number(radius_km) or not isfinite(radius_km) or radius_km < 0:
        raise InvalidArgumentError(f"radius_km must be a finite number >= 0, got {radius_km!r}")

    out: list[CaseRecord] = []
    for r in records:
        lat, lon = _record_latlon(r)
        if not is_valid_coordinates(lat, lon):
            continue
        if _haversine_km(center_lat, center_lon, lat, lon) <= radius_km:
            out.append(r)
    return out


def sort_by_distance(
    items: Sequence[T],
    center: HasLatLon,
    *,
    get_latlon: Callable[[T], tuple[Any, Any]] = _point_latlon,
    ascending: bool = True,
) -> list[T]:
    """Stable sort by distance from `center`; items with invalid coordinates are dropped."""
    if not is_valid_coordinates(center.latitude, center.longitude):
        raise InvalidArgumentError(f"Invalid center coordinates: ({center.latitude}, {center.longitude})")
    scored: list[tuple[float, T]] = []
    for it in items:
        lat, lon = get_latlon(it)
        if is_valid_coordinates(lat, lon):
            scored.append((_haversine_km(center.latitude, center.longitude, lat, lon), it))
    scored.sort(key=lambda pair: pair[0], reverse=not ascending)
    return [it for _, it in scored]


def group_cases_by_location(records: Iterable[CaseRecord]) -> dict[str, dict[str, list[CaseRecord]]]:
    """Group records as `{country: {city: [records]}}`, preserving input order."""
    grouped: dict[str, dict[str, list[CaseRecord]]] = {}
    for r in records:
        grouped.setdefault(r.location.country, {}).setdefault(r.location.city, []).append(r)
    return grouped


# Span (degrees) -> zoom level; first threshold exceeded wins.
_ZOOM_STEPS: tuple[tuple[float, int], ...] = (
    (10, 3),
    (5, 4),
    (2, 5),
    (1, 6),
    (0.5, 7),
    (0.25, 8),
    (0.125, 9),
    (0.0625, 10),
    (0.03125, 11),
    (0.015625, 12),
)


def optimal_zoom(points: Iterable[HasLatLon], default: int = 10) -> int:
    """Pick a web-map zoom level that roughly fits all points."""
    box = calculate_bounding_box(points)
    if box is None:
        return default
    span = max(box.north - box.south, box.east - box.west)
    for threshold, zoom in _ZOOM_STEPS:
        if span > threshold:
            return zoom
    return 13


@dataclass(frozen=True)
class PointCluster(Generic[T]):
    """A group of at least `min_cluster_size` nearby items."""

    latitude: float
    longitude: float
    items: list[T]
    bounds: BoundingBox

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class PointClusters(Generic[T]):
    clusters: list[PointCluster[T]] = field(default_factory=list)
    single_points: list[T] = field(default_factory=list)


def cluster_points(
    items: Sequence[T],
    max_distance_km: float = 50.0,
    min_cluster_size: int = 2,
    *,
    get_latlon: Callable[[T], tuple[Any, Any]] = _point_latlon,
) -> PointClusters[T]:
    """Greedy single-pass clustering.

    Items are visited in input order. Each unassigned item seeds a group and pulls in
    every later-unassigned item within `max_distance_km` of the seed itself (not of
    other members), so the grouping is order dependent and not transitive. Groups of
    at least `min_cluster_size` become clusters located at their bounding-box center;
    members of smaller groups are reported as single points.

    Runs in O(n^2); fine for showcase-sized collections (up to a few hundred items).
    """
    if not _is_real_number(max_distance_km) or not isfinite(max_distance_km) or max_distance_km < 0:
        raise InvalidArgumentError(f"max_distance_km must be a finite number >= 0, got {max_distance_km!r}")
    if isinstance(min_cluster_size, bool) or not isinstance(min_cluster_size, int) or min_cluster_size < 2:
        raise InvalidArgumentError(f"min_cluster_size must be an integer >= 2, got {min_cluster_size!r}")

    valid: list[tuple[T, float, float]] = []
    for it in items:
        lat, lon = get_latlon(it)
        if is_valid_coordinates(lat, lon):
            valid.append((it, float(lat), float(lon)))
    skipped = len(items) - len(valid)
    if skipped:
        logger.debug("cluster_points skipped %d item(s) with invalid coordinates", skipped)

    result: PointClusters[T] = PointClusters()
    assigned: set[int] = set()
    for i, (seed, seed_lat, seed_lon) in enumerate(valid):
        if i in assigned:
            continue
        assigned.add(i)
        group = [(seed, seed_lat, seed_lon)]
        for j in range(len(valid)):
            if j in assigned:
                continue
            other, lat, lon = valid[j]
            if _haversine_km(seed_lat, seed_lon, lat, lon) <= max_distance_km:
                group.append((other, lat, lon))
                assigned.add(j)

        if len(group) >= min_cluster_size:
            bounds = bounds_from_latlons((lat, lon) for _, lat, lon in group)
            result.clusters.append(
                PointCluster(
                    latitude=bounds.center.latitude,
                    longitude=bounds.center.longitude,
                    items=[it for it, _, _ in group],
                    bounds=bounds,
                )
            )
        else:
            result.single_points.extend(it for it, _, _ in group)
    return result
