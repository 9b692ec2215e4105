"""
Map projection.

Turns case records into lightweight map markers and computes what a map widget needs
(bounds + clusters). Geometry is delegated to `caseatlas.core.geo`.
"""

from __future__ import annotations

from typing import Sequence

from caseatlas.config.settings import Settings, get_settings
from caseatlas.core.geo import bounds_from_latlons, cluster_points, optimal_zoom, valid_latlons
from caseatlas.domain.models import (
    BoundingBox,
    CaseRecord,
    Cluster,
    ClusterResult,
    Coordinates,
    MapPayload,
    MapPoint,
)


def _map_point_latlon(point: MapPoint) -> tuple[float, float]:
    return point.location.latitude, point.location.longitude


def to_map_point(record: CaseRecord) -> MapPoint:
    return MapPoint(
        id=record.id,
        title=record.title,
        customer=record.customer.name,
        location=record.location,
        project_type=record.project_type,
        industry=record.industry,
        is_featured=record.is_featured,
        is_showcase=record.is_showcase,
    )


def convert_to_map_data(records: Sequence[CaseRecord]) -> list[MapPoint]:
    """1:1, order-preserving projection of records to map points."""
    return [to_map_point(r) for r in records]


def world_bounding_box() -> BoundingBox:
    return BoundingBox(north=90, south=-90, east=180, west=-180, center=Coordinates(latitude=0, longitude=0))


def get_map_bounds(points: Sequence[MapPoint]) -> BoundingBox:
    """Bounds + center of the map points; the whole world when none are valid.

    Unlike `core.geo.get_cases_bounds` (all-zero default), an empty map zooms out.
    """
    box = bounds_from_latlons(valid_latlons(points, _map_point_latlon))
    return box if box is not None else world_bounding_box()


def cluster_distance_for_zoom(zoom: int) -> float:
    """Cluster radius (km) that shrinks as the map zooms in."""
    return float(max(1, 20 - int(zoom)))


def cluster_for_map(
    points: Sequence[MapPoint],
    radius_km: float,
    *,
    min_cluster_size: int = 2,
) -> ClusterResult:
    """Group nearby map points; see `core.geo.cluster_points` for the algorithm."""
    grouped = cluster_points(points, radius_km, min_cluster_size, get_latlon=_map_point_latlon)
    clusters = [
        Cluster(
            id=f"cluster-{c.items[0].id}",
            latitude=c.latitude,
            longitude=c.longitude,
            count=c.count,
            cases=c.items,
        )
        for c in grouped.clusters
    ]
    return ClusterResult(clusters=clusters, single_points=grouped.single_points)


def build_map_payload(
    records: Sequence[CaseRecord],
    *,
    zoom: int | None = None,
    radius_km: float | None = None,
    settings: Settings | None = None,
) -> MapPayload:
    """Points, bounds, clusters and a zoom level for a record set in one call.

    An explicit `radius_km` wins over `zoom`; with neither, the configured cluster
    distance is used. Without a `zoom` the level is fitted to the points
    (`geo.default_zoom` when there are none).
    """
    settings = settings or get_settings()
    if radius_km is None:
        radius_km = cluster_distance_for_zoom(zoom) if zoom is not None else settings.geo.cluster_distance_km
    points = convert_to_map_data(records)
    if zoom is None:
        zoom = optimal_zoom([p.location for p in points], default=settings.geo.default_zoom)
    return MapPayload(
        points=points,
        bounds=get_map_bounds(points),
        clusters=cluster_for_map(points, radius_km, min_cluster_size=settings.geo.min_cluster_size),
        cluster_distance_km=radius_km,
        zoom=zoom,
    )
