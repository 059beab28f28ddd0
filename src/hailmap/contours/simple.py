"""Simple buffered-hull contours.

Fallback contour generation that works for any non-empty input, including
a single report or reports on a line. Reports in each tier are grouped by
single-linkage clustering and each cluster becomes the convex hull of its
points expanded by a fixed radius (the Minkowski sum of the hull and a
circle), which is always a valid convex ring.

Only the standard library is used so this path keeps working when the
numerical stack is the thing that failed.
"""

import logging
import math
from typing import Optional, Sequence

import geojson

from hailmap.config import PipelineConfig
from hailmap.contours.features import (
    METHOD_SIMPLE,
    build_collection,
    empty_collection,
    ring_feature,
)
from hailmap.reports.models import HailReport, partition_reports
from hailmap.utils.geo import KM_PER_DEGREE_LAT, clamp_latitude
from hailmap.visualization.colors import SeverityTier, tier_for_size

logger = logging.getLogger(__name__)

XY = tuple[float, float]


def convex_hull(points: Sequence[XY]) -> list[XY]:
    """Convex hull by Andrew's monotone chain.

    Returns:
        Hull vertices counter-clockwise without repeating the first one.
        One or two points are returned as-is (deduplicated).
    """
    unique = sorted(set(points))
    if len(unique) <= 2:
        return unique

    def cross(o: XY, a: XY, b: XY) -> float:
        return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])

    lower: list[XY] = []
    for p in unique:
        while len(lower) >= 2 and cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper: list[XY] = []
    for p in reversed(unique):
        while len(upper) >= 2 and cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    return lower[:-1] + upper[:-1]


def buffered_hull(points: Sequence[XY], radius: float, segments: int) -> list[XY]:
    """Convex hull of ``points`` expanded by ``radius``.

    Computed as the hull of a circle of ``segments`` vertices placed on
    every hull vertex, so it is a proper convex ring even for one point or
    collinear points.

    Returns:
        Closed ring (first vertex repeated last), counter-clockwise
    """
    offsets = [
        (radius * math.cos(2 * math.pi * k / segments),
         radius * math.sin(2 * math.pi * k / segments))
        for k in range(segments)
    ]
    expanded = [
        (x + dx, y + dy)
        for x, y in convex_hull(points)
        for dx, dy in offsets
    ]
    ring = convex_hull(expanded)
    ring.append(ring[0])
    return ring


def cluster_points(points: Sequence[XY], max_distance: float) -> list[list[int]]:
    """Single-linkage clusters of points within ``max_distance`` of each other.

    Points are bucketed into square cells of side ``max_distance`` so only
    neighbouring cells are compared.

    Returns:
        Lists of point indices, one per cluster, in order of first index
    """
    parent = list(range(len(points)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    buckets: dict[tuple[int, int], list[int]] = {}
    for i, (x, y) in enumerate(points):
        buckets.setdefault((math.floor(x / max_distance), math.floor(y / max_distance)), []).append(i)

    limit = max_distance * max_distance
    for (bx, by), members in buckets.items():
        for nx in (bx - 1, bx, bx + 1):
            for ny in (by - 1, by, by + 1):
                for j in buckets.get((nx, ny), ()):
                    for i in members:
                        if i >= j:
                            continue
                        dx = points[i][0] - points[j][0]
                        dy = points[i][1] - points[j][1]
                        if dx * dx + dy * dy <= limit:
                            parent[find(j)] = find(i)

    clusters: dict[int, list[int]] = {}
    for i in range(len(points)):
        clusters.setdefault(find(i), []).append(i)
    return sorted(clusters.values(), key=lambda c: c[0])


class SimpleContourGenerator:
    """Fallback contour generator.

    ``generate`` never raises for a sequence of reports: internal errors
    degrade to a single circle around the largest report.
    """

    name = METHOD_SIMPLE

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

    def generate(self, reports: Sequence[HailReport]) -> geojson.FeatureCollection:
        """Generate buffered-hull contours.

        Reports smaller than the lowest tier are counted in the lowest tier
        so that every valid report is covered by at least one feature.

        Args:
            reports: Hail reports; malformed ones are ignored

        Returns:
            FeatureCollection with one Polygon feature per (tier, cluster),
            most severe first. Empty only if no report is valid.
        """
        valid, malformed = partition_reports(reports)
        if malformed:
            logger.warning(f"Ignoring {len(malformed)} malformed reports")
        if not valid:
            logger.info("No valid reports for simple contours")
            return empty_collection()

        try:
            collection = self._generate(valid)
        except Exception:
            logger.exception("Simple contour generation failed, using single-report circle")
            collection = self._largest_report_circle(valid)

        logger.info(
            f"Generated {len(collection['features'])} simple contour features "
            f"from {len(valid)} reports"
        )
        return collection

    def _generate(self, reports: list[HailReport]) -> geojson.FeatureCollection:
        lat0 = sum(r.latitude for r in reports) / len(reports)
        km_per_deg_lon = KM_PER_DEGREE_LAT * max(math.cos(math.radians(lat0)), 0.01)
        radius = self.config.fallback_radius_km

        features = []
        for index, tier in enumerate(self.config.tiers):
            if index == 0:
                members = list(reports)
            else:
                members = [r for r in reports if tier.includes(r.size)]
            if not members:
                continue

            xy = [(r.longitude * km_per_deg_lon, r.latitude * KM_PER_DEGREE_LAT) for r in members]
            for cluster in cluster_points(xy, 2.0 * radius):
                ring_km = buffered_hull([xy[i] for i in cluster], radius, self.config.circle_segments)
                ring = [(x / km_per_deg_lon, clamp_latitude(y / KM_PER_DEGREE_LAT)) for x, y in ring_km]
                features.append(ring_feature(tier, ring, len(cluster), METHOD_SIMPLE))

            logger.debug(f"Tier {tier.level} ({tier.label}): {len(members)} reports")

        return build_collection(features)

    def _largest_report_circle(self, reports: list[HailReport]) -> geojson.FeatureCollection:
        largest = max(reports, key=lambda r: r.size)
        tier: SeverityTier = tier_for_size(largest.size, self.config.tiers) or self.config.tiers[0]
        radius = self.config.fallback_radius_km
        lat_scale = KM_PER_DEGREE_LAT
        lon_scale = KM_PER_DEGREE_LAT * max(math.cos(math.radians(largest.latitude)), 0.01)
        ring = [
            (largest.longitude + radius * math.cos(theta) / lon_scale,
             clamp_latitude(largest.latitude + radius * math.sin(theta) / lat_scale))
            for theta in (
                2 * math.pi * k / self.config.circle_segments
                for k in range(self.config.circle_segments)
            )
        ]
        return build_collection([ring_feature(tier, ring, 1, METHOD_SIMPLE)])
