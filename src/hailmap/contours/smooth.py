"""Smooth multi-band severity contours.

For each severity tier, lowest first, the reports at or above the tier's
minimum size (tiers are cumulative) are turned into a weighted kernel
density surface, the isoline at the tier boundary is extracted with
marching squares, and the resulting polygons are simplified and tagged
with the tier's level, label and color.

Example:
    >>> generator = SmoothContourGenerator()
    >>> collection = generator.generate(reports)
    >>> [f["properties"]["level"] for f in collection["features"]]
    [3, 2, 1]
"""

import logging
import time
from typing import Optional, Sequence

import geojson
import numpy as np
from shapely.geometry import box

from hailmap.config import PipelineConfig
from hailmap.contours.features import (
    METHOD_SMOOTH,
    build_collection,
    contour_feature,
    empty_collection,
)
from hailmap.contours.grid import CONTOUR_LEVEL, build_density_grid, report_weights
from hailmap.contours.isolines import extract_region
from hailmap.exceptions import GenerationError
from hailmap.reports.models import HailReport, partition_reports
from hailmap.utils.geo import KM_PER_DEGREE_LAT, MAX_LATITUDE

logger = logging.getLogger(__name__)

# Minimum distinct report locations for interpolation
MIN_DISTINCT_POINTS = 3

# Ratio of singular values below which points count as collinear
COLLINEAR_TOLERANCE = 1e-6


def check_interpolable(reports: Sequence[HailReport]) -> None:
    """Ensure reports span a 2-D area.

    Raises:
        GenerationError: If there are fewer than three distinct locations
            or all locations lie on one line
    """
    distinct = {(r.latitude, r.longitude) for r in reports}
    if len(distinct) < MIN_DISTINCT_POINTS:
        raise GenerationError(
            f"Need at least {MIN_DISTINCT_POINTS} distinct report locations, "
            f"got {len(distinct)}"
        )

    coords = np.array(sorted(distinct), dtype=np.float64)
    lat0 = float(np.mean(coords[:, 0]))
    # Local km coordinates so the test is not skewed by longitude shrinkage
    xy = np.column_stack([
        coords[:, 1] * KM_PER_DEGREE_LAT * np.cos(np.radians(lat0)),
        coords[:, 0] * KM_PER_DEGREE_LAT,
    ])
    xy -= xy.mean(axis=0)
    singular = np.linalg.svd(xy, compute_uv=False)
    if singular[0] == 0 or singular[1] / singular[0] < COLLINEAR_TOLERANCE:
        raise GenerationError("Report locations are collinear")


def clip_to_latitudes(region):
    """Clip a lon/lat region to the valid latitude band."""
    minx, miny, maxx, maxy = region.bounds
    if miny >= -MAX_LATITUDE and maxy <= MAX_LATITUDE:
        return region
    return region.intersection(box(minx, -MAX_LATITUDE, maxx, MAX_LATITUDE))


class SmoothContourGenerator:
    """Primary contour generator.

    Raises ``GenerationError`` on insufficient or degenerate input rather
    than returning partial geometry; callers fall back to
    ``SimpleContourGenerator``.
    """

    name = METHOD_SMOOTH

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

    def generate(self, reports: Sequence[HailReport]) -> geojson.FeatureCollection:
        """Generate smooth contours for a set of reports.

        Args:
            reports: Hail reports; malformed ones are ignored

        Returns:
            FeatureCollection with at most one Polygon or MultiPolygon
            feature per tier.
            Empty if no report reaches the lowest tier.

        Raises:
            GenerationError: If the input cannot be interpolated or the
                output geometry is invalid
        """
        start_time = time.time()
        valid, malformed = partition_reports(reports)
        if malformed:
            logger.warning(f"Ignoring {len(malformed)} malformed reports")

        check_interpolable(valid)

        lats = np.array([r.latitude for r in valid], dtype=np.float64)
        lons = np.array([r.longitude for r in valid], dtype=np.float64)
        sizes = np.array([r.size for r in valid], dtype=np.float64)

        features = []
        for tier in self.config.tiers:
            mask = sizes >= tier.min_size
            count = int(mask.sum())
            if count == 0:
                continue

            grid = build_density_grid(
                lats[mask],
                lons[mask],
                report_weights(sizes[mask], tier.min_size, self.config.max_report_weight),
                influence_radius_km=self.config.influence_radius_km,
                resolution_deg=self.config.grid_resolution_deg,
                max_cells=self.config.max_grid_cells,
                bandwidth_ratio=self.config.bandwidth_ratio,
            )
            region = extract_region(grid.values, grid.lons, grid.lats, CONTOUR_LEVEL)
            region = clip_to_latitudes(region)
            if region.is_empty:
                logger.debug(f"Tier {tier.level}: no region at contour level")
                continue

            region = self._simplify(region)
            if not region.is_valid:
                raise GenerationError(f"Tier {tier.level} produced invalid geometry")

            features.append(contour_feature(tier, region, count, METHOD_SMOOTH))
            logger.debug(
                f"Tier {tier.level} ({tier.label}): {count} reports, "
                f"{len(getattr(region, 'geoms', [region]))} polygons"
            )

        duration_ms = int((time.time() - start_time) * 1000)
        if not features:
            logger.info(f"No report reached the lowest tier ({len(valid)} reports)")
            return empty_collection()

        logger.info(
            f"Generated {len(features)} smooth contour features from "
            f"{len(valid)} reports in {duration_ms}ms"
        )
        return build_collection(features)

    def _simplify(self, region):
        tolerance = self.config.simplify_tolerance_deg
        if tolerance <= 0:
            return region
        simplified = region.simplify(tolerance, preserve_topology=True)
        if simplified.is_empty:
            raise GenerationError("Simplification removed the whole region")
        return simplified
