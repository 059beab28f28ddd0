"""Density surfaces for smooth contouring.

Reports are splatted onto a regular lat/lon grid with bilinear weights and
convolved with a Gaussian kernel (``scipy.ndimage.gaussian_filter``), giving
a weighted kernel density surface. Each report's weight grows with how far
its size exceeds the tier threshold, so larger hail pushes the contour
slightly further out.

The surface is normalised so that a single unit-weight report produces
exactly ``CONTOUR_LEVEL`` at ``influence_radius_km`` from itself; the
isoline at that level is the tier boundary.
"""

import logging
from dataclasses import dataclass
from math import cos, exp, radians

import numpy as np
from scipy import ndimage

from hailmap.utils.geo import KM_PER_DEGREE_LAT, MAX_LATITUDE, BoundingBox, km_to_degrees

logger = logging.getLogger(__name__)

# Density of a single unit-weight report at the influence radius
CONTOUR_LEVEL = 1.0

# Defaults for the kernel bandwidth (fraction of the influence radius) and
# the cap on how much one large report can outweigh a threshold-sized one
BANDWIDTH_RATIO = 0.5
MAX_REPORT_WEIGHT = 2.0


@dataclass
class DensityGrid:
    """A density surface on a regular lat/lon grid.

    Attributes:
        values: Array of shape (len(lats), len(lons)); row 0 is the south edge
        lats: Cell-centre latitudes, ascending
        lons: Cell-centre longitudes, ascending
    """

    values: np.ndarray
    lats: np.ndarray
    lons: np.ndarray


def report_weights(
    sizes: np.ndarray,
    threshold: float,
    max_weight: float = MAX_REPORT_WEIGHT,
) -> np.ndarray:
    """Weight each report by size relative to the tier threshold, in [1, max_weight]."""
    return np.clip(sizes / threshold, 1.0, max_weight)


def grid_axes(
    bounds: BoundingBox,
    resolution_deg: float,
    max_cells: int,
) -> tuple[np.ndarray, np.ndarray, float]:
    """Cell-centre axes covering ``bounds``.

    The resolution is coarsened when the extent would need more than
    ``max_cells`` cells along either axis.

    Returns:
        Tuple of (lats, lons, resolution_deg actually used)
    """
    span = max(bounds.north - bounds.south, bounds.east - bounds.west)
    resolution = resolution_deg
    if span / resolution > max_cells:
        resolution = span / max_cells
        logger.debug(
            f"Coarsened grid resolution from {resolution_deg:.4f} to {resolution:.4f} deg"
        )

    num_lats = int(round((bounds.north - bounds.south) / resolution)) + 1
    num_lons = int(round((bounds.east - bounds.west) / resolution)) + 1

    lats = bounds.south + np.arange(num_lats) * resolution
    lons = bounds.west + np.arange(num_lons) * resolution
    # Rounding can push the outermost row past a pole
    lats = lats[np.abs(lats) <= MAX_LATITUDE]
    return lats, lons, resolution


def build_density_grid(
    lats: np.ndarray,
    lons: np.ndarray,
    weights: np.ndarray,
    influence_radius_km: float,
    resolution_deg: float,
    max_cells: int,
    bandwidth_ratio: float = BANDWIDTH_RATIO,
) -> DensityGrid:
    """Build a kernel density surface for a set of weighted points.

    Args:
        lats: Report latitudes
        lons: Report longitudes
        weights: Report weights (see ``report_weights``)
        influence_radius_km: Distance at which a lone unit report reaches
            ``CONTOUR_LEVEL``
        resolution_deg: Requested grid spacing in degrees
        max_cells: Maximum cells along either axis
        bandwidth_ratio: Gaussian bandwidth as a fraction of the radius

    Returns:
        DensityGrid covering the points padded by twice the influence radius

    Raises:
        ValueError: If no points are given
    """
    if len(lats) == 0:
        raise ValueError("Cannot build a density grid from zero points")

    lat0 = float(np.mean(lats))
    km_per_deg_lon = KM_PER_DEGREE_LAT * max(cos(radians(lat0)), 0.01)

    pad_lat, pad_lon = km_to_degrees(2.0 * influence_radius_km, lat0)
    bounds = BoundingBox(
        west=float(lons.min()), south=float(lats.min()),
        east=float(lons.max()), north=float(lats.max()),
    ).expand(pad_lat, pad_lon)

    grid_lats, grid_lons, resolution = grid_axes(bounds, resolution_deg, max_cells)

    # Bilinear splat so reports between cell centres are not snapped
    values = np.zeros((len(grid_lats), len(grid_lons)), dtype=np.float64)
    rows = (lats - grid_lats[0]) / resolution
    cols = (lons - grid_lons[0]) / resolution
    r0 = np.floor(rows).astype(int)
    c0 = np.floor(cols).astype(int)
    fr = rows - r0
    fc = cols - c0
    max_row, max_col = values.shape[0] - 1, values.shape[1] - 1
    for dr, dc, w in (
        (0, 0, (1 - fr) * (1 - fc)),
        (1, 0, fr * (1 - fc)),
        (0, 1, (1 - fr) * fc),
        (1, 1, fr * fc),
    ):
        r = np.clip(r0 + dr, 0, max_row)
        c = np.clip(c0 + dc, 0, max_col)
        np.add.at(values, (r, c), weights * w)

    bandwidth_km = bandwidth_ratio * influence_radius_km
    sigma_rows = bandwidth_km / (resolution * KM_PER_DEGREE_LAT)
    sigma_cols = bandwidth_km / (resolution * km_per_deg_lon)
    density = ndimage.gaussian_filter(
        values, sigma=(sigma_rows, sigma_cols), mode="constant", cval=0.0
    )

    # Normalise: a unit report's peak is 1 / (2*pi*sr*sc); scale so that
    # its value at the influence radius equals CONTOUR_LEVEL
    peak = 1.0 / (2.0 * np.pi * sigma_rows * sigma_cols)
    at_radius = peak * exp(-0.5 * (influence_radius_km / bandwidth_km) ** 2)
    density *= CONTOUR_LEVEL / at_radius

    logger.debug(
        f"Density grid {density.shape[0]}x{density.shape[1]} at {resolution:.4f} deg, "
        f"max={density.max():.2f}"
    )
    return DensityGrid(values=density, lats=grid_lats, lons=grid_lons)
