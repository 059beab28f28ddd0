"""Marching-squares isoline extraction.

Turns a scalar grid into the polygonal region where ``value >= level``.
The grid is padded with a border below the level so every isoline closes.
Edge crossings are computed once per grid edge, so neighbouring cells share
bit-identical vertices and the segments can be polygonised directly.
"""

import logging

import numpy as np
from scipy import ndimage
from shapely.geometry import LineString, MultiPolygon, Polygon
from shapely.ops import polygonize, unary_union

logger = logging.getLogger(__name__)

# Edge names used in the case table
BOTTOM, RIGHT, TOP, LEFT = "b", "r", "t", "l"

# Corner bits: top-left=8, top-right=4, bottom-right=2, bottom-left=1.
# Saddles (5, 10) are resolved separately using the cell-centre mean.
SEGMENT_TABLE = {
    1: [(LEFT, BOTTOM)],
    2: [(BOTTOM, RIGHT)],
    3: [(LEFT, RIGHT)],
    4: [(TOP, RIGHT)],
    6: [(BOTTOM, TOP)],
    7: [(LEFT, TOP)],
    8: [(LEFT, TOP)],
    9: [(BOTTOM, TOP)],
    11: [(TOP, RIGHT)],
    12: [(LEFT, RIGHT)],
    13: [(BOTTOM, RIGHT)],
    14: [(LEFT, BOTTOM)],
}

# Saddle segments when the cell centre is inside / outside the region
SADDLE_TABLE = {
    (5, True): [(LEFT, TOP), (BOTTOM, RIGHT)],
    (5, False): [(LEFT, BOTTOM), (TOP, RIGHT)],
    (10, True): [(LEFT, BOTTOM), (TOP, RIGHT)],
    (10, False): [(LEFT, TOP), (BOTTOM, RIGHT)],
}


def marching_squares(
    values: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
    level: float,
) -> list[tuple[tuple[float, float], tuple[float, float]]]:
    """Compute isoline segments for one level.

    Args:
        values: Grid of shape (len(ys), len(xs)); row index grows with y
        xs: Column coordinates, ascending
        ys: Row coordinates, ascending
        level: Isoline value

    Returns:
        List of ((x1, y1), (x2, y2)) segments; zero-length ones are dropped
    """
    inside = values >= level
    cases = (
        inside[1:, :-1].astype(np.uint8) * 8  # top-left
        + inside[1:, 1:].astype(np.uint8) * 4  # top-right
        + inside[:-1, 1:].astype(np.uint8) * 2  # bottom-right
        + inside[:-1, :-1].astype(np.uint8)  # bottom-left
    )

    def horizontal(i: int, j: int) -> tuple[float, float]:
        # Crossing on the edge from (i, j) to (i, j + 1)
        v1, v2 = values[i, j], values[i, j + 1]
        t = (level - v1) / (v2 - v1)
        return (float(xs[j] + t * (xs[j + 1] - xs[j])), float(ys[i]))

    def vertical(i: int, j: int) -> tuple[float, float]:
        # Crossing on the edge from (i, j) to (i + 1, j)
        v1, v2 = values[i, j], values[i + 1, j]
        t = (level - v1) / (v2 - v1)
        return (float(xs[j]), float(ys[i] + t * (ys[i + 1] - ys[i])))

    segments = []
    rows, cols = np.nonzero((cases != 0) & (cases != 15))
    for i, j in zip(rows.tolist(), cols.tolist()):
        case = int(cases[i, j])
        if case in (5, 10):
            center = (
                values[i, j] + values[i, j + 1] + values[i + 1, j] + values[i + 1, j + 1]
            ) / 4.0
            pairs = SADDLE_TABLE[(case, bool(center >= level))]
        else:
            pairs = SEGMENT_TABLE[case]

        for a, b in pairs:
            p1 = _edge_point(a, i, j, horizontal, vertical)
            p2 = _edge_point(b, i, j, horizontal, vertical)
            if p1 != p2:
                segments.append((p1, p2))

    return segments


def _edge_point(edge: str, i: int, j: int, horizontal, vertical) -> tuple[float, float]:
    if edge == BOTTOM:
        return horizontal(i, j)
    if edge == TOP:
        return horizontal(i + 1, j)
    if edge == LEFT:
        return vertical(i, j)
    return vertical(i, j + 1)


def extract_region(
    values: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
    level: float,
) -> Polygon | MultiPolygon:
    """Polygonal region where the grid is at or above ``level``.

    Args:
        values: Grid of shape (len(ys), len(xs))
        xs: Column coordinates (longitudes), ascending and evenly spaced
        ys: Row coordinates (latitudes), ascending and evenly spaced
        level: Threshold value

    Returns:
        Polygon or MultiPolygon in (x, y) coordinates; empty if nothing
        reaches the level
    """
    if values.size == 0 or float(values.max()) < level:
        return Polygon()

    # Pad with a border below the level so all isolines close
    fill = min(float(values.min()), level) - 1.0
    padded = np.pad(values, 1, mode="constant", constant_values=fill)
    dx = xs[1] - xs[0] if len(xs) > 1 else 1.0
    dy = ys[1] - ys[0] if len(ys) > 1 else 1.0
    pxs = np.concatenate(([xs[0] - dx], xs, [xs[-1] + dx]))
    pys = np.concatenate(([ys[0] - dy], ys, [ys[-1] + dy]))

    segments = marching_squares(padded, pxs, pys, level)
    if not segments:
        return Polygon()

    faces = list(polygonize([LineString(s) for s in segments]))

    # polygonize returns holes as faces too; keep only faces inside the region
    kept = []
    for face in faces:
        if face.is_empty or face.area == 0:
            continue
        point = face.representative_point()
        row = (point.y - pys[0]) / dy
        col = (point.x - pxs[0]) / dx
        value = ndimage.map_coordinates(padded, [[row], [col]], order=1, mode="nearest")[0]
        if value >= level:
            kept.append(face)

    logger.debug(
        f"Level {level}: {len(segments)} segments, {len(faces)} faces, {len(kept)} kept"
    )
    if not kept:
        return Polygon()
    return unary_union(kept)
