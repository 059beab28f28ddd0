"""GeoJSON feature construction and validation for contour collections.

A contour collection is a GeoJSON ``FeatureCollection`` whose features
carry severity metadata in ``properties``:

    {"level": 2, "minSize": 1.0, "label": "Quarter+ (1.0\\")",
     "color": "#FFD700", "reportCount": 14, "method": "smooth"}

The empty collection is the canonical "no data" value and is always a
valid collection, never None.
"""

from collections import Counter
from typing import Any, Iterable

import geojson
from shapely.geometry import MultiPolygon, Polygon, shape
from shapely.geometry.polygon import orient
from shapely.validation import explain_validity

from hailmap.utils.base import ValidationResult
from hailmap.visualization.colors import SeverityTier

METHOD_SMOOTH = "smooth"
METHOD_SIMPLE = "simple"

POLYGON_TYPES = ("Polygon", "MultiPolygon")


def empty_collection() -> geojson.FeatureCollection:
    """Return a new empty FeatureCollection."""
    return geojson.FeatureCollection([])


def is_empty(collection: dict) -> bool:
    return not collection.get("features")


def _ring_coords(ring) -> list[list[float]]:
    return [[float(x), float(y)] for x, y in ring.coords]


def _polygon_coords(polygon: Polygon) -> list[list[list[float]]]:
    # RFC 7946: exterior counter-clockwise, holes clockwise
    polygon = orient(polygon, sign=1.0)
    rings = [_ring_coords(polygon.exterior)]
    rings.extend(_ring_coords(interior) for interior in polygon.interiors)
    return rings


def to_geojson_geometry(geometry) -> geojson.geometry.Geometry:
    """Convert a shapely Polygon/MultiPolygon to a geojson geometry.

    Raises:
        ValueError: If the geometry is empty or not polygonal
    """
    if geometry.is_empty:
        raise ValueError("Cannot convert an empty geometry")
    if isinstance(geometry, Polygon):
        return geojson.Polygon(_polygon_coords(geometry))
    if isinstance(geometry, MultiPolygon):
        return geojson.MultiPolygon([_polygon_coords(p) for p in geometry.geoms])
    raise ValueError(f"Expected polygonal geometry, got {geometry.geom_type}")


def ring_feature(
    tier: SeverityTier,
    ring: list[tuple[float, float]],
    report_count: int,
    method: str,
) -> geojson.Feature:
    """Build a Polygon feature from a single closed (lon, lat) ring."""
    coords = [[float(x), float(y)] for x, y in ring]
    if coords[0] != coords[-1]:
        coords.append(list(coords[0]))
    return geojson.Feature(
        geometry=geojson.Polygon([coords]),
        properties=tier_properties(tier, report_count, method),
    )


def contour_feature(
    tier: SeverityTier,
    geometry,
    report_count: int,
    method: str,
) -> geojson.Feature:
    """Build a feature from a shapely polygonal geometry."""
    return geojson.Feature(
        geometry=to_geojson_geometry(geometry),
        properties=tier_properties(tier, report_count, method),
    )


def tier_properties(tier: SeverityTier, report_count: int, method: str) -> dict[str, Any]:
    return {
        "level": tier.level,
        "minSize": tier.min_size,
        "label": tier.label,
        "color": tier.color,
        "reportCount": report_count,
        "method": method,
    }


def build_collection(features: Iterable[geojson.Feature]) -> geojson.FeatureCollection:
    """Collect features, most severe first so lower tiers render on top."""
    ordered = sorted(features, key=lambda f: f["properties"]["level"], reverse=True)
    return geojson.FeatureCollection(ordered)


def levels_present(collection: dict) -> list[int]:
    """Distinct severity levels in a collection, ascending."""
    return sorted({f["properties"]["level"] for f in collection.get("features", [])})


def validate_contours(collection: Any) -> ValidationResult:
    """Validate a contour collection before it is sent to a map surface.

    Checks the collection type, each feature's structure, that every ring
    is closed with at least four positions, and that the geometry is valid
    (no self-intersections).

    Args:
        collection: Candidate FeatureCollection (any object)

    Returns:
        ValidationResult with one issue per problem found
    """
    issues: list[str] = []

    if collection is None:
        return ValidationResult(valid=False, total_features=0, issues=["Collection is None"])

    if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
        kind = collection.get("type") if isinstance(collection, dict) else type(collection).__name__
        issues.append(f"Invalid type: {kind}, expected FeatureCollection")

    features = collection.get("features") if isinstance(collection, dict) else None
    if not isinstance(features, list):
        issues.append("features is not a list")
        return ValidationResult(valid=False, total_features=0, issues=issues)

    invalid = 0
    levels: Counter = Counter()
    for index, feature in enumerate(features):
        feature_issues = _check_feature(index, feature)
        if feature_issues:
            invalid += 1
            issues.extend(feature_issues)
        else:
            levels[feature["properties"]["level"]] += 1

    return ValidationResult(
        valid=not issues,
        total_features=len(features),
        invalid_count=invalid,
        issues=issues,
        stats={"features_per_level": dict(sorted(levels.items()))},
    )


def _check_feature(index: int, feature: Any) -> list[str]:
    prefix = f"Feature {index}"
    if not isinstance(feature, dict) or feature.get("type") != "Feature":
        return [f"{prefix}: Invalid type"]

    issues = []
    properties = feature.get("properties")
    if not isinstance(properties, dict):
        issues.append(f"{prefix}: Missing properties")
    else:
        for key in ("level", "color", "label"):
            if key not in properties:
                issues.append(f"{prefix}: Missing property '{key}'")

    geometry = feature.get("geometry")
    if not isinstance(geometry, dict):
        issues.append(f"{prefix}: Missing geometry")
        return issues
    if geometry.get("type") not in POLYGON_TYPES:
        issues.append(f"{prefix}: Invalid geometry type {geometry.get('type')}")
        return issues

    coordinates = geometry.get("coordinates")
    if not coordinates:
        issues.append(f"{prefix}: Missing or empty coordinates")
        return issues

    polygons = [coordinates] if geometry["type"] == "Polygon" else coordinates
    for polygon in polygons:
        for ring in polygon:
            if len(ring) < 4:
                issues.append(f"{prefix}: Ring has fewer than 4 positions")
            elif list(ring[0]) != list(ring[-1]):
                issues.append(f"{prefix}: Ring is not closed")
    if issues:
        return issues

    try:
        geom = shape(geometry)
    except (ValueError, TypeError) as e:
        return [f"{prefix}: Unreadable geometry ({e})"]
    if not geom.is_valid:
        issues.append(f"{prefix}: Invalid geometry ({explain_validity(geom)})")
    return issues
