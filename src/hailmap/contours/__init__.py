"""Contour generation: hail reports to tiered severity polygons."""

from hailmap.contours.features import (
    METHOD_SIMPLE,
    METHOD_SMOOTH,
    build_collection,
    empty_collection,
    is_empty,
    levels_present,
    validate_contours,
)
from hailmap.contours.simple import SimpleContourGenerator
from hailmap.contours.smooth import SmoothContourGenerator

__all__ = [
    "METHOD_SIMPLE",
    "METHOD_SMOOTH",
    "SimpleContourGenerator",
    "SmoothContourGenerator",
    "build_collection",
    "empty_collection",
    "is_empty",
    "levels_present",
    "validate_contours",
]
