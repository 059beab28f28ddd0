"""Shared utilities for hailmap."""

from .base import ValidationResult
from .geo import KM_PER_DEGREE_LAT, MAX_LATITUDE, BoundingBox, Point, clamp_latitude, km_to_degrees

__all__ = [
    "BoundingBox",
    "KM_PER_DEGREE_LAT",
    "MAX_LATITUDE",
    "Point",
    "ValidationResult",
    "clamp_latitude",
    "km_to_degrees",
]
