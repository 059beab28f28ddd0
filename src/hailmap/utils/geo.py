"""Geographic utilities and constants."""

from dataclasses import dataclass
from math import cos, radians
from typing import Iterable

# Length of one degree of latitude in km
KM_PER_DEGREE_LAT = 111.32

MAX_LATITUDE = 90.0


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box."""

    west: float
    south: float
    east: float
    north: float

    def expand(self, lat_deg: float, lon_deg: float) -> "BoundingBox":
        """Return a copy padded by the given number of degrees on each side.

        Latitudes are clamped to [-90, 90].
        """
        return BoundingBox(
            west=self.west - lon_deg,
            south=clamp_latitude(self.south - lat_deg),
            east=self.east + lon_deg,
            north=clamp_latitude(self.north + lat_deg),
        )

    def to_dict(self) -> dict:
        """Return as dictionary."""
        return {
            "north": self.north,
            "south": self.south,
            "east": self.east,
            "west": self.west,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "BoundingBox":
        return cls(
            west=float(d["west"]),
            south=float(d["south"]),
            east=float(d["east"]),
            north=float(d["north"]),
        )

    @classmethod
    def from_points(cls, points: Iterable[tuple[float, float]]) -> "BoundingBox":
        """Smallest box containing all (lat, lon) points.

        Raises:
            ValueError: If no points are given
        """
        points = list(points)
        if not points:
            raise ValueError("Cannot compute bounds of an empty point set")

        lats = [p[0] for p in points]
        lons = [p[1] for p in points]
        return cls(west=min(lons), south=min(lats), east=max(lons), north=max(lats))


def clamp_latitude(lat: float) -> float:
    return min(max(lat, -MAX_LATITUDE), MAX_LATITUDE)


@dataclass(frozen=True)
class Point:
    """Geographic point."""

    lat: float
    lon: float


def km_to_degrees(km: float, lat: float) -> tuple[float, float]:
    """Convert a distance to (lat_degrees, lon_degrees) at a given latitude.

    Longitude degrees shrink toward the poles; the cosine is clamped so
    the conversion stays finite near them.

    Examples:
        >>> km_to_degrees(111.32, 0.0)
        (1.0, 1.0)
    """
    lat_deg = km / KM_PER_DEGREE_LAT
    lon_deg = km / (KM_PER_DEGREE_LAT * max(cos(radians(lat)), 0.01))
    return lat_deg, lon_deg
