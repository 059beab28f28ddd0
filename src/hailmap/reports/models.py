"""Data models for hail reports and storm events.

Hail sizes are diameters in inches. Radar MESH values (mm) are kept
alongside for reference; use ``mesh_to_inches`` to convert.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from hailmap.exceptions import MalformedReport
from hailmap.utils.geo import BoundingBox, Point

MM_PER_INCH = 25.4


def mesh_to_inches(mesh_mm: float) -> float:
    """Convert a MESH value in millimetres to inches."""
    return mesh_mm / MM_PER_INCH


@dataclass(frozen=True)
class HailReport:
    """A single hail-size observation.

    Attributes:
        id: Unique report id
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        size: Hail diameter in inches
        timestamp: Observation time
        ground_truth: True if verified (e.g. by Storm Events Database)
        confidence: Optional confidence score 0-100
        city: Optional nearest city / label
        source: Optional data source label ("MRMS", "IEM", ...)
        mesh_value: Optional raw MESH value in mm
    """

    id: str
    latitude: float
    longitude: float
    size: float
    timestamp: datetime
    ground_truth: bool = False
    confidence: Optional[float] = None
    city: Optional[str] = None
    source: Optional[str] = None
    mesh_value: Optional[float] = None

    def is_valid(self) -> bool:
        """Check whether the report can take part in contour generation."""
        try:
            validate_report(self)
        except MalformedReport:
            return False
        return True

    def to_dict(self) -> dict:
        """Serialize to the camelCase JSON shape used by the map surface."""
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "size": self.size,
            "timestamp": self.timestamp.isoformat(),
            "groundTruth": self.ground_truth,
            "confidence": self.confidence,
            "city": self.city,
            "source": self.source,
            "meshValue": self.mesh_value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "HailReport":
        """Create a report from a dict.

        Accepts both camelCase (``groundTruth``, ``meshValue``) and
        snake_case keys. Values are not range-checked here; use
        ``validate_report`` for that.

        Raises:
            MalformedReport: If a required key is missing or not numeric
        """
        report_id = d.get("id")
        try:
            timestamp = d.get("timestamp")
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
            elif timestamp is None:
                timestamp = datetime.now()

            size = d.get("size")
            mesh_value = d.get("meshValue", d.get("mesh_value"))
            if size is None and mesh_value is not None:
                size = mesh_to_inches(float(mesh_value))

            return cls(
                id=str(report_id),
                latitude=float(d["latitude"]),
                longitude=float(d["longitude"]),
                size=float(size),
                timestamp=timestamp,
                ground_truth=_parse_flag(d.get("groundTruth", d.get("ground_truth", False))),
                confidence=_optional_float(d.get("confidence")),
                city=d.get("city"),
                source=d.get("source"),
                mesh_value=_optional_float(mesh_value),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedReport(report_id, f"cannot parse ({e})") from e


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _parse_flag(value: Any) -> bool:
    # CSV exports carry flags as text
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def validate_report(report: HailReport) -> HailReport:
    """Check a report's coordinates, size and confidence.

    Returns:
        The same report, for chaining

    Raises:
        MalformedReport: If any field is missing, non-finite or out of range
    """
    for name in ("latitude", "longitude", "size"):
        value = getattr(report, name)
        if value is None or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise MalformedReport(report.id, f"{name} is missing or not finite")

    if not -90.0 <= report.latitude <= 90.0:
        raise MalformedReport(report.id, f"latitude {report.latitude} out of range")
    if not -180.0 <= report.longitude <= 180.0:
        raise MalformedReport(report.id, f"longitude {report.longitude} out of range")
    if report.size <= 0:
        raise MalformedReport(report.id, f"size {report.size} must be positive")
    if report.confidence is not None and not 0.0 <= report.confidence <= 100.0:
        raise MalformedReport(report.id, f"confidence {report.confidence} out of range")

    return report


def partition_reports(reports) -> tuple[list[HailReport], list[MalformedReport]]:
    """Split reports into valid ones and the errors for malformed ones.

    One bad report never blocks the rest of the batch.
    """
    valid: list[HailReport] = []
    errors: list[MalformedReport] = []
    for report in reports:
        try:
            valid.append(validate_report(report))
        except MalformedReport as e:
            errors.append(e)
    return valid, errors


@dataclass
class StormEvent:
    """A spatio-temporal cluster of hail reports.

    Attributes:
        id: Unique storm id
        name: Display name
        start_time: Earliest report time
        reports: Ordered, immutable tuple of reports
        bounds: Geographic extent of the reports
        source: Source label ("MRMS", "IEM", "Mock")
        enabled: Whether the storm is shown on the map
        is_active: Whether the storm is still ongoing
        end_time: When the storm was marked inactive
    """

    id: str
    name: str
    start_time: datetime
    reports: tuple[HailReport, ...]
    bounds: Optional[BoundingBox] = None
    source: str = "MRMS"
    enabled: bool = True
    is_active: bool = True
    end_time: Optional[datetime] = None

    def __post_init__(self):
        self.reports = tuple(self.reports)
        if self.bounds is None and self.reports:
            self.bounds = BoundingBox.from_points(
                (r.latitude, r.longitude) for r in self.reports
            )

    @property
    def max_size(self) -> float:
        """Largest hail size in the storm (inches)."""
        return max((r.size for r in self.reports), default=0.0)

    @property
    def center(self) -> Optional[Point]:
        """Mean location of the storm's reports."""
        if not self.reports:
            return None
        n = len(self.reports)
        return Point(
            lat=sum(r.latitude for r in self.reports) / n,
            lon=sum(r.longitude for r in self.reports) / n,
        )

    @property
    def confidence(self) -> float:
        """Mean confidence of reports that carry one."""
        scores = [r.confidence for r in self.reports if r.confidence is not None]
        if not scores:
            return 0.0
        return sum(scores) / len(scores)

    @property
    def verified_reports(self) -> list[HailReport]:
        return [r for r in self.reports if r.ground_truth]

    def with_enabled(self, enabled: bool) -> "StormEvent":
        return replace(self, enabled=enabled)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "enabled": self.enabled,
            "isActive": self.is_active,
            "source": self.source,
            "maxSize": self.max_size,
            "bounds": self.bounds.to_dict() if self.bounds else None,
            "reports": [r.to_dict() for r in self.reports],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "StormEvent":
        """Create a storm from a dict produced by ``to_dict``.

        Malformed reports inside the storm raise ``MalformedReport``.
        """
        end_time = d.get("endTime")
        bounds = d.get("bounds")
        return cls(
            id=str(d["id"]),
            name=d.get("name", str(d["id"])),
            start_time=datetime.fromisoformat(d["startTime"]),
            reports=tuple(HailReport.from_dict(r) for r in d.get("reports", [])),
            bounds=BoundingBox.from_dict(bounds) if bounds else None,
            source=d.get("source", "MRMS"),
            enabled=d.get("enabled", True),
            is_active=d.get("isActive", True),
            end_time=datetime.fromisoformat(end_time) if end_time else None,
        )
