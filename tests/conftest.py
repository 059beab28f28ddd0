"""Shared pytest fixtures for hailmap tests.

The two-cluster scenario places 25 reports around each of two centres
roughly 100 km apart, with sizes spread evenly over 0.5"-3.0" so that
both clusters reach every severity tier.
"""

import math
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from hailmap.knocks.models import Knock, KnockOutcome
from hailmap.reports.models import HailReport, StormEvent
from hailmap.surface.base import MapSurface

CLUSTER_A = (35.00, -97.50)  # (lat, lon)
CLUSTER_B = (35.60, -96.60)

BASE_TIME = datetime(2025, 5, 20, 21, 0, 0)

GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))


def make_report(
    report_id: str,
    lat: float,
    lon: float,
    size: float,
    minutes: int = 0,
    **kwargs,
) -> HailReport:
    """Build a report with a fixed base timestamp."""
    return HailReport(
        id=report_id,
        latitude=lat,
        longitude=lon,
        size=size,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        **kwargs,
    )


def spiral_cluster(
    prefix: str,
    center: tuple[float, float],
    sizes: list[float],
    radius_deg: float = 0.05,
) -> list[HailReport]:
    """Reports on a sunflower spiral around a centre (first one at the centre)."""
    reports = []
    for i, size in enumerate(sizes):
        r = radius_deg * math.sqrt(i / len(sizes))
        theta = i * GOLDEN_ANGLE
        reports.append(
            make_report(
                f"{prefix}{i}",
                center[0] + r * math.sin(theta),
                center[1] + r * math.cos(theta),
                size,
                minutes=i,
            )
        )
    return reports


class RecordingSurface(MapSurface):
    """Map surface that records every call for assertions."""

    def __init__(self):
        self.contours: list[dict] = []
        self.deltas: list = []
        self.full_updates: list[list[Knock]] = []
        self.verified: list[list[HailReport]] = []

    def update_hail_contours(self, contours: dict) -> None:
        self.contours.append(contours)

    def update_knocks_differential(self, delta) -> None:
        self.deltas.append(delta)

    def update_knocks(self, knocks) -> None:
        self.full_updates.append(list(knocks))

    def update_verified_reports(self, reports) -> None:
        self.verified.append(list(reports))


@pytest.fixture
def two_cluster_reports() -> list[HailReport]:
    """50 reports in two clusters, sizes spanning 0.5"-3.0"."""
    sizes = [0.5 + 2.5 * i / 49 for i in range(50)]
    return (
        spiral_cluster("a", CLUSTER_A, sizes[0::2])
        + spiral_cluster("b", CLUSTER_B, sizes[1::2])
    )


@pytest.fixture
def single_report() -> list[HailReport]:
    return [make_report("solo", 35.2, -97.4, 1.25)]


@pytest.fixture
def collinear_reports() -> list[HailReport]:
    """Reports on a straight north-south line."""
    return [make_report(f"line{i}", 35.0 + 0.02 * i, -97.5, 1.5) for i in range(5)]


@pytest.fixture
def sample_storm(two_cluster_reports) -> StormEvent:
    reports = list(two_cluster_reports)
    # Mark a few reports as ground truth
    for i in (0, 10, 20):
        r = reports[i]
        reports[i] = HailReport(
            id=r.id, latitude=r.latitude, longitude=r.longitude, size=r.size,
            timestamp=r.timestamp, ground_truth=True, confidence=90.0, city="Norman",
        )
    return StormEvent(
        id="storm_1",
        name="Norman supercell",
        start_time=BASE_TIME,
        reports=tuple(reports),
        source="MRMS",
    )


@pytest.fixture
def sample_knocks() -> list[Knock]:
    return [
        Knock(id="k1", latitude=35.2101, longitude=-97.4402, outcome=KnockOutcome.NOT_HOME,
              address="101 Elm St"),
        Knock(id="k2", latitude=35.2105, longitude=-97.4410, outcome=KnockOutcome.LEAD,
              address="105 Elm St", notes="Roof inspection Tuesday"),
        Knock(id="k3", latitude=35.2110, longitude=-97.4420, outcome=KnockOutcome.RENTER,
              address="109 Elm St"),
    ]


@pytest.fixture
def recording_surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def fixtures_dir(tmp_path) -> Path:
    """Temporary directory for report and knock files."""
    path = tmp_path / "fixtures"
    path.mkdir()
    return path
