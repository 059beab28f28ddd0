"""Contour pipeline orchestration."""

from hailmap.pipeline.coordinator import (
    ContourCoordinator,
    ContourGenerator,
    CoordinatorState,
    CoordinatorStats,
)

__all__ = [
    "ContourCoordinator",
    "ContourGenerator",
    "CoordinatorState",
    "CoordinatorStats",
]
