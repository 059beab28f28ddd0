"""Pipeline configuration.

All tunables for contour generation and map synchronisation live in a
single ``PipelineConfig`` passed to the coordinator at construction.
Values can be overridden from ``HAILMAP_*`` environment variables:

    HAILMAP_DEBOUNCE_MS=300
    HAILMAP_USE_SMOOTH_CONTOURS=true
    HAILMAP_DIFFERENTIAL_UPDATES=true
    HAILMAP_GRID_RESOLUTION_DEG=0.01
    HAILMAP_MAX_GRID_CELLS=400
    HAILMAP_INFLUENCE_RADIUS_KM=15
    HAILMAP_BANDWIDTH_RATIO=0.5
    HAILMAP_FALLBACK_RADIUS_KM=5
    HAILMAP_SIMPLIFY_TOLERANCE_DEG=0.002
    HAILMAP_OFFLOAD_GENERATION=false
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from hailmap.visualization.colors import DEFAULT_SEVERITY_TIERS, SeverityTier

logger = logging.getLogger(__name__)

ENV_PREFIX = "HAILMAP_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class PipelineConfig:
    """Configuration for the hail contour pipeline.

    Attributes:
        tiers: Severity tier table, ascending by size
        debounce_seconds: Window in which successive inputs collapse to one run
        use_smooth_contours: Prefer the smooth generator (user preference)
        differential_updates: Send knock deltas instead of full snapshots
        offload_generation: Run generation in a worker thread
        grid_resolution_deg: Interpolation grid spacing in degrees (~1km)
        max_grid_cells: Upper bound on grid cells along either axis
        influence_radius_km: Distance at which a lone report's density
            falls to the contour level
        bandwidth_ratio: Gaussian kernel bandwidth as a fraction of the
            influence radius
        max_report_weight: Cap on a report's weight relative to a
            threshold-sized one
        simplify_tolerance_deg: Ring simplification tolerance in degrees
        fallback_radius_km: Buffer radius around points for simple contours
        circle_segments: Vertices used to approximate buffer circles
    """

    tiers: tuple[SeverityTier, ...] = DEFAULT_SEVERITY_TIERS
    debounce_seconds: float = 0.3
    use_smooth_contours: bool = True
    differential_updates: bool = True
    offload_generation: bool = False
    grid_resolution_deg: float = 0.01
    max_grid_cells: int = 400
    influence_radius_km: float = 15.0
    bandwidth_ratio: float = 0.5
    max_report_weight: float = 2.0
    simplify_tolerance_deg: float = 0.002
    fallback_radius_km: float = 5.0
    circle_segments: int = 32

    def validate(self) -> None:
        """Check that all values are usable.

        Raises:
            ValueError: If any value is out of range
        """
        if not self.tiers:
            raise ValueError("At least one severity tier is required")
        sizes = [t.min_size for t in self.tiers]
        if sizes != sorted(sizes):
            raise ValueError(f"Tiers must be ordered by ascending size, got {sizes}")
        if self.debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be >= 0, got {self.debounce_seconds}")
        if self.grid_resolution_deg <= 0:
            raise ValueError(
                f"grid_resolution_deg must be positive, got {self.grid_resolution_deg}"
            )
        if self.max_grid_cells < 8:
            raise ValueError(f"max_grid_cells must be >= 8, got {self.max_grid_cells}")
        if self.influence_radius_km <= 0:
            raise ValueError(
                f"influence_radius_km must be positive, got {self.influence_radius_km}"
            )
        if not 0 < self.bandwidth_ratio <= 1:
            raise ValueError(f"bandwidth_ratio must be in (0, 1], got {self.bandwidth_ratio}")
        if self.max_report_weight < 1:
            raise ValueError(
                f"max_report_weight must be >= 1, got {self.max_report_weight}"
            )
        if self.simplify_tolerance_deg < 0:
            raise ValueError(
                f"simplify_tolerance_deg must be >= 0, got {self.simplify_tolerance_deg}"
            )
        if self.fallback_radius_km <= 0:
            raise ValueError(
                f"fallback_radius_km must be positive, got {self.fallback_radius_km}"
            )
        if self.circle_segments < 8:
            raise ValueError(f"circle_segments must be >= 8, got {self.circle_segments}")

    def with_overrides(self, **kwargs) -> "PipelineConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Build a config from ``HAILMAP_*`` environment variables.

        Unset variables keep their defaults.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Raises:
            ValueError: If a variable cannot be parsed or the result is invalid
        """
        env = os.environ if environ is None else environ
        overrides = {}

        debounce_ms = _read(env, "DEBOUNCE_MS", float)
        if debounce_ms is not None:
            overrides["debounce_seconds"] = debounce_ms / 1000.0

        for name, key, parser in (
            ("use_smooth_contours", "USE_SMOOTH_CONTOURS", _parse_bool),
            ("differential_updates", "DIFFERENTIAL_UPDATES", _parse_bool),
            ("offload_generation", "OFFLOAD_GENERATION", _parse_bool),
            ("grid_resolution_deg", "GRID_RESOLUTION_DEG", float),
            ("max_grid_cells", "MAX_GRID_CELLS", int),
            ("influence_radius_km", "INFLUENCE_RADIUS_KM", float),
            ("bandwidth_ratio", "BANDWIDTH_RATIO", float),
            ("simplify_tolerance_deg", "SIMPLIFY_TOLERANCE_DEG", float),
            ("fallback_radius_km", "FALLBACK_RADIUS_KM", float),
        ):
            value = _read(env, key, parser)
            if value is not None:
                overrides[name] = value

        config = cls(**overrides)
        config.validate()
        if overrides:
            logger.debug(f"Config overrides from environment: {sorted(overrides)}")
        return config


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Expected a boolean, got {raw!r}")


def _read(env: Mapping[str, str], key: str, parser):
    raw = env.get(ENV_PREFIX + key)
    if raw is None or raw == "":
        return None
    try:
        return parser(raw)
    except ValueError as e:
        raise ValueError(f"Invalid {ENV_PREFIX}{key}={raw!r}: {e}") from e
