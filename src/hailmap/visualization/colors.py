"""Hail severity tiers and color scale.

Severity tiers bucket hail diameter (inches) into ordinal levels used to
classify contour bands. Each tier is cumulative: a report of 2.1" counts
toward every tier whose minimum size it meets.

Colors are hex strings, written into GeoJSON feature properties.
"""

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class SeverityTier:
    """One row of the severity table.

    Attributes:
        level: Ordinal tier, 1 is the least severe
        min_size: Minimum hail diameter in inches (inclusive)
        label: Human-readable description for legends
        color: Hex color string
    """

    level: int
    min_size: float
    label: str
    color: str

    def includes(self, size_in: float) -> bool:
        return size_in >= self.min_size


# =============================================================================
# HAIL SIZE SCALE
# =============================================================================

# (min_size_in, hex_color, label)
HAIL_SIZE_SCALE = [
    (0.75, "#ADFF2F", "Penny+ (0.75\")"),  # Green-yellow
    (1.00, "#FFD700", "Quarter+ (1.0\")"),  # Gold
    (1.50, "#FF8C00", "Walnut+ (1.5\")"),  # Dark orange
    (2.00, "#FF0000", "Egg+ (2.0\")"),  # Red
    (2.75, "#8B0000", "Baseball+ (2.75\")"),  # Dark red
]

DEFAULT_SEVERITY_TIERS: tuple[SeverityTier, ...] = tuple(
    SeverityTier(level=i, min_size=size, label=label, color=color)
    for i, (size, color, label) in enumerate(HAIL_SIZE_SCALE, 1)
)


def build_tiers(scale: Sequence[tuple[float, str, str]]) -> tuple[SeverityTier, ...]:
    """Build an ordered tier table from (min_size, color, label) rows.

    Rows may be given in any order; levels are assigned by ascending size.

    Raises:
        ValueError: If the scale is empty or has duplicate/non-positive sizes
    """
    if not scale:
        raise ValueError("Severity scale must have at least one tier")

    rows = sorted(scale, key=lambda row: row[0])
    sizes = [row[0] for row in rows]
    if len(set(sizes)) != len(sizes):
        raise ValueError(f"Duplicate tier thresholds: {sizes}")
    if sizes[0] <= 0:
        raise ValueError(f"Tier thresholds must be positive, got {sizes[0]}")

    return tuple(
        SeverityTier(level=i, min_size=float(size), label=label, color=color)
        for i, (size, color, label) in enumerate(rows, 1)
    )


def tier_for_size(
    size_in: float,
    tiers: Sequence[SeverityTier] = DEFAULT_SEVERITY_TIERS,
) -> SeverityTier | None:
    """Get the highest tier a hail size reaches.

    Args:
        size_in: Hail diameter in inches
        tiers: Tier table ordered by ascending size

    Returns:
        Highest matching tier, or None if below the lowest threshold

    Examples:
        >>> tier_for_size(1.2).label
        'Quarter+ (1.0")'
        >>> tier_for_size(0.5) is None
        True
    """
    match = None
    for tier in tiers:
        if tier.includes(size_in):
            match = tier
    return match
