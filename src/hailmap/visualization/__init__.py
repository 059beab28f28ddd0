"""Severity tiers and color scales for hail overlays."""

from .colors import (
    DEFAULT_SEVERITY_TIERS,
    HAIL_SIZE_SCALE,
    SeverityTier,
    build_tiers,
    tier_for_size,
)

__all__ = [
    "DEFAULT_SEVERITY_TIERS",
    "HAIL_SIZE_SCALE",
    "SeverityTier",
    "build_tiers",
    "tier_for_size",
]
