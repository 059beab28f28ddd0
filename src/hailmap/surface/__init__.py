"""Boundary with the map rendering surface."""

from hailmap.surface.base import MapSurface, MessageSurface
from hailmap.surface.messages import (
    HailContoursMessage,
    KnockPayload,
    KnocksDifferentialMessage,
    KnocksMessage,
    VerifiedReportPayload,
    VerifiedReportsMessage,
)

__all__ = [
    "HailContoursMessage",
    "KnockPayload",
    "KnocksDifferentialMessage",
    "KnocksMessage",
    "MapSurface",
    "MessageSurface",
    "VerifiedReportPayload",
    "VerifiedReportsMessage",
]
