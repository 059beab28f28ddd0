"""Knock model and differential updates for the map surface."""

from hailmap.knocks.differential import (
    COORDINATE_TOLERANCE,
    KNOCK_COMPARABLE_FIELDS,
    KnockDelta,
    calculate_knock_changes,
    knock_changed,
)
from hailmap.knocks.models import Knock, KnockOutcome, SyncStatus
from hailmap.knocks.sync import KnockSync

__all__ = [
    "COORDINATE_TOLERANCE",
    "KNOCK_COMPARABLE_FIELDS",
    "Knock",
    "KnockDelta",
    "KnockOutcome",
    "KnockSync",
    "SyncStatus",
    "calculate_knock_changes",
    "knock_changed",
]
