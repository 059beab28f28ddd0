"""Differential knock updates.

Computes the minimal add/update/remove transition between two knock
snapshots so the map surface can be patched instead of reloaded. Knock
sets grow to thousands of entries over a season, so comparison is a
single pass over each snapshot with dict lookups by id.

Example:
    >>> delta = calculate_knock_changes(previous, current)
    >>> if delta.has_changes:
    ...     surface.update_knocks_differential(delta)
"""

import math
from dataclasses import dataclass, field
from typing import Sequence

from hailmap.knocks.models import Knock

# Fields whose change makes a knock count as updated
KNOCK_COMPARABLE_FIELDS = (
    "outcome",
    "notes",
    "address",
    "latitude",
    "longitude",
    "sync_status",
)

# Coordinates closer than this (degrees, ~1cm) count as unchanged
COORDINATE_TOLERANCE = 1e-7

_COORDINATE_FIELDS = ("latitude", "longitude")


@dataclass
class KnockDelta:
    """Transition from one knock snapshot to the next.

    Attributes:
        added: Knocks only in the current snapshot, in current order
        updated: Knocks in both whose comparable fields differ, in current order
        removed: Ids only in the previous snapshot, in previous order
    """

    added: list[Knock] = field(default_factory=list)
    updated: list[Knock] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def to_dict(self) -> dict:
        return {
            "added": [k.to_dict() for k in self.added],
            "updated": [k.to_dict() for k in self.updated],
            "removed": list(self.removed),
            "hasChanges": self.has_changes,
        }


def knock_changed(before: Knock, after: Knock) -> bool:
    """Check whether any comparable field differs between two versions of a knock.

    Coordinates are compared within ``COORDINATE_TOLERANCE`` so float noise
    from storage round trips is not reported as a move.
    """
    for name in KNOCK_COMPARABLE_FIELDS:
        old = getattr(before, name)
        new = getattr(after, name)
        if name in _COORDINATE_FIELDS:
            if not math.isclose(old, new, rel_tol=0.0, abs_tol=COORDINATE_TOLERANCE):
                return True
        elif old != new:
            return True
    return False


def calculate_knock_changes(
    previous: Sequence[Knock],
    current: Sequence[Knock],
) -> KnockDelta:
    """Compare two knock snapshots.

    Both snapshots are treated as sets keyed by id. Neither is modified.

    Args:
        previous: Snapshot last sent to the surface
        current: Latest snapshot

    Returns:
        KnockDelta with added, updated and removed knocks
    """
    previous_by_id = {k.id: k for k in previous}
    current_ids = set()
    delta = KnockDelta()

    for knock in current:
        current_ids.add(knock.id)
        before = previous_by_id.get(knock.id)
        if before is None:
            delta.added.append(knock)
        elif knock_changed(before, knock):
            delta.updated.append(knock)

    delta.removed = [k.id for k in previous if k.id not in current_ids]
    return delta
