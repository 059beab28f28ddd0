"""Keep a map surface's knock layer in sync with the latest snapshot."""

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from hailmap.config import PipelineConfig
from hailmap.knocks.differential import KnockDelta, calculate_knock_changes
from hailmap.knocks.models import Knock

if TYPE_CHECKING:
    from hailmap.surface.base import MapSurface

logger = logging.getLogger(__name__)


class KnockSync:
    """Push knock snapshots to a surface, sending deltas where possible.

    The first push, and every push when differential updates are disabled,
    replaces the surface's knocks wholesale. Later pushes send only the
    delta against the last snapshot sent, and nothing at all when the
    snapshot has not changed.

    Example:
        >>> sync = KnockSync(surface)
        >>> sync.push(knocks)          # full update
        >>> sync.push(edited_knocks)   # differential update
    """

    def __init__(self, surface: "MapSurface", config: Optional[PipelineConfig] = None):
        self.surface = surface
        self.config = config or PipelineConfig()
        self._last_sent: Optional[tuple[Knock, ...]] = None

    @property
    def last_sent(self) -> Optional[tuple[Knock, ...]]:
        return self._last_sent

    def push(self, knocks: Sequence[Knock]) -> Optional[KnockDelta]:
        """Send a knock snapshot to the surface.

        Args:
            knocks: Current knocks

        Returns:
            The delta that was computed, or None when a full update was sent
        """
        snapshot = tuple(knocks)

        if self._last_sent is None or not self.config.differential_updates:
            self.surface.update_knocks(snapshot)
            self._last_sent = snapshot
            logger.debug(f"Sent full knock update ({len(snapshot)} knocks)")
            return None

        delta = calculate_knock_changes(self._last_sent, snapshot)
        if delta.has_changes:
            self.surface.update_knocks_differential(delta)
            logger.debug(
                f"Sent knock delta: +{len(delta.added)} ~{len(delta.updated)} "
                f"-{len(delta.removed)}"
            )
        self._last_sent = snapshot
        return delta

    def reset(self) -> None:
        """Force the next push to be a full update (e.g. after a surface reload)."""
        self._last_sent = None
