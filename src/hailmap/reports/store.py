"""In-memory store of storm events.

Holds the storms a rep currently has on device and supplies the
enable/disable and delete operations the map screen uses. Persistence is
handled elsewhere; this store only keeps the working set.

Example:
    >>> store = ReportStore()
    >>> storm = store.group_into_storm_event(reports)
    >>> store.save_storm(storm)
    >>> store.toggle_storm(storm.id, enabled=False)
    >>> store.get_enabled_reports()
    []
"""

import logging
import uuid
from typing import Iterable, Optional

from hailmap.exceptions import StormNotFound
from hailmap.reports.models import HailReport, StormEvent

logger = logging.getLogger(__name__)

# Storms kept on device at once
MAX_STORMS = 3


def detect_source(reports: Iterable[HailReport]) -> str:
    """Classify a storm's data source from its first report's label."""
    first = next(iter(reports), None)
    label = (first.source or "") if first is not None else ""
    if "NCEP" in label or "MRMS" in label:
        return "MRMS"
    if "IEM" in label or "Archive" in label:
        return "IEM"
    return "Mock"


class ReportStore:
    """Working set of storm events, keyed by storm id.

    Storms are kept in insertion order. Reports inside a storm are never
    mutated; enabling or disabling a storm replaces the storm object.
    """

    def __init__(self, storms: Optional[Iterable[StormEvent]] = None, max_storms: int = MAX_STORMS):
        self.max_storms = max_storms
        self._storms: dict[str, StormEvent] = {}
        for storm in storms or []:
            self.save_storm(storm)

    def __len__(self) -> int:
        return len(self._storms)

    def get_active_storms(self) -> list[StormEvent]:
        """Return all stored storms (enabled or not) in insertion order."""
        return list(self._storms.values())

    def get_storm(self, storm_id: str) -> StormEvent:
        """Look up a storm by id.

        Raises:
            StormNotFound: If no storm has this id
        """
        try:
            return self._storms[storm_id]
        except KeyError:
            raise StormNotFound(storm_id) from None

    def save_storm(self, storm: StormEvent) -> None:
        """Insert or replace a storm.

        When a new storm pushes the store past ``max_storms``, the oldest
        inactive storm is evicted. If every storm is still active nothing
        is evicted.
        """
        if storm.id in self._storms:
            self._storms[storm.id] = storm
            return

        self._storms[storm.id] = storm
        if len(self._storms) <= self.max_storms:
            return

        inactive = [s for s in self._storms.values() if not s.is_active]
        if not inactive:
            logger.warning(
                f"Storm limit {self.max_storms} exceeded but all storms are active"
            )
            return

        oldest = min(inactive, key=lambda s: s.start_time)
        del self._storms[oldest.id]
        logger.info(f"Evicted oldest inactive storm {oldest.id} ({oldest.name})")

    def toggle_storm(self, storm_id: str, enabled: bool) -> None:
        """Enable or disable a storm for display on the map."""
        storm = self._storms.get(storm_id)
        if storm is None:
            logger.warning(f"toggle_storm: unknown storm {storm_id}")
            return
        self._storms[storm_id] = storm.with_enabled(enabled)
        logger.debug(f"Storm {storm_id} enabled={enabled}")

    def delete_storm(self, storm_id: str) -> None:
        """Remove a storm and all its reports."""
        if self._storms.pop(storm_id, None) is None:
            logger.warning(f"delete_storm: unknown storm {storm_id}")
            return
        logger.info(f"Deleted storm {storm_id}")

    def clear(self) -> None:
        self._storms.clear()

    def get_enabled_reports(self) -> list[HailReport]:
        """Flatten the reports of all enabled storms, in storm order."""
        reports: list[HailReport] = []
        for storm in self._storms.values():
            if storm.enabled:
                reports.extend(storm.reports)
        return reports

    def get_verified_reports(self) -> list[HailReport]:
        """Ground-truth reports from enabled storms, for marker display."""
        return [r for r in self.get_enabled_reports() if r.ground_truth]

    @staticmethod
    def group_into_storm_event(
        reports: Iterable[HailReport],
        name: Optional[str] = None,
        storm_id: Optional[str] = None,
    ) -> StormEvent:
        """Group raw reports into a new storm event.

        Args:
            reports: Reports belonging to one storm
            name: Display name. Defaults to "Storm <start time>".
            storm_id: Storm id. Defaults to a random id.

        Returns:
            Enabled, active StormEvent with bounds computed from the reports

        Raises:
            ValueError: If no reports are given
        """
        reports = tuple(reports)
        if not reports:
            raise ValueError("No reports to group")

        start_time = min(r.timestamp for r in reports)
        return StormEvent(
            id=storm_id or f"storm_{uuid.uuid4().hex[:12]}",
            name=name or f"Storm {start_time:%Y-%m-%d %H:%M}",
            start_time=start_time,
            reports=reports,
            source=detect_source(reports),
            enabled=True,
            is_active=True,
        )
