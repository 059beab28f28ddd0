"""Contour pipeline coordinator.

Turns a stream of report-set changes into contour updates on the map
surface. Successive changes inside the debounce window collapse into a
single generation run using only the latest input. Runs use the smooth
generator and fall back to the simple one on any error; the result is
delivered to the surface unless a newer input has arrived in the meantime.

State machine::

    IDLE -> SCHEDULED -> GENERATING -> EMITTED | FAILED
              ^                           |
              +------- new input ---------+

Clearing (an empty report set) skips the debounce and is emitted at once.

Example:
    >>> coordinator = ContourCoordinator(surface, PipelineConfig())
    >>> coordinator.submit(store.get_enabled_reports())
    >>> await coordinator.wait_idle()
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol, Sequence

import geojson

from hailmap.config import PipelineConfig
from hailmap.contours.features import empty_collection, levels_present
from hailmap.contours.simple import SimpleContourGenerator
from hailmap.contours.smooth import SmoothContourGenerator
from hailmap.exceptions import FallbackFailure
from hailmap.reports.models import HailReport, partition_reports
from hailmap.reports.store import ReportStore
from hailmap.surface.base import MapSurface

logger = logging.getLogger(__name__)


class ContourGenerator(Protocol):
    name: str

    def generate(self, reports: Sequence[HailReport]) -> geojson.FeatureCollection:
        ...


class CoordinatorState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    GENERATING = "generating"
    EMITTED = "emitted"
    FAILED = "failed"


@dataclass
class CoordinatorStats:
    """Counters for diagnostics.

    Attributes:
        runs: Generation runs started
        primary_successes: Runs served by the smooth generator
        fallbacks: Runs where the smooth generator failed and fallback was used
        failures: Runs where no collection could be produced
        stale_discarded: Results dropped because newer input had arrived
        malformed_filtered: Malformed reports removed before generation
        emitted: Collections sent to the surface (including clears)
    """

    runs: int = 0
    primary_successes: int = 0
    fallbacks: int = 0
    failures: int = 0
    stale_discarded: int = 0
    malformed_filtered: int = 0
    emitted: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class ContourCoordinator:
    """Debounced, last-input-wins contour generation for one map surface.

    Only the coordinator writes ``current_contours`` and ``generating``.
    ``submit`` must be called from a running event loop.

    Args:
        surface: Consumer of the generated collections
        config: Pipeline configuration
        primary: Smooth generator. Defaults to ``SmoothContourGenerator``.
        fallback: Fallback generator. Defaults to ``SimpleContourGenerator``.
        settle: Optional coroutine function awaited after the debounce and
            before generation, e.g. to wait for UI transitions to finish
    """

    def __init__(
        self,
        surface: MapSurface,
        config: Optional[PipelineConfig] = None,
        primary: Optional[ContourGenerator] = None,
        fallback: Optional[ContourGenerator] = None,
        settle: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.surface = surface
        self.config = config or PipelineConfig()
        self.primary = primary or SmoothContourGenerator(self.config)
        self.fallback = fallback or SimpleContourGenerator(self.config)
        self.settle = settle

        self.state = CoordinatorState.IDLE
        self.generating = False
        self.current_contours: geojson.FeatureCollection = empty_collection()
        self.stats = CoordinatorStats()

        self._sequence = 0
        self._pending: Optional[asyncio.Task] = None
        self._active: set[asyncio.Task] = set()

    def submit(
        self,
        reports: Sequence[HailReport],
        use_smooth_contours: Optional[bool] = None,
    ) -> None:
        """Submit the latest report set.

        Args:
            reports: Reports of all enabled storms
            use_smooth_contours: Override the configured smooth preference

        Raises:
            RuntimeError: If called without a running event loop
        """
        loop = asyncio.get_running_loop()
        self._sequence += 1
        sequence = self._sequence

        valid, malformed = partition_reports(reports)
        if malformed:
            self.stats.malformed_filtered += len(malformed)
            logger.warning(f"Filtered {len(malformed)} malformed reports")

        self._cancel_pending()

        if not valid:
            logger.debug("No reports, clearing contours")
            self._emit(empty_collection())
            return

        smooth = self.config.use_smooth_contours if use_smooth_contours is None else use_smooth_contours
        self.state = CoordinatorState.SCHEDULED
        self._pending = loop.create_task(self._debounce(sequence, tuple(valid), smooth))
        logger.debug(f"Scheduled run {sequence} ({len(valid)} reports, smooth={smooth})")

    def refresh_from_store(
        self,
        store: ReportStore,
        use_smooth_contours: Optional[bool] = None,
    ) -> None:
        """Regenerate contours from the enabled storms in a store.

        Also refreshes the ground-truth report markers on the surface.
        """
        self.surface.update_verified_reports(store.get_verified_reports())
        self.submit(store.get_enabled_reports(), use_smooth_contours)

    async def wait_idle(self) -> None:
        """Wait until no run is scheduled or generating."""
        while True:
            tasks = [t for t in self._tasks() if not t.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel any scheduled or running generation."""
        tasks = self._tasks()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending = None
        self._active.clear()

    def _tasks(self) -> list[asyncio.Task]:
        tasks = list(self._active)
        if self._pending is not None:
            tasks.append(self._pending)
        return tasks

    def _cancel_pending(self) -> None:
        # Runs already generating are not interrupted; their results are
        # discarded by sequence number instead
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            logger.debug("Superseded scheduled run")
        self._pending = None

    async def _debounce(self, sequence: int, reports: tuple[HailReport, ...], smooth: bool) -> None:
        await asyncio.sleep(self.config.debounce_seconds)
        if self.settle is not None:
            try:
                await self.settle()
            except Exception as e:
                logger.warning(f"Settle hook failed ({e}), generating anyway")

        if self._pending is asyncio.current_task():
            self._pending = None
        task = asyncio.get_running_loop().create_task(self._generate(sequence, reports, smooth))
        self._active.add(task)
        task.add_done_callback(self._active.discard)

    async def _generate(self, sequence: int, reports: tuple[HailReport, ...], smooth: bool) -> None:
        self.state = CoordinatorState.GENERATING
        self.generating = True
        self.stats.runs += 1

        try:
            collection = await self._produce(reports, smooth)
        except FallbackFailure as e:
            if self._is_stale(sequence):
                return
            self.stats.failures += 1
            logger.error(f"Contour generation failed, keeping previous contours: {e}")
            self.state = CoordinatorState.FAILED
            self.generating = False
            return

        if self._is_stale(sequence):
            return
        self._emit(collection)

    async def _produce(self, reports: tuple[HailReport, ...], smooth: bool) -> geojson.FeatureCollection:
        if smooth:
            try:
                collection = await self._call(self.primary, reports)
            except Exception as e:
                self.stats.fallbacks += 1
                logger.warning(f"Smooth contours failed ({e}), falling back to simple contours")
            else:
                self.stats.primary_successes += 1
                return collection

        try:
            return await self._call(self.fallback, reports)
        except Exception as e:
            raise FallbackFailure(f"Simple contour generation failed: {e}") from e

    async def _call(
        self,
        generator: ContourGenerator,
        reports: tuple[HailReport, ...],
    ) -> geojson.FeatureCollection:
        if self.config.offload_generation:
            return await asyncio.to_thread(generator.generate, reports)
        return generator.generate(reports)

    def _is_stale(self, sequence: int) -> bool:
        if sequence == self._sequence:
            return False
        self.stats.stale_discarded += 1
        logger.debug(f"Discarded result of run {sequence} (latest is {self._sequence})")
        return True

    def _emit(self, collection: geojson.FeatureCollection) -> None:
        self.current_contours = collection
        self.surface.update_hail_contours(collection)
        self.state = CoordinatorState.EMITTED
        self.generating = False
        self.stats.emitted += 1
        logger.info(
            f"Emitted {len(collection['features'])} contour features "
            f"(levels {levels_present(collection)})"
        )
