"""Tests for the contour pipeline coordinator.

Async behaviour is driven with ``asyncio.run`` inside plain tests.
"""

import asyncio
import time

import pytest

from conftest import RecordingSurface, make_report
from hailmap.config import PipelineConfig
from hailmap.contours.features import build_collection, empty_collection, ring_feature
from hailmap.exceptions import GenerationError
from hailmap.pipeline.coordinator import ContourCoordinator, CoordinatorState
from hailmap.reports.store import ReportStore
from hailmap.visualization.colors import DEFAULT_SEVERITY_TIERS

FAST = PipelineConfig(debounce_seconds=0.05)


class FakeGenerator:
    """Generator that records its inputs and returns a tagged collection."""

    def __init__(self, name: str, fail: bool = False, delay: float = 0.0):
        self.name = name
        self.fail = fail
        self.delay = delay
        self.calls: list[list[str]] = []

    def generate(self, reports):
        self.calls.append([r.id for r in reports])
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise GenerationError(f"{self.name} failed")
        ring = [(-97.6, 35.0), (-97.4, 35.0), (-97.4, 35.2)]
        collection = build_collection([ring_feature(DEFAULT_SEVERITY_TIERS[0], ring, len(reports), self.name)])
        collection["source"] = f"{self.name}:{reports[0].id}"
        return collection


def reports_named(prefix: str, count: int = 3):
    return [make_report(f"{prefix}{i}", 35.0 + 0.01 * i, -97.5 + 0.02 * (i % 2), 1.5) for i in range(count)]


def run(coro):
    return asyncio.run(coro)


class TestEmptyInput:
    """Clearing behaviour."""

    def test_empty_input_emits_immediately(self, recording_surface):
        primary, fallback = FakeGenerator("smooth"), FakeGenerator("simple")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, fallback)
            coordinator.submit([])
            # Emitted synchronously, before any debounce elapses
            assert recording_surface.contours == [empty_collection()]
            return coordinator

        coordinator = run(scenario())
        assert primary.calls == []
        assert fallback.calls == []
        assert coordinator.generating is False
        assert coordinator.state == CoordinatorState.EMITTED
        assert coordinator.current_contours == {"type": "FeatureCollection", "features": []}

    def test_empty_input_cancels_pending_run(self, recording_surface):
        primary = FakeGenerator("smooth")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, FakeGenerator("simple"))
            coordinator.submit(reports_named("a"))
            coordinator.submit([])
            await coordinator.wait_idle()

        run(scenario())
        assert primary.calls == []
        assert recording_surface.contours == [empty_collection()]

    def test_all_malformed_counts_as_empty(self, recording_surface):
        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, FakeGenerator("smooth"))
            coordinator.submit([make_report("bad", 500.0, -97.5, 1.0)])
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert coordinator.stats.malformed_filtered == 1
        assert recording_surface.contours == [empty_collection()]


class TestDebounce:
    """Debounce coalescing."""

    def test_rapid_inputs_collapse_to_latest(self, recording_surface):
        """A, B, C inside the window produce one run using C."""
        primary = FakeGenerator("smooth")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, FakeGenerator("simple"))
            coordinator.submit(reports_named("a"))
            await asyncio.sleep(0.01)
            coordinator.submit(reports_named("b"))
            await asyncio.sleep(0.01)
            coordinator.submit(reports_named("c"))
            assert coordinator.state == CoordinatorState.SCHEDULED
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert primary.calls == [["c0", "c1", "c2"]]
        assert len(recording_surface.contours) == 1
        assert recording_surface.contours[0]["source"] == "smooth:c0"
        assert coordinator.stats.runs == 1

    def test_inputs_outside_window_run_separately(self, recording_surface):
        primary = FakeGenerator("smooth")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()
            coordinator.submit(reports_named("b"))
            await coordinator.wait_idle()

        run(scenario())
        assert [c[0] for c in primary.calls] == ["a0", "b0"]
        assert len(recording_surface.contours) == 2

    def test_settle_hook_awaited_before_generation(self, recording_surface):
        order = []
        primary = FakeGenerator("smooth")

        async def settle():
            order.append("settle")
            await asyncio.sleep(0)

        original = primary.generate

        def generate(reports):
            order.append("generate")
            return original(reports)

        primary.generate = generate

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, settle=settle)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()

        run(scenario())
        assert order == ["settle", "generate"]

    def test_failing_settle_hook_still_generates(self, recording_surface, caplog):
        primary = FakeGenerator("smooth")

        async def settle():
            raise RuntimeError("animation interrupted")

        async def scenario():
            config = PipelineConfig(debounce_seconds=0.0)
            coordinator = ContourCoordinator(recording_surface, config, primary, settle=settle)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert primary.calls == [["a0", "a1", "a2"]]
        assert len(recording_surface.contours) == 1
        assert coordinator.state == CoordinatorState.EMITTED
        assert coordinator.generating is False
        assert "animation interrupted" in caplog.text

    def test_submit_requires_running_loop(self, recording_surface):
        coordinator = ContourCoordinator(recording_surface, FAST, FakeGenerator("smooth"))
        with pytest.raises(RuntimeError):
            coordinator.submit(reports_named("a"))


class TestStrategySelection:
    """Primary / fallback selection."""

    def test_primary_success(self, recording_surface):
        primary, fallback = FakeGenerator("smooth"), FakeGenerator("simple")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, fallback)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert fallback.calls == []
        assert coordinator.stats.primary_successes == 1
        assert coordinator.current_contours["source"] == "smooth:a0"
        assert coordinator.state == CoordinatorState.EMITTED
        assert coordinator.generating is False

    def test_primary_failure_falls_back(self, recording_surface):
        primary, fallback = FakeGenerator("smooth", fail=True), FakeGenerator("simple")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, fallback)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert primary.calls == fallback.calls == [["a0", "a1", "a2"]]
        assert recording_surface.contours[0]["source"] == "simple:a0"
        assert coordinator.stats.fallbacks == 1

    def test_both_fail_emits_nothing(self, recording_surface, caplog):
        """Previous contours stay on the surface when both generators fail."""
        primary, fallback = FakeGenerator("smooth"), FakeGenerator("simple")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, fallback)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()
            primary.fail = fallback.fail = True
            coordinator.submit(reports_named("b"))
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert len(recording_surface.contours) == 1
        assert coordinator.current_contours["source"] == "smooth:a0"
        assert coordinator.state == CoordinatorState.FAILED
        assert coordinator.generating is False
        assert coordinator.stats.failures == 1
        assert "keeping previous contours" in caplog.text

    def test_smooth_disabled_uses_fallback_only(self, recording_surface):
        primary, fallback = FakeGenerator("smooth"), FakeGenerator("simple")
        config = FAST.with_overrides(use_smooth_contours=False)

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, config, primary, fallback)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()

        run(scenario())
        assert primary.calls == []
        assert recording_surface.contours[0]["source"] == "simple:a0"

    def test_per_call_preference_override(self, recording_surface):
        primary, fallback = FakeGenerator("smooth"), FakeGenerator("simple")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary, fallback)
            coordinator.submit(reports_named("a"), use_smooth_contours=False)
            await coordinator.wait_idle()

        run(scenario())
        assert primary.calls == []
        assert len(fallback.calls) == 1

    def test_fallback_failure_without_smooth_is_not_retried(self, recording_surface):
        fallback = FakeGenerator("simple", fail=True)
        config = FAST.with_overrides(use_smooth_contours=False)

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, config, FakeGenerator("smooth"), fallback)
            coordinator.submit(reports_named("a"))
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert len(fallback.calls) == 1
        assert recording_surface.contours == []
        assert coordinator.state == CoordinatorState.FAILED


class TestStaleResults:
    """Last-input-wins delivery with offloaded generation."""

    def test_superseded_result_discarded(self, recording_surface):
        primary = FakeGenerator("smooth", delay=0.2)
        config = PipelineConfig(debounce_seconds=0.0, offload_generation=True)

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, config, primary)
            coordinator.submit(reports_named("a"))
            await asyncio.sleep(0.05)
            assert coordinator.generating is True
            coordinator.submit(reports_named("b"))
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert [c[0] for c in primary.calls] == ["a0", "b0"]
        assert [c["source"] for c in recording_surface.contours] == ["smooth:b0"]
        assert coordinator.stats.stale_discarded == 1
        assert coordinator.current_contours["source"] == "smooth:b0"

    def test_clear_during_generation_wins(self, recording_surface):
        primary = FakeGenerator("smooth", delay=0.1)
        config = PipelineConfig(debounce_seconds=0.0, offload_generation=True)

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, config, primary)
            coordinator.submit(reports_named("a"))
            await asyncio.sleep(0.03)
            coordinator.submit([])
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert recording_surface.contours == [empty_collection()]
        assert coordinator.current_contours == empty_collection()

    def test_close_cancels_scheduled_run(self, recording_surface):
        primary = FakeGenerator("smooth")

        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST, primary)
            coordinator.submit(reports_named("a"))
            await coordinator.close()
            await asyncio.sleep(0.1)

        run(scenario())
        assert primary.calls == []
        assert recording_surface.contours == []


class TestRefreshFromStore:
    """Store integration."""

    def test_only_enabled_storms_used(self, sample_storm):
        surface = RecordingSurface()
        primary = FakeGenerator("smooth")
        other = sample_storm.with_enabled(False)
        other.id = "storm_2"
        store = ReportStore([sample_storm, other])

        async def scenario():
            coordinator = ContourCoordinator(surface, FAST, primary)
            coordinator.refresh_from_store(store)
            await coordinator.wait_idle()

        run(scenario())
        assert len(primary.calls[0]) == 50
        assert len(surface.verified) == 1
        assert len(surface.verified[0]) == 3

    def test_disabling_all_storms_clears(self, sample_storm):
        surface = RecordingSurface()
        store = ReportStore([sample_storm])

        async def scenario():
            coordinator = ContourCoordinator(surface, FAST, FakeGenerator("smooth"))
            coordinator.refresh_from_store(store)
            await coordinator.wait_idle()
            store.toggle_storm(sample_storm.id, enabled=False)
            coordinator.refresh_from_store(store)
            await coordinator.wait_idle()

        run(scenario())
        assert len(surface.contours) == 2
        assert surface.contours[-1] == empty_collection()
        assert surface.verified[-1] == []


class TestRealGenerators:
    """End-to-end with the default generators."""

    def test_two_cluster_scenario(self, recording_surface, two_cluster_reports):
        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST)
            coordinator.submit(two_cluster_reports)
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert coordinator.stats.primary_successes == 1
        methods = {f["properties"]["method"] for f in coordinator.current_contours["features"]}
        assert methods == {"smooth"}

    def test_degenerate_input_falls_back(self, recording_surface, single_report):
        async def scenario():
            coordinator = ContourCoordinator(recording_surface, FAST)
            coordinator.submit(single_report)
            await coordinator.wait_idle()
            return coordinator

        coordinator = run(scenario())
        assert coordinator.stats.fallbacks == 1
        features = coordinator.current_contours["features"]
        assert features
        assert {f["properties"]["method"] for f in features} == {"simple"}
