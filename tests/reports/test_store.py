"""Tests for the in-memory report store."""

from datetime import timedelta

import pytest

from conftest import BASE_TIME, make_report
from hailmap.exceptions import StormNotFound
from hailmap.reports.models import StormEvent
from hailmap.reports.store import MAX_STORMS, ReportStore, detect_source


def make_storm(storm_id: str, hours: int = 0, active: bool = True, **kwargs) -> StormEvent:
    return StormEvent(
        id=storm_id,
        name=f"Storm {storm_id}",
        start_time=BASE_TIME + timedelta(hours=hours),
        reports=(make_report(f"{storm_id}-r", 35.0, -97.5, 1.5),),
        is_active=active,
        **kwargs,
    )


class TestReportStore:
    """Tests for ReportStore storm management."""

    def test_save_and_get(self, sample_storm):
        store = ReportStore()
        store.save_storm(sample_storm)
        assert len(store) == 1
        assert store.get_storm("storm_1") is sample_storm
        assert store.get_active_storms() == [sample_storm]

    def test_get_unknown_storm(self):
        with pytest.raises(StormNotFound):
            ReportStore().get_storm("nope")

    def test_storm_not_found_is_key_error(self):
        with pytest.raises(KeyError):
            ReportStore().get_storm("nope")

    def test_save_replaces_same_id(self):
        store = ReportStore([make_storm("s1")])
        replacement = make_storm("s1", hours=1)
        store.save_storm(replacement)
        assert len(store) == 1
        assert store.get_storm("s1") is replacement

    def test_evicts_oldest_inactive_storm(self):
        """Past the limit, the oldest inactive storm goes first."""
        store = ReportStore([
            make_storm("old", hours=0, active=False),
            make_storm("older_active", hours=-5, active=True),
            make_storm("newer", hours=2, active=False),
        ])
        store.save_storm(make_storm("latest", hours=3))
        ids = [s.id for s in store.get_active_storms()]
        assert len(ids) == MAX_STORMS
        assert "old" not in ids
        assert "older_active" in ids

    def test_no_eviction_when_all_active(self):
        store = ReportStore([make_storm(f"s{i}", hours=i) for i in range(MAX_STORMS + 1)])
        assert len(store) == MAX_STORMS + 1

    def test_toggle_storm(self, sample_storm):
        store = ReportStore([sample_storm])
        store.toggle_storm("storm_1", enabled=False)
        assert store.get_storm("storm_1").enabled is False
        assert store.get_enabled_reports() == []
        store.toggle_storm("storm_1", enabled=True)
        assert len(store.get_enabled_reports()) == 50

    def test_toggle_unknown_storm_is_ignored(self, caplog):
        store = ReportStore()
        store.toggle_storm("ghost", enabled=False)
        assert "unknown storm ghost" in caplog.text

    def test_delete_storm(self, sample_storm):
        store = ReportStore([sample_storm])
        store.delete_storm("storm_1")
        assert len(store) == 0

    def test_delete_unknown_storm_is_ignored(self):
        store = ReportStore([make_storm("s1")])
        store.delete_storm("ghost")
        assert len(store) == 1

    def test_enabled_reports_in_storm_order(self):
        store = ReportStore([make_storm("s1"), make_storm("s2", enabled=False), make_storm("s3")])
        assert [r.id for r in store.get_enabled_reports()] == ["s1-r", "s3-r"]

    def test_verified_reports(self, sample_storm):
        store = ReportStore([sample_storm])
        verified = store.get_verified_reports()
        assert len(verified) == 3
        assert all(r.ground_truth for r in verified)

    def test_clear(self, sample_storm):
        store = ReportStore([sample_storm])
        store.clear()
        assert store.get_active_storms() == []


class TestGrouping:
    """Tests for grouping raw reports into storms."""

    def test_group_into_storm_event(self, two_cluster_reports):
        storm = ReportStore.group_into_storm_event(two_cluster_reports, name="May 20")
        assert storm.name == "May 20"
        assert storm.enabled is True
        assert storm.start_time == BASE_TIME
        assert len(storm.reports) == 50
        assert storm.id.startswith("storm_")

    def test_default_name_uses_start_time(self):
        storm = ReportStore.group_into_storm_event([make_report("r", 35.0, -97.5, 1.0)])
        assert storm.name == "Storm 2025-05-20 21:00"

    def test_group_empty(self):
        with pytest.raises(ValueError):
            ReportStore.group_into_storm_event([])

    @pytest.mark.parametrize("label,expected", [
        ("NCEP MRMS MESH", "MRMS"),
        ("IEM Archive", "IEM"),
        ("demo", "Mock"),
        (None, "Mock"),
    ])
    def test_detect_source(self, label, expected):
        assert detect_source([make_report("r", 35.0, -97.5, 1.0, source=label)]) == expected

    def test_detect_source_empty(self):
        assert detect_source([]) == "Mock"
