"""Unit tests for timestamp harmonization."""

from zoneinfo import ZoneInfo

import pytest

from temporal_cache.framework.config import HarmonizationConfig
from temporal_cache.harmonization.analysis import HarmonizationAnalysis
from temporal_cache.harmonization.engine import HarmonizationEngine, format_slot, parse_slot
from temporal_cache.harmonization.service import HarmonizationService
from temporal_cache.registry import MonitorRegistry
from tests.fixtures.stores import InMemoryContentStore, RecordingInvalidator, at, make_content, make_page


def make_engine(slots=("00:00", "06:00", "12:00", "18:00"), tolerance=3600, enabled=True, tz=None):
    config = HarmonizationConfig(enabled=enabled, slots=list(slots), tolerance=tolerance, auto_round=False)
    if tz is None:
        return HarmonizationEngine(config)
    return HarmonizationEngine(config, tz)


@pytest.fixture
def engine():
    return make_engine()


class TestSlotParsing:
    """Test slot parsing and formatting."""

    @pytest.mark.parametrize("raw, expected", [
        ("00:00", 0),
        ("06:00", 21600),
        ("7:05", 25500),
        (" 09:30 ", 34200),
        ("23:59", 86340),
        ("24:00", None),
        ("12:60", None),
        ("12", None),
        ("abc", None),
        ("123:00", None),
    ])
    def test_parse_slot(self, raw, expected):
        assert parse_slot(raw) == expected

    def test_format_slot(self):
        assert format_slot(0) == "00:00"
        assert format_slot(25500) == "07:05"

    def test_malformed_slots_are_dropped_and_sorted(self):
        engine = make_engine(slots=["24:00", "09:30", "abc", "7:05", "12:60"])

        assert engine.slots == [25500, 34200]
        assert engine.formatted_slots() == ["07:05", "09:30"]


class TestHarmonizationEngine:
    """Test HarmonizationEngine class."""

    def test_snaps_to_slot_within_tolerance(self, engine):
        assert engine.harmonize(at(0, 30)) == at(0)

    def test_outside_tolerance_is_unchanged(self, engine):
        assert engine.harmonize(at(3)) == at(3)

    def test_preserves_date(self, engine):
        assert engine.harmonize(at(17, 20, day=3)) == at(18, day=3)

    def test_records_converge_on_one_instant(self, engine):
        timestamps = [at(11, 13), at(11, 27), at(11, 42)]

        assert {engine.harmonize(ts) for ts in timestamps} == {at(12)}
        assert engine.calculate_impact(timestamps) == {
            "original": 3,
            "harmonized": 1,
            "reduction": 66.7,
        }

    def test_tie_keeps_earlier_slot(self):
        # 03:00 is equidistant from 00:00 and 06:00; the earlier slot wins.
        engine = make_engine(tolerance=3 * 3600)
        assert engine.harmonize(at(3)) == at(0)

    @pytest.mark.parametrize("timestamp", [
        at(0, 30), at(5, 1), at(6, 59, day=2), at(11, 13), at(17, 0), at(18, 59),
    ])
    def test_idempotent(self, engine, timestamp):
        once = engine.harmonize(timestamp)
        assert engine.harmonize(once) == once

    @pytest.mark.parametrize("timestamp", [at(0, 30), at(5, 10), at(12, 45), at(18, 15)])
    def test_result_lands_on_slot(self, engine, timestamp):
        result = engine.harmonize(timestamp)
        assert result != timestamp
        assert engine.is_on_slot_boundary(result)

    def test_disabled_is_identity(self):
        engine = make_engine(enabled=False)
        assert engine.harmonize(at(0, 30)) == at(0, 30)

    def test_no_valid_slots_is_identity(self):
        engine = make_engine(slots=["bad", "25:00"])

        assert engine.harmonize(at(0, 30)) == at(0, 30)
        assert engine.next_slot(at(0, 30)) is None
        assert engine.previous_slot(at(0, 30)) is None
        assert engine.slots_in_range(at(0), at(23)) == []
        assert not engine.is_on_slot_boundary(at(0))

    def test_next_slot(self, engine):
        assert engine.next_slot(at(7)) == at(12)
        assert engine.next_slot(at(6)) == at(12)
        assert engine.next_slot(at(19)) == at(0, day=1)

    def test_previous_slot(self, engine):
        assert engine.previous_slot(at(7)) == at(6)
        assert engine.previous_slot(at(0)) == at(18, day=-1)

    def test_slots_in_range(self, engine):
        assert engine.slots_in_range(at(5), at(13, day=1)) == [
            at(6), at(12), at(18), at(0, day=1), at(6, day=1), at(12, day=1),
        ]

    def test_slots_in_range_is_inclusive(self, engine):
        assert engine.slots_in_range(at(6), at(12)) == [at(6), at(12)]

    def test_is_on_slot_boundary(self, engine):
        assert engine.is_on_slot_boundary(at(6))
        assert not engine.is_on_slot_boundary(at(6) + 1)

    def test_impact_of_empty_input(self, engine):
        assert engine.calculate_impact([]) == {"original": 0, "harmonized": 0, "reduction": 0.0}

    def test_time_of_day_uses_timezone(self):
        engine = make_engine(tz=ZoneInfo("Europe/Berlin"))
        # 11:30 UTC is 12:30 in Berlin in January; 12:00 Berlin is 11:00 UTC
        assert engine.harmonize(at(11, 30)) == at(11)


# 2024-03-31 and 2024-10-27 are the Berlin daylight saving switches.
SPRING_FORWARD = 90
FALL_BACK = 300


class TestHarmonizationAcrossDaylightSaving:
    """Test slot arithmetic in a zone with daylight saving time."""

    def berlin_engine(self, slots, tolerance):
        return make_engine(slots=slots, tolerance=tolerance, tz=ZoneInfo("Europe/Berlin"))

    def test_shift_across_switch_lands_on_slot(self):
        engine = self.berlin_engine(["03:00"], 7200)
        # 01:40 CET snaps to 03:00 CEST, which is 01:00 UTC
        timestamp = at(0, 40, day=SPRING_FORWARD)

        result = engine.harmonize(timestamp)

        assert result == at(1, day=SPRING_FORWARD)
        assert engine.is_on_slot_boundary(result)
        assert engine.harmonize(result) == result

    def test_skipped_slot_leaves_timestamp_unchanged(self):
        engine = self.berlin_engine(["02:30"], 3600)
        # 01:10 UTC is 03:10 CEST; 02:30 does not exist that day
        timestamp = at(1, 10, day=SPRING_FORWARD)

        assert engine.harmonize(timestamp) == timestamp
        assert engine.harmonize(engine.harmonize(timestamp)) == engine.harmonize(timestamp)

    def test_repeated_slot_leaves_timestamp_unchanged(self):
        engine = self.berlin_engine(["02:30"], 3600)
        # 02:10 UTC is 03:10 CET; 02:30 occurs twice that day
        timestamp = at(2, 10, day=FALL_BACK)

        assert engine.harmonize(timestamp) == timestamp

    def test_next_slot_after_switch(self):
        engine = self.berlin_engine(["12:00"], 3600)
        # 12:00 CEST is 10:00 UTC
        assert engine.next_slot(at(0, day=SPRING_FORWARD)) == at(10, day=SPRING_FORWARD)


class TestHarmonizationService:
    """Test applying harmonization through the store."""

    @pytest.fixture
    def records(self):
        return [
            make_page(1, start_time=at(11, 13), end_time=at(18, 20)),
            make_content(10, parent_id=1, start_time=at(12)),
            make_content(11, parent_id=1, start_time=at(3)),
        ]

    @pytest.fixture
    def store(self, records):
        return InMemoryContentStore(records, MonitorRegistry())

    @pytest.mark.asyncio
    async def test_dry_run_reports_without_writing(self, engine, store, records):
        service = HarmonizationService(engine, store)

        result = await service.harmonize_content(records[0], dry_run=True)

        assert result["success"] is True
        assert result["changes"] == {
            "start_time": {"old": at(11, 13), "new": at(12)},
            "end_time": {"old": at(18, 20), "new": at(18)},
        }
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_writes_changes(self, engine, store, records):
        service = HarmonizationService(engine, store)

        result = await service.harmonize_content(records[0])

        assert result["success"] is True
        assert store.updates == [(records[0], {"start_time": at(12), "end_time": at(18)})]

    @pytest.mark.asyncio
    async def test_aligned_record_has_no_changes(self, engine, store, records):
        service = HarmonizationService(engine, store)

        result = await service.harmonize_content(records[1])

        assert result == {"success": True, "content_id": 10, "changes": {}}
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_disabled_returns_success_without_changes(self, store, records):
        service = HarmonizationService(make_engine(enabled=False), store)

        result = await service.harmonize_content(records[0])

        assert result["success"] is True
        assert result["changes"] == {}

    @pytest.mark.asyncio
    async def test_store_failure_is_reported(self, engine, store, records):
        store.fail_updates_for = {1}
        service = HarmonizationService(engine, store)

        result = await service.harmonize_content(records[0])

        assert result["success"] is False
        assert "update failed" in result["error"]

    @pytest.mark.asyncio
    async def test_harmonize_many(self, engine, store, records):
        invalidator = RecordingInvalidator()
        service = HarmonizationService(engine, store, invalidator)

        summary = await service.harmonize_many(records)

        assert summary["total"] == 3
        assert summary["updated"] == 1
        assert summary["failed"] == 0
        assert "flush_failed" not in summary
        assert invalidator.flushed == [{"pages"}]

    @pytest.mark.asyncio
    async def test_harmonize_many_reports_flush_failure(self, engine, store, records):
        service = HarmonizationService(engine, store, RecordingInvalidator(fail_on={"pages"}))

        summary = await service.harmonize_many(records)

        assert summary["updated"] == 1
        assert summary["flush_failed"] is True
        assert "flush failed" in summary["flush_error"]
        assert len(summary["results"]) == 3
        assert len(store.updates) == 1

    @pytest.mark.asyncio
    async def test_harmonize_many_continues_after_failure(self, engine, records):
        records.append(make_content(12, parent_id=1, start_time=at(5, 40)))
        store = InMemoryContentStore(records, MonitorRegistry())
        store.fail_updates_for = {1}
        service = HarmonizationService(engine, store)

        summary = await service.harmonize_many(records)

        assert summary["failed"] == 1
        assert summary["updated"] == 1
        assert [content.id for content, _ in store.updates] == [12]

    def test_round_on_save(self, store):
        config = HarmonizationConfig(enabled=True, slots=["06:00", "12:00"], tolerance=3600, auto_round=True)
        service = HarmonizationService(HarmonizationEngine(config), store)

        rounded = service.round_on_save({"title": "News", "start_time": at(11, 20), "end_time": 0})

        assert rounded == {"title": "News", "start_time": at(12), "end_time": 0}

    @pytest.mark.parametrize("enabled, auto_round", [(True, False), (False, True)])
    def test_round_on_save_requires_both_flags(self, store, enabled, auto_round):
        config = HarmonizationConfig(enabled=enabled, slots=["12:00"], tolerance=3600, auto_round=auto_round)
        service = HarmonizationService(HarmonizationEngine(config), store)

        assert service.round_on_save({"start_time": at(11, 20)}) == {"start_time": at(11, 20)}

    @pytest.mark.asyncio
    async def test_harmonize_many_dry_run_does_not_flush(self, engine, store, records):
        invalidator = RecordingInvalidator()
        service = HarmonizationService(engine, store, invalidator)

        summary = await service.harmonize_many(records, dry_run=True)

        assert summary["updated"] == 0
        assert summary["would_update"] == 1
        assert invalidator.flushed == []


class TestHarmonizationAnalysis:
    """Test HarmonizationAnalysis class."""

    def test_is_harmonizable(self, engine):
        analysis = HarmonizationAnalysis(engine)

        assert analysis.is_harmonizable(make_page(1, start_time=at(11, 13)))
        assert not analysis.is_harmonizable(make_page(2, start_time=at(12)))
        assert not analysis.is_harmonizable(make_page(3, start_time=at(3)))

    def test_disabled_is_never_harmonizable(self):
        analysis = HarmonizationAnalysis(make_engine(enabled=False))
        assert not analysis.is_harmonizable(make_page(1, start_time=at(11, 13)))

    def test_suggestion(self, engine):
        suggestion = HarmonizationAnalysis(engine).suggestion(make_page(1, end_time=at(18, 10)))

        assert suggestion["has_changes"] is True
        assert suggestion["suggestions"] == {
            "end_time": {"current": at(18, 10), "suggested": at(18), "diff": -600},
        }

    def test_analyze_candidates(self, engine):
        contents = [
            make_page(1, start_time=at(11, 30), end_time=at(18, 10)),
            make_page(2, start_time=at(12)),
            make_content(10, parent_id=1, start_time=at(6, 20)),
        ]

        analysis = HarmonizationAnalysis(engine).analyze_candidates(contents)

        assert analysis["harmonizable_count"] == 2
        assert analysis["total_count"] == 3
        assert analysis["start_time_changes"] == 2
        assert analysis["end_time_changes"] == 1
        assert analysis["average_shift_seconds"] == pytest.approx((1800 + 600 + 1200) / 3)
        assert set(analysis["harmonizable_items"]) == {1, 10}

    def test_filter_harmonizable(self, engine):
        contents = [make_page(1, start_time=at(11, 30)), make_page(2, start_time=at(12))]
        assert [c.id for c in HarmonizationAnalysis(engine).filter_harmonizable(contents)] == [1]

    def test_impact_priority(self, engine):
        analysis = HarmonizationAnalysis(engine)

        low = analysis.impact(make_page(1, start_time=at(11, 50)), now=at(8))
        medium = analysis.impact(make_page(2, start_time=at(11, 30)), now=at(8))
        flips = analysis.impact(make_page(3, start_time=at(11, 50)), now=at(11, 55))

        assert low == {"max_shift_seconds": 600, "affects_visibility": False, "priority": "low"}
        assert medium["priority"] == "medium"
        assert flips["affects_visibility"] is True
        assert flips["priority"] == "high"
