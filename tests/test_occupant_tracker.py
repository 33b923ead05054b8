"""Live occupant tracker state machine + duration formatting."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta
import pytest
from conftest import FakeNavixyClient, raw_circle, raw_tracker
from fleetwatch.services import event_log, live_feed
from fleetwatch.services.geometry import METERS_PER_DEGREE
from fleetwatch.services.occupant_tracker import OccupantTracker, format_duration
from fleetwatch.services.transition_detector import ENTRY, TransitionEvent

T0 = datetime(2026, 10, 19, 8, 0, 0)


def later(seconds):
    return T0 + timedelta(seconds=seconds)


class TestOccupantTracker:
    def test_absent_to_present_records_observation_time(self):
        tracker = OccupantTracker()
        change = tracker.observe(1, {10: "moving"}, T0)
        occ = tracker.occupant(1, 10)
        assert change == {"entered": [10], "left": []}
        assert occ.entry_time == T0 and occ.last_seen == T0 and occ.status == "moving"

    def test_present_to_present_keeps_entry_updates_last_seen(self):
        tracker = OccupantTracker()
        tracker.observe(1, {10: "moving"}, T0)
        change = tracker.observe(1, {10: "parked"}, later(5))
        occ = tracker.occupant(1, 10)
        assert change == {"entered": [], "left": []}
        assert occ.entry_time == T0
        assert occ.last_seen == later(5)
        assert occ.status == "parked"
        assert occ.dwell_seconds(later(65)) == 65

    def test_present_to_absent_discards_record(self):
        tracker = OccupantTracker()
        tracker.observe(1, {10: "parked"}, T0)
        change = tracker.observe(1, {}, later(5))
        assert change == {"entered": [], "left": [10]}
        assert tracker.occupant(1, 10) is None
        assert tracker.vehicle_count(1) == 0

    def test_reentry_starts_new_dwell(self):
        tracker = OccupantTracker()
        tracker.observe(1, {10: "parked"}, T0)
        tracker.observe(1, {}, later(5))
        tracker.observe(1, {10: "parked"}, later(10))
        assert tracker.occupant(1, 10).entry_time == later(10)

    def test_entry_hint_used_for_new_occupant(self):
        tracker = OccupantTracker()
        hint = T0 - timedelta(hours=2)
        tracker.observe(1, {10: "parked"}, T0, entry_hints={10: hint})
        assert tracker.occupant(1, 10).entry_time == hint

    def test_zones_are_independent(self):
        tracker = OccupantTracker()
        tracker.observe(1, {10: "parked"}, T0)
        tracker.observe(2, {11: "moving"}, T0)
        tracker.observe(1, {}, later(5))
        assert tracker.vehicle_count(1) == 0
        assert tracker.vehicle_count(2) == 1

    def test_gap_makes_next_snapshot_authoritative(self):
        tracker = OccupantTracker(stale_after=60)
        tracker.observe(1, {10: "parked", 11: "parked"}, T0)
        change = tracker.observe(1, {10: "parked"}, later(600))
        assert change["left"] == [11]
        assert tracker.occupant(1, 10).entry_time == later(600)

    def test_short_gap_keeps_continuity(self):
        tracker = OccupantTracker(stale_after=60)
        tracker.observe(1, {10: "parked"}, T0)
        tracker.observe(1, {10: "parked"}, later(30))
        assert tracker.occupant(1, 10).entry_time == T0

    def test_occupants_sorted_by_longest_dwell(self):
        tracker = OccupantTracker()
        tracker.observe(1, {10: "parked"}, T0)
        tracker.observe(1, {10: "parked", 11: "moving"}, later(5))
        assert [o.vehicle_id for o in tracker.occupants(1)] == [10, 11]

    def test_forget_zone_and_reset(self):
        tracker = OccupantTracker()
        tracker.observe(1, {10: "parked"}, T0)
        tracker.observe(2, {10: "parked"}, T0)
        tracker.forget_zone(1)
        assert tracker.zone_ids() == [2]
        tracker.reset()
        assert tracker.zone_ids() == []


class TestFormatDuration:
    def test_units(self):
        assert format_duration(12) == "12s"
        assert format_duration(250) == "4m 10s"
        assert format_duration(3900) == "1h 5m"
        assert format_duration(2 * 86400 + 3 * 3600 + 59) == "2d 3h"

    def test_negative_clamped(self):
        assert format_duration(-5) == "0s"


# ── live feed snapshot ───────────────────────────────────────────────────────

def north_of_origin(meters, tracker_id, **extra):
    return raw_tracker(tracker_id, meters / METERS_PER_DEGREE, 0.0, **extra)


class TestPollOnce:
    @pytest.mark.asyncio
    async def test_snapshot_feeds_tracker(self):
        tracker = OccupantTracker()
        client = FakeNavixyClient(zones=[raw_circle(1, 0.0, 0.0, 500)],
                                  trackers=[north_of_origin(100, 10, speed=12), north_of_origin(900, 11)])

        summary = await live_feed.poll_once(client, tracker, T0)

        assert summary == {"zones": 1, "entered": 1, "left": 0}
        occ = tracker.occupant(1, 10)
        assert occ.status == "moving" and occ.label == "Truck 10"

    @pytest.mark.asyncio
    async def test_open_entry_seeds_entry_time(self, session_factory):
        entered_at = T0 - timedelta(hours=3)
        db = session_factory()
        event_log.append(db, [TransitionEvent(1, 10, ENTRY, entered_at)], region="TZ")
        db.commit()
        db.close()

        tracker = OccupantTracker()
        client = FakeNavixyClient(zones=[raw_circle(1, 0.0, 0.0, 500)], trackers=[north_of_origin(100, 10)])
        await live_feed.poll_once(client, tracker, T0, session_factory=session_factory)

        assert tracker.occupant(1, 10).entry_time == entered_at

    @pytest.mark.asyncio
    async def test_deleted_zone_is_forgotten(self):
        tracker = OccupantTracker()
        tracker.observe(99, {10: "parked"}, T0)
        client = FakeNavixyClient(zones=[raw_circle(1, 0.0, 0.0, 500)], trackers=[])

        await live_feed.poll_once(client, tracker, later(5))

        assert 99 not in tracker.zone_ids()

    def test_tracker_created_early_picks_up_stale_window(self):
        live_feed._trackers.pop("QQ", None)
        try:
            assert live_feed.get_tracker("QQ").stale_after is None
            assert live_feed.get_tracker("QQ", stale_after=60).stale_after == 60
            assert live_feed.get_tracker("QQ").stale_after == 60
        finally:
            live_feed._trackers.pop("QQ", None)
