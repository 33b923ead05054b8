"""Membership store + event log against an in-memory SQLite session."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta
from fleetwatch.models.geofence_event import GeofenceEvent
from fleetwatch.models.geofence_vehicle_state import GeofenceVehicleState
from fleetwatch.services import event_log, membership_store
from fleetwatch.services.membership_store import MembershipRecord
from fleetwatch.services.transition_detector import ENTRY, EXIT, TransitionEvent

T0 = datetime(2026, 10, 19, 8, 0, 0)


class TestMembershipStore:
    def test_load_all_empty(self, db):
        assert membership_store.load_all(db) == {}

    def test_upsert_inserts_then_updates(self, db):
        membership_store.upsert_batch(db, [MembershipRecord(1, 10, False, T0)])
        db.commit()
        membership_store.upsert_batch(db, [MembershipRecord(1, 10, True, T0 + timedelta(minutes=5))])
        db.commit()

        assert membership_store.load_all(db) == {(1, 10): True}
        assert db.query(GeofenceVehicleState).count() == 1

    def test_older_write_loses(self, db):
        membership_store.upsert_batch(db, [MembershipRecord(1, 10, True, T0)])
        db.commit()
        written = membership_store.upsert_batch(db, [MembershipRecord(1, 10, False, T0 - timedelta(minutes=1))])
        db.commit()
        assert written == 0
        assert membership_store.load_all(db) == {(1, 10): True}

    def test_duplicate_pairs_in_batch_collapse(self, db):
        membership_store.upsert_batch(db, [
            MembershipRecord(1, 10, True, T0),
            MembershipRecord(1, 10, False, T0 + timedelta(seconds=1)),
            MembershipRecord(2, 10, True, T0),
        ])
        db.commit()
        assert membership_store.load_all(db) == {(1, 10): False, (2, 10): True}

    def test_upsert_does_not_commit(self, db):
        membership_store.upsert_batch(db, [MembershipRecord(1, 10, True, T0)])
        db.rollback()
        assert membership_store.load_all(db) == {}

    def test_inside_vehicles(self, db):
        membership_store.upsert_batch(db, [
            MembershipRecord(1, 10, True, T0),
            MembershipRecord(1, 11, False, T0),
            MembershipRecord(2, 12, True, T0),
        ])
        db.commit()
        assert [s.vehicle_id for s in membership_store.inside_vehicles(db, 1)] == [10]


class TestEventLog:
    def _seed(self, db):
        event_log.append(db, [
            TransitionEvent(1, 10, ENTRY, T0),
            TransitionEvent(1, 10, EXIT, T0 + timedelta(hours=1)),
            TransitionEvent(1, 11, ENTRY, T0 + timedelta(hours=2)),
            TransitionEvent(2, 10, ENTRY, T0 + timedelta(hours=2)),
        ], region="TZ")
        db.commit()

    def test_append_stores_region(self, db):
        self._seed(db)
        assert db.query(GeofenceEvent).count() == 4
        assert {e.region for e in db.query(GeofenceEvent).all()} == {"TZ"}

    def test_append_empty_is_noop(self, db):
        assert event_log.append(db, []) == []

    def test_query_newest_first_and_window(self, db):
        self._seed(db)
        events = event_log.query(db, 1, T0 + timedelta(hours=1))
        assert [(e.vehicle_id, e.event_type) for e in events] == [(11, ENTRY), (10, EXIT)]

    def test_query_window_is_inclusive(self, db):
        self._seed(db)
        assert len(event_log.query(db, 1, T0)) == 3

    def test_query_recent_hours(self, db):
        self._seed(db)
        events = event_log.query_recent(db, 1, hours=1.5, now=T0 + timedelta(hours=2))
        assert [e.event_type for e in events] == [ENTRY, EXIT]

    def test_open_entries(self, db):
        self._seed(db)
        assert event_log.open_entries(db, 1) == {11: T0 + timedelta(hours=2)}
        assert event_log.open_entries(db, 2) == {10: T0 + timedelta(hours=2)}
        assert event_log.open_entries(db, 3) == {}

    def test_pair_history_oldest_first(self, db):
        self._seed(db)
        assert [e.event_type for e in event_log.pair_history(db, 1, 10)] == [ENTRY, EXIT]


class TestLatestUpdate:
    def test_newest_row_per_zone_set(self, db):
        membership_store.upsert_batch(db, [
            MembershipRecord(1, 10, False, T0),
            MembershipRecord(1, 11, True, T0 + timedelta(minutes=5)),
            MembershipRecord(2, 10, True, T0 + timedelta(hours=1)),
        ])
        db.commit()

        assert membership_store.latest_update(db, [1]) == T0 + timedelta(minutes=5)
        assert membership_store.latest_update(db) == T0 + timedelta(hours=1)
        assert membership_store.latest_update(db, [3]) is None
