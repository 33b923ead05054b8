"""Provider payload parsing."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime
from fleetwatch.services.telematics_parser import (
    LatLng, parse_provider_datetime, parse_tracker, parse_trackers, parse_zone, vehicle_id_of,
)


class TestVehicleIdentity:
    def test_tracker_id_wins_over_source_id(self):
        assert vehicle_id_of({"id": 101, "source": {"id": 555}}) == 101

    def test_source_id_fallback(self):
        assert vehicle_id_of({"source": {"id": 555}}) == 555

    def test_no_identity(self):
        assert vehicle_id_of({"label": "ghost"}) is None
        assert vehicle_id_of({"id": "abc"}) is None


class TestParseTracker:
    def test_gps_location(self):
        pos = parse_tracker({
            "id": 7, "label": "Truck 7",
            "gps": {"location": {"lat": -6.8, "lng": 39.28}, "speed": 40, "heading": 180},
            "movement_status": "moving", "connection_status": "active", "ignition": True,
        })
        assert pos.vehicle_id == 7
        assert pos.point == LatLng(-6.8, 39.28)
        assert pos.speed == 40 and pos.heading == 180
        assert pos.status == "moving"
        assert pos.ignition is True

    def test_last_position_fallback(self):
        pos = parse_tracker({"id": 7, "last_position": {"lat": "-6.8", "lng": "39.28", "speed": 0}})
        assert pos.point == LatLng(-6.8, 39.28)
        assert pos.status == "parked"

    def test_no_fix_is_skipped(self):
        assert parse_tracker({"id": 7, "label": "Truck 7"}) is None
        assert parse_trackers([{"id": 7}, {"id": 8, "gps": {"location": {"lat": 1, "lng": 2}}}])[0].vehicle_id == 8

    def test_non_bool_ignition_dropped(self):
        pos = parse_tracker({"id": 7, "gps": {"location": {"lat": 1, "lng": 2}}, "ignition": "yes"})
        assert pos.ignition is None


class TestParseZone:
    def test_sausage_is_corridor(self):
        zone = parse_zone({"id": 3, "label": "Road", "type": "sausage", "radius": 50,
                           "points": [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 1}]})
        assert zone.kind == "corridor"
        assert zone.radius == 50
        assert zone.points == [LatLng(0.0, 0.0), LatLng(0.0, 1.0)]

    def test_circle(self):
        zone = parse_zone({"id": "4", "label": "Depot", "type": "circle",
                           "center": {"lat": 1.5, "lng": 2.5}, "radius": 300, "color": "#00ff00"})
        assert zone.id == 4
        assert zone.center == LatLng(1.5, 2.5)
        assert zone.to_metadata()["name"] == "Depot"

    def test_malformed_zone_still_parsed(self):
        zone = parse_zone({"id": 5, "type": "circle"})
        assert zone.center is None and zone.radius is None
        assert zone.label == "Zone 5"

    def test_zone_without_id_dropped(self):
        assert parse_zone({"type": "circle"}) is None


class TestProviderDatetime:
    def test_naive_timestamp_is_utc_plus_3(self):
        assert parse_provider_datetime("2026-10-19 12:00:00") == datetime(2026, 10, 19, 9, 0, 0)

    def test_offset_timestamp(self):
        assert parse_provider_datetime("2026-10-19T12:00:00Z") == datetime(2026, 10, 19, 12, 0, 0)
        assert parse_provider_datetime("2026-10-19T12:00:00+02:00") == datetime(2026, 10, 19, 10, 0, 0)

    def test_garbage(self):
        assert parse_provider_datetime("yesterday") is None
        assert parse_provider_datetime(None) is None
