"""Shared fixtures: in-memory SQLite instead of PostgreSQL, fake provider client."""

import os
import sys

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("HEARTBEAT_REGIONS", "TZ,ZM")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fleetwatch.config import RegionConfig
from fleetwatch.database import Base
import fleetwatch.models  # noqa  (registers tables on Base)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def make_region(name="TZ", session_key="test-hash", timeout=5.0):
    return RegionConfig(name=name, session_key=session_key,
                        api_url="https://navixy.test/v2", timeout_seconds=timeout)


class FakeNavixyClient:
    """Stands in for NavixyClient; trackers/zones are raw provider dicts."""

    def __init__(self, region=None, trackers=None, zones=None, error=None):
        self.region = region
        self.trackers = trackers or []
        self.zones = zones or []
        self.error = error
        self.calls = 0

    async def list_trackers(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.trackers

    async def list_zones(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.zones


def raw_tracker(tracker_id, lat, lng, speed=0, source_id=None, **extra):
    raw = {
        "id": tracker_id,
        "label": f"Truck {tracker_id}",
        "source": {"id": source_id if source_id is not None else 9000 + tracker_id},
        "gps": {"location": {"lat": lat, "lng": lng}, "speed": speed, "heading": 90},
        "last_update": "2026-10-19 09:00:00",
    }
    raw.update(extra)
    return raw


def raw_circle(zone_id, lat, lng, radius, label=None):
    return {"id": zone_id, "label": label or f"Zone {zone_id}", "type": "circle",
            "center": {"lat": lat, "lng": lng}, "radius": radius, "color": "#ff0000"}
