# fleetwatch/services/event_log.py
"""
Append-only ENTRY/EXIT log.

append() does no de-duplication: the transition detector only emits a
crossing against committed membership state, and the per-region lease keeps
a single writer. Like the membership store, append() flushes but does not
commit.
"""

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from fleetwatch.models.geofence_event import GeofenceEvent
from fleetwatch.services.transition_detector import ENTRY
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)


def append(db: Session, events: list, region: Optional[str] = None) -> list:
    rows = [
        GeofenceEvent(
            vehicle_id=e.vehicle_id,
            zone_id=e.zone_id,
            region=region,
            event_type=e.event_type,
            timestamp=e.timestamp,
        )
        for e in events
    ]
    if rows:
        db.add_all(rows)
        db.flush()
    return rows


def query(db: Session, zone_id: int, since: datetime) -> list:
    """Events for one zone with timestamp >= since, newest first."""
    return (
        db.query(GeofenceEvent)
        .filter(GeofenceEvent.zone_id == zone_id, GeofenceEvent.timestamp >= since)
        .order_by(GeofenceEvent.timestamp.desc(), GeofenceEvent.id.desc())
        .all()
    )


def query_recent(db: Session, zone_id: int, hours: float, now: Optional[datetime] = None) -> list:
    now = now or datetime.utcnow()
    return query(db, zone_id, now - timedelta(hours=hours))


def pair_history(db: Session, zone_id: int, vehicle_id: int) -> list:
    """All events for one (zone, vehicle) pair, oldest first."""
    return (
        db.query(GeofenceEvent)
        .filter(GeofenceEvent.zone_id == zone_id, GeofenceEvent.vehicle_id == vehicle_id)
        .order_by(GeofenceEvent.timestamp.asc(), GeofenceEvent.id.asc())
        .all()
    )


def open_entries(db: Session, zone_id: int) -> dict:
    """
    {vehicle_id: entry timestamp} for vehicles whose latest event in this zone
    is an ENTRY, i.e. the start of their current dwell.
    """
    latest = (
        db.query(GeofenceEvent.vehicle_id, func.max(GeofenceEvent.id).label("last_id"))
        .filter(GeofenceEvent.zone_id == zone_id)
        .group_by(GeofenceEvent.vehicle_id)
        .subquery()
    )
    rows = (
        db.query(GeofenceEvent)
        .join(latest, GeofenceEvent.id == latest.c.last_id)
        .filter(GeofenceEvent.event_type == ENTRY)
        .all()
    )
    return {row.vehicle_id: row.timestamp for row in rows}
