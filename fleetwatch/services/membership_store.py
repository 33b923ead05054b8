# fleetwatch/services/membership_store.py
"""
Membership store: last known inside/outside flag per (zone, vehicle).

load_all() is read once per heartbeat pass; nothing is cached between passes,
so every runner sees what the previous pass committed. upsert_batch() is keyed
by (zone_id, vehicle_id) and does not commit; the heartbeat commits events and
state together.
"""

from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session
from fleetwatch.models.geofence_vehicle_state import GeofenceVehicleState
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)


class MembershipWriteConflict(Exception):
    """A state write for a detected transition was rejected as older than the stored row."""


@dataclass(frozen=True)
class MembershipRecord:
    zone_id: int
    vehicle_id: int
    is_inside: bool
    last_updated: datetime


def load_all(db: Session) -> dict:
    """Full snapshot as {(zone_id, vehicle_id): is_inside}."""
    rows = db.query(
        GeofenceVehicleState.zone_id,
        GeofenceVehicleState.vehicle_id,
        GeofenceVehicleState.is_inside,
    ).all()
    return {(zone_id, vehicle_id): bool(is_inside) for zone_id, vehicle_id, is_inside in rows}


def latest_update(db: Session, zone_ids=None):
    """Newest last_updated over the given zones (all zones when None), None when empty."""
    q = db.query(func.max(GeofenceVehicleState.last_updated))
    if zone_ids is not None:
        q = q.filter(GeofenceVehicleState.zone_id.in_(list(zone_ids)))
    return q.scalar()


def upsert_batch(db: Session, records: list) -> int:
    """
    Insert or update one row per (zone_id, vehicle_id).
    Last write wins on last_updated: an incoming record older than the stored
    row is ignored. Returns the number of rows written.
    """
    if not records:
        return 0

    # Collapse duplicates inside the batch, newest wins
    latest = {}
    for rec in records:
        key = (rec.zone_id, rec.vehicle_id)
        if key not in latest or rec.last_updated >= latest[key].last_updated:
            latest[key] = rec

    zone_ids = {zone_id for zone_id, _ in latest}
    existing = {
        (row.zone_id, row.vehicle_id): row
        for row in db.query(GeofenceVehicleState).filter(GeofenceVehicleState.zone_id.in_(zone_ids)).all()
    }

    written = 0
    for key, rec in latest.items():
        row = existing.get(key)
        if row is None:
            db.add(GeofenceVehicleState(zone_id=rec.zone_id, vehicle_id=rec.vehicle_id,
                                        is_inside=rec.is_inside, last_updated=rec.last_updated))
        elif row.last_updated is None or rec.last_updated >= row.last_updated:
            row.is_inside = rec.is_inside
            row.last_updated = rec.last_updated
        else:
            logger.debug(f"Stale membership write ignored for zone={key[0]} vehicle={key[1]}")
            continue
        written += 1

    db.flush()
    return written


def inside_vehicles(db: Session, zone_id: int) -> list:
    """Stored rows currently marked inside the zone."""
    return (
        db.query(GeofenceVehicleState)
        .filter(GeofenceVehicleState.zone_id == zone_id, GeofenceVehicleState.is_inside.is_(True))
        .order_by(GeofenceVehicleState.last_updated.asc())
        .all()
    )
