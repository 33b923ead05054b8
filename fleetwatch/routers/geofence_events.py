# fleetwatch/routers/geofence_events.py
"""Transition log viewer: ENTRY/EXIT events for one zone."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from fleetwatch.database import get_db
from fleetwatch.schemas.geofence_event import GeofenceEventList
from fleetwatch.services import event_log

router = APIRouter()


@router.get("/geofence/events", response_model=GeofenceEventList, summary="Zone transition events")
def get_zone_events(zoneId: int = Query(...), hours: float = Query(24, gt=0),
                    db: Session = Depends(get_db)):
    """Events with timestamp >= now - hours, newest first."""
    return {"events": event_log.query_recent(db, zoneId, hours)}
