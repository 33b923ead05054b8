# fleetwatch/routers/occupancy.py
"""
Authoritative occupancy: who is inside a zone according to the membership
store, with dwell measured from the event log's open ENTRY.
"""

from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from fleetwatch.database import get_db
from fleetwatch.schemas.occupancy import ZoneOccupancyOut
from fleetwatch.services import event_log, membership_store
from fleetwatch.services.occupant_tracker import format_duration

router = APIRouter()


@router.get("/geofence/occupancy", response_model=ZoneOccupancyOut, summary="Vehicles inside a zone + dwell")
def get_zone_occupancy(zoneId: int = Query(...), db: Session = Depends(get_db)):
    now = datetime.utcnow()
    entries = event_log.open_entries(db, zoneId)
    occupants = []
    for state in membership_store.inside_vehicles(db, zoneId):
        entry = entries.get(state.vehicle_id)
        entry_time = entry or state.last_updated
        dwell = max(0, int((now - entry_time).total_seconds()))
        occupants.append({
            "vehicle_id": state.vehicle_id,
            "entry_time": entry_time,
            "entry_observed": entry is not None,
            "dwell_seconds": dwell,
            "dwell": format_duration(dwell),
        })
    occupants.sort(key=lambda o: o["dwell_seconds"], reverse=True)
    return {"zone_id": zoneId, "vehicle_count": len(occupants), "occupants": occupants}
