# fleetwatch/routers/live.py
"""Dashboard projection: occupants currently tracked by the live feed."""

from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from fleetwatch.config import get_regions, settings
from fleetwatch.schemas.occupancy import LiveOccupantOut
from fleetwatch.services.live_feed import get_tracker
from fleetwatch.services.occupant_tracker import format_duration

router = APIRouter()


@router.get("/live/occupants", response_model=list[LiveOccupantOut], summary="Live zone occupants (in-memory)")
def get_live_occupants(region: str = Query(...), zoneId: int = None,
                       regions: dict = Depends(get_regions)):
    region = region.upper()
    if region not in regions:
        raise HTTPException(status_code=404, detail=f"Unknown region {region}")

    tracker = get_tracker(region, stale_after=settings.LIVE_STALE_SECONDS)
    now = datetime.utcnow()
    zone_ids = [zoneId] if zoneId is not None else tracker.zone_ids()
    result = []
    for zid in zone_ids:
        for occ in tracker.occupants(zid):
            dwell = int(occ.dwell_seconds(now))
            result.append({
                "zone_id": occ.zone_id,
                "vehicle_id": occ.vehicle_id,
                "label": occ.label,
                "status": occ.status,
                "entry_time": occ.entry_time,
                "last_seen": occ.last_seen,
                "dwell_seconds": dwell,
                "dwell": format_duration(dwell),
            })
    return result
