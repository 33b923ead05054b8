# fleetwatch/routers/zones.py
"""Zone list / create / delete, proxied to the telematics provider."""

from fastapi import APIRouter, Depends, HTTPException, Query
from fleetwatch.config import get_regions, settings
from fleetwatch.schemas.zone import ZoneCreate, ZoneOut
from fleetwatch.services.geometry import geometry_error
from fleetwatch.services.live_feed import get_tracker
from fleetwatch.services.navixy_client import TelematicsError, get_client_factory
from fleetwatch.services.telematics_parser import parse_zone, parse_zones
from fleetwatch.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _client(region: str, regions: dict, client_factory):
    config = regions.get(region.upper())
    if config is None or not config.session_key:
        raise HTTPException(status_code=404, detail=f"Region {region} is not configured")
    return client_factory(config)


@router.get("/zones", response_model=list[ZoneOut], summary="List zones of a region")
async def list_zones(region: str = Query(...), regions: dict = Depends(get_regions),
                     client_factory=Depends(get_client_factory)):
    client = _client(region, regions, client_factory)
    try:
        zones = parse_zones(await client.list_zones())
    except TelematicsError as e:
        raise HTTPException(status_code=502, detail=str(e))

    tracker = get_tracker(region.upper(), stale_after=settings.LIVE_STALE_SECONDS)
    out = []
    for zone in zones:
        meta = zone.to_metadata()
        meta["vehicle_count"] = tracker.vehicle_count(zone.id)
        out.append(meta)
    return sorted(out, key=lambda z: z["vehicle_count"], reverse=True)


@router.post("/zones", summary="Create a zone")
async def create_zone(body: ZoneCreate, region: str = Query(...), regions: dict = Depends(get_regions),
                      client_factory=Depends(get_client_factory)):
    payload = body.model_dump(exclude_none=True)
    candidate = parse_zone({"id": 0, **payload})
    problem = geometry_error(candidate)
    if problem:
        raise HTTPException(status_code=400, detail=f"Invalid zone geometry: {problem}")

    client = _client(region, regions, client_factory)
    try:
        zone_id = await client.create_zone(payload)
    except TelematicsError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"id": zone_id, "status": "created"}


@router.delete("/zones/{zone_id}", summary="Delete a zone")
async def delete_zone(zone_id: int, region: str = Query(...), regions: dict = Depends(get_regions),
                      client_factory=Depends(get_client_factory)):
    client = _client(region, regions, client_factory)
    try:
        await client.delete_zone(zone_id)
    except TelematicsError as e:
        raise HTTPException(status_code=502, detail=str(e))
    get_tracker(region.upper(), stale_after=settings.LIVE_STALE_SECONDS).forget_zone(zone_id)
    return {"id": zone_id, "status": "deleted"}
