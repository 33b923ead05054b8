# fleetwatch/routers/share.py
"""
Public share links (no API key).
POST   /share/token          issue or fetch the token for a zone / vehicle
DELETE /share/token/{token}  revoke
GET    /share/resolve        cached zone metadata + tracker ids
GET    /share/live           vehicles inside the shared zone right now
Unknown or revoked tokens are always 404.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from fleetwatch.config import get_regions
from fleetwatch.database import get_db
from fleetwatch.schemas.share import ShareLiveOut, ShareResolveOut, ShareTokenOut, ShareTokenRequest
from fleetwatch.services import share_service
from fleetwatch.services.navixy_client import TelematicsError, get_client_factory
from fleetwatch.services.share_service import ShareScopeError, ShareTargetNotFound
from fleetwatch.services.telematics_parser import vehicle_id_of
from fleetwatch.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _resolve_or_404(db: Session, token: str):
    share = share_service.resolve(db, token)
    if not share:
        raise HTTPException(status_code=404, detail="This share link does not exist or has been revoked.")
    return share


def _client_for(share, regions: dict, client_factory):
    region = regions.get(share.region)
    if region is None or not region.session_key:
        logger.error(f"[Share] Region {share.region} has no session key configured")
        raise HTTPException(status_code=503, detail=f"Region {share.region} is not configured")
    return client_factory(region)


@router.post("/share/token", response_model=ShareTokenOut, summary="Issue (or fetch) a share token")
def issue_share_token(body: ShareTokenRequest, db: Session = Depends(get_db),
                      regions: dict = Depends(get_regions)):
    region = body.region.upper()
    if region not in regions:
        raise HTTPException(status_code=400, detail=f"Unknown region {body.region}")
    try:
        token = share_service.issue_or_get(db, region, zone_id=body.zoneId,
                                           vehicle_id=body.vehicleId, metadata=body.metadata)
    except ShareScopeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"token": token}


@router.delete("/share/token/{token}", summary="Revoke a share token")
def revoke_share_token(token: str, db: Session = Depends(get_db)):
    if not share_service.revoke(db, token):
        raise HTTPException(status_code=404, detail="Share token not found")
    return {"token": token, "status": "revoked"}


@router.get("/share/resolve", response_model=ShareResolveOut, summary="Resolve a share token")
async def resolve_share(token: str = Query(...), db: Session = Depends(get_db),
                        regions: dict = Depends(get_regions),
                        client_factory=Depends(get_client_factory)):
    share = _resolve_or_404(db, token)

    tracker_ids = []
    region = regions.get(share.region)
    if region is not None and region.session_key:
        try:
            raw = await client_factory(region).list_trackers()
            tracker_ids = [vid for vid in (vehicle_id_of(t) for t in raw) if vid is not None]
        except TelematicsError as e:
            logger.warning(f"[Share] Could not pre-fetch trackers for {token}: {e}")

    return {
        "zone": share.cached_metadata,
        "region": share.region,
        "vehicleId": share.vehicle_id,
        "trackerIds": tracker_ids,
    }


@router.get("/share/live", response_model=ShareLiveOut, response_model_exclude_none=True,
            summary="Live vehicles for a shared zone or vehicle")
async def share_live(token: str = Query(...), db: Session = Depends(get_db),
                     regions: dict = Depends(get_regions),
                     client_factory=Depends(get_client_factory)):
    share = _resolve_or_404(db, token)
    client = _client_for(share, regions, client_factory)
    try:
        return await share_service.live_view(share, client)
    except ShareTargetNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TelematicsError as e:
        logger.warning(f"[Share] Live view failed for {token}: {e}")
        raise HTTPException(status_code=502, detail="Telematics provider unavailable")
