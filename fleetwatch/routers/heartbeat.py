# fleetwatch/routers/heartbeat.py
"""
Heartbeat trigger, called every 1-5 minutes by an external cron.
Always answers 200 with one result per region so a monitor can alert on a
single failing region; only a wrong CRON_SECRET gets a 401.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from fleetwatch.config import settings
from fleetwatch.database import SessionLocal
from fleetwatch.schemas.heartbeat import HeartbeatOut
from fleetwatch.services.heartbeat import HeartbeatScheduler
from fleetwatch.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def get_scheduler() -> HeartbeatScheduler:
    return HeartbeatScheduler(
        regions=list(settings.REGIONS.values()),
        session_factory=SessionLocal,
        instance_id=settings.INSTANCE_ID,
        lease_ttl_seconds=settings.LEASE_TTL_SECONDS,
    )


@router.get("/cron/geofence-observer", response_model=HeartbeatOut, response_model_exclude_none=True,
            summary="Run one membership pass for every region")
async def geofence_observer(authorization: Optional[str] = Header(default=None),
                            scheduler: HeartbeatScheduler = Depends(get_scheduler)):
    if settings.CRON_SECRET and authorization != f"Bearer {settings.CRON_SECRET}":
        logger.warning("[Heartbeat] Rejected trigger with missing/invalid bearer token")
        raise HTTPException(status_code=401, detail="Unauthorized")

    results = await scheduler.run()
    return {"success": True, "results": results}
