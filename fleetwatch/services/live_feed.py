# fleetwatch/services/live_feed.py
"""
Live position feed for the dashboard projection.

Polls each region's provider every LIVE_POLL_SECONDS, classifies every zone
locally and feeds the region's OccupantTracker. This is a read-side view only:
it never touches the membership store or the event log.

Entry times are seeded from the event log's open ENTRY where one exists, so
the dashboard and the heartbeat agree on when a dwell started.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from fleetwatch.config import RegionConfig
from fleetwatch.services import event_log
from fleetwatch.services.geometry import is_inside
from fleetwatch.services.navixy_client import NavixyClient, TelematicsError
from fleetwatch.services.occupant_tracker import OccupantTracker
from fleetwatch.services.telematics_parser import parse_trackers, parse_zones
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)

# Retry delay in seconds (doubles on each failure, max 60s)
_MIN_BACKOFF = 3
_MAX_BACKOFF = 60

_trackers: dict = {}   # region name -> OccupantTracker


def get_tracker(region: str, stale_after: Optional[float] = None) -> OccupantTracker:
    """Region tracker, created on first use. A non-None stale_after always applies."""
    tracker = _trackers.get(region)
    if tracker is None:
        tracker = _trackers[region] = OccupantTracker(stale_after=stale_after)
    elif stale_after is not None:
        tracker.stale_after = stale_after
    return tracker


async def poll_once(client: NavixyClient, tracker: OccupantTracker, now: datetime,
                    session_factory: Optional[Callable] = None) -> dict:
    """One snapshot for every zone of the client's region."""
    raw_trackers, raw_zones = await asyncio.gather(client.list_trackers(), client.list_zones())
    positions = parse_trackers(raw_trackers)
    zones = parse_zones(raw_zones)
    labels = {p.vehicle_id: p.label for p in positions}

    db = session_factory() if session_factory else None
    try:
        summary = {"zones": len(zones), "entered": 0, "left": 0}
        for zone in zones:
            inside = {p.vehicle_id: p.status for p in positions if is_inside(p.point, zone)}
            hints = event_log.open_entries(db, zone.id) if db is not None and inside else None
            change = tracker.observe(zone.id, inside, now, entry_hints=hints, labels=labels)
            summary["entered"] += len(change["entered"])
            summary["left"] += len(change["left"])
    finally:
        if db is not None:
            db.close()

    live_ids = {z.id for z in zones}
    for zone_id in tracker.zone_ids():
        if zone_id not in live_ids:
            tracker.forget_zone(zone_id)
    return summary


async def _poll_region(region: RegionConfig, interval: float, stale_after: float,
                       session_factory: Optional[Callable]):
    """Polls one region forever. Backs off on provider failures."""
    client = NavixyClient(region)
    tracker = get_tracker(region.name, stale_after=stale_after)
    backoff = _MIN_BACKOFF

    while True:
        try:
            summary = await poll_once(client, tracker, datetime.utcnow(), session_factory)
            if summary["entered"] or summary["left"]:
                logger.info(f"[Live] {region.name}: +{summary['entered']} / -{summary['left']} occupants")
            backoff = _MIN_BACKOFF
            await asyncio.sleep(interval)
            continue
        except TelematicsError as e:
            logger.warning(f"[Live] {region.name}: {e}. Retry in {backoff}s")
        except Exception as e:
            logger.error(f"[Live] {region.name}: unexpected error: {e}", exc_info=True)

        await asyncio.sleep(backoff)
        backoff = min(backoff * 2, _MAX_BACKOFF)


async def start_live_feed(regions: list, interval: float, stale_after: float,
                          session_factory: Optional[Callable] = None):
    """
    Launch one polling task per configured region.
    Called once at startup when LIVE_FEED_ENABLED is set.
    """
    usable = [r for r in regions if r.session_key]
    if not usable:
        logger.warning("No region has a session key, live feed disabled.")
        return

    logger.info(f"🚀 Starting live feed for regions: {[r.name for r in usable]}")
    tasks = [
        asyncio.create_task(_poll_region(r, interval, stale_after, session_factory), name=f"live-{r.name}")
        for r in usable
    ]
    await asyncio.gather(*tasks, return_exceptions=True)
