# fleetwatch/services/heartbeat.py
"""
Heartbeat: one full membership pass per region.

Triggered every 1-5 minutes from outside (cron hitting the heartbeat endpoint).
Per region:
  1. lease check (single writer per region, see lease_service)
  2. fetch trackers and zones concurrently from the provider
  3. load the stored membership snapshot
  4. classify zones × vehicles, run the transition detector
  5. append events, then upsert state, one commit for both

Regions are isolated: any failure (config, provider, timeout, store) becomes a
{"region", "error"} result and the next region still runs. A failed region
writes nothing; the next pass retries from the same stored state.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from fleetwatch.config import RegionConfig
from fleetwatch.services import event_log, membership_store
from fleetwatch.services.lease_service import acquire_lease
from fleetwatch.services.membership_store import MembershipWriteConflict
from fleetwatch.services.navixy_client import NavixyClient
from fleetwatch.services.telematics_parser import parse_trackers, parse_zones
from fleetwatch.services.transition_detector import compute_membership, detect
from fleetwatch.utils.logger import get_logger, get_transition_logger

logger = get_logger(__name__)
transition_log = get_transition_logger()

# One pass per region at a time within this process; overlapping triggers skip
_region_locks: dict = {}


def _lock_for(region: str) -> asyncio.Lock:
    if region not in _region_locks:
        _region_locks[region] = asyncio.Lock()
    return _region_locks[region]


class HeartbeatScheduler:
    def __init__(self, regions: list, session_factory: Callable, instance_id: str,
                 lease_ttl_seconds: int = 600,
                 client_factory: Callable = NavixyClient,
                 clock: Callable = datetime.utcnow):
        self.regions = regions
        self.session_factory = session_factory
        self.instance_id = instance_id
        self.lease_ttl_seconds = lease_ttl_seconds
        self.client_factory = client_factory
        self.clock = clock

    async def run(self) -> list:
        """One pass over every configured region. Never raises."""
        results = []
        for region in self.regions:
            results.append(await self.run_region(region))
        return results

    async def run_region(self, region: RegionConfig) -> dict:
        lock = _lock_for(region.name)
        if lock.locked():
            logger.warning(f"[Heartbeat] {region.name}: previous pass still running, skipped")
            return {"region": region.name, "skipped": "pass already running"}

        async with lock:
            db = self.session_factory()
            try:
                return await asyncio.wait_for(self._process(region, db), timeout=region.timeout_seconds)
            except asyncio.TimeoutError:
                db.rollback()
                logger.warning(f"[Heartbeat] {region.name}: timed out after {region.timeout_seconds}s, skipped")
                return {"region": region.name, "error": f"timed out after {region.timeout_seconds}s"}
            except Exception as e:
                db.rollback()
                logger.error(f"[Heartbeat] {region.name}: pass failed: {e}", exc_info=True)
                return {"region": region.name, "error": str(e)}
            finally:
                db.close()

    async def _process(self, region: RegionConfig, db) -> dict:
        region.require_session_key()

        now = self.clock()
        if not acquire_lease(db, region.name, self.instance_id, self.lease_ttl_seconds, now=now):
            return {"region": region.name, "skipped": "lease held by another instance"}

        client = self.client_factory(region)
        raw_trackers, raw_zones = await asyncio.gather(client.list_trackers(), client.list_zones())
        positions = parse_trackers(raw_trackers)
        zones = parse_zones(raw_zones)

        prior = membership_store.load_all(db)
        # Pass time never goes behind the stored rows
        newest = membership_store.latest_update(db, [z.id for z in zones])
        if newest is not None and newest > now:
            logger.warning(f"[Heartbeat] {region.name}: clock behind stored state by "
                           f"{(newest - now).total_seconds():.0f}s, stamping pass at {newest.isoformat()}")
            now = newest
        current = compute_membership(zones, positions)
        result = detect(current, prior, now)

        # Events flushed before state, both committed in one transaction
        event_log.append(db, result.events, region=region.name)
        written = membership_store.upsert_batch(db, result.state_updates)
        if written != len(result.state_updates):
            raise MembershipWriteConflict(
                f"{len(result.state_updates) - written} of {len(result.state_updates)} state writes rejected"
            )
        db.commit()

        for e in result.events:
            transition_log.info(f"{region.name} | {e.event_type:<5} | zone={e.zone_id} vehicle={e.vehicle_id}")
        logger.info(
            f"[Heartbeat] {region.name}: {len(positions)} trackers × {len(zones)} zones → "
            f"{len(result.events)} events, {len(result.state_updates)} state writes"
        )
        return {"region": region.name, "processedCount": len(positions), "eventCount": len(result.events)}


async def run_heartbeat(regions: list, session_factory: Callable, instance_id: str,
                        lease_ttl_seconds: int = 600, client_factory: Optional[Callable] = None) -> list:
    scheduler = HeartbeatScheduler(
        regions, session_factory, instance_id,
        lease_ttl_seconds=lease_ttl_seconds,
        client_factory=client_factory or NavixyClient,
    )
    return await scheduler.run()
