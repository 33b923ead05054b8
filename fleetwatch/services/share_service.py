# fleetwatch/services/share_service.py
"""
Share tokens: public, read-only links to the live occupancy of one zone
(or the live position of one vehicle) in one region.

issue_or_get() is idempotent per (region, zone) / (region, vehicle): the
active token is returned and, when metadata is passed, its cached zone
snapshot refreshed. Tokens do not expire; revoke() disables one, after which
the next issue_or_get() for that scope mints a new token.
"""

import asyncio
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fleetwatch.config import settings
from fleetwatch.models.geofence_share import GeofenceShare
from fleetwatch.services.geometry import is_inside
from fleetwatch.services.navixy_client import NavixyClient
from fleetwatch.services.telematics_parser import parse_trackers, parse_zones
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)


class ShareScopeError(ValueError):
    """A share must target exactly one zone or one vehicle."""


class ShareTargetNotFound(LookupError):
    """The shared zone or vehicle no longer exists upstream."""


@dataclass
class ResolvedShare:
    token: str
    region: str
    zone_id: Optional[int]
    vehicle_id: Optional[int]
    cached_metadata: Optional[dict]

    @property
    def scope(self) -> str:
        return "vehicle" if self.vehicle_id is not None else "zone"


def new_token(length: int = None) -> str:
    """128 random bits, hex, truncated."""
    return secrets.token_hex(16)[: length or settings.SHARE_TOKEN_LENGTH]


def _active_share(db: Session, region: str, zone_id: Optional[int], vehicle_id: Optional[int]):
    q = db.query(GeofenceShare).filter(GeofenceShare.region == region, GeofenceShare.revoked_at.is_(None))
    if vehicle_id is not None:
        q = q.filter(GeofenceShare.vehicle_id == vehicle_id)
    else:
        q = q.filter(GeofenceShare.zone_id == zone_id, GeofenceShare.vehicle_id.is_(None))
    return q.first()


def issue_or_get(db: Session, region: str, zone_id: int = None, vehicle_id: int = None,
                 metadata: Optional[dict] = None) -> str:
    if (zone_id is None) == (vehicle_id is None):
        raise ShareScopeError("Provide exactly one of zone_id or vehicle_id")

    existing = _active_share(db, region, zone_id, vehicle_id)
    if existing:
        if metadata is not None:
            existing.zone_data = metadata
            db.commit()
            logger.info(f"[Share] Refreshed cached metadata for {existing.share_token}")
        return existing.share_token

    token = new_token()
    db.add(GeofenceShare(
        share_token=token,
        region=region,
        zone_id=zone_id,
        vehicle_id=vehicle_id,
        zone_data=metadata,
        created_at=datetime.utcnow(),
    ))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = _active_share(db, region, zone_id, vehicle_id)
        if winner is None:
            raise
        logger.info(f"[Share] Concurrent issue for {region} zone={zone_id} vehicle={vehicle_id}, reusing {winner.share_token}")
        if metadata is not None:
            winner.zone_data = metadata
            db.commit()
        return winner.share_token
    target = f"vehicle {vehicle_id}" if vehicle_id is not None else f"zone {zone_id}"
    logger.info(f"[Share] Issued token for {target} ({region})")
    return token


def resolve(db: Session, token: str) -> Optional[ResolvedShare]:
    """None for unknown or revoked tokens."""
    if not token:
        return None
    share = db.query(GeofenceShare).filter(
        GeofenceShare.share_token == token, GeofenceShare.revoked_at.is_(None)
    ).first()
    if not share:
        return None
    return ResolvedShare(
        token=share.share_token,
        region=share.region,
        zone_id=share.zone_id,
        vehicle_id=share.vehicle_id,
        cached_metadata=share.zone_data,
    )


def revoke(db: Session, token: str) -> bool:
    share = db.query(GeofenceShare).filter(
        GeofenceShare.share_token == token, GeofenceShare.revoked_at.is_(None)
    ).first()
    if not share:
        return False
    share.revoked_at = datetime.utcnow()
    db.commit()
    logger.info(f"[Share] Revoked {token}")
    return True


def _tracker_view(pos) -> dict:
    return {
        "id": pos.vehicle_id,
        "label": pos.label,
        "lat": pos.lat,
        "lng": pos.lng,
        "speed": pos.speed,
        "heading": pos.heading,
        "last_update": pos.last_update,
        "status": pos.status,
        "ignition": pos.ignition,
    }


async def live_view(share: ResolvedShare, client: NavixyClient) -> dict:
    """
    Zone share: vehicles inside the zone right now.
    Vehicle share: that vehicle plus the zones it is inside.
    Raises ShareTargetNotFound if the zone/vehicle is gone upstream.
    """
    if share.scope == "zone":
        zones = parse_zones(await client.list_zones())
        zone = next((z for z in zones if z.id == share.zone_id), None)
        if zone is None:
            raise ShareTargetNotFound(f"Zone {share.zone_id} not found in {share.region}")
        positions = parse_trackers(await client.list_trackers())
        return {"trackers": [_tracker_view(p) for p in positions if is_inside(p.point, zone)]}

    raw_trackers, raw_zones = await asyncio.gather(client.list_trackers(), client.list_zones())
    pos = next((p for p in parse_trackers(raw_trackers) if p.vehicle_id == share.vehicle_id), None)
    if pos is None:
        raise ShareTargetNotFound(f"Vehicle {share.vehicle_id} has no live position in {share.region}")
    zones = [z for z in parse_zones(raw_zones) if is_inside(pos.point, z)]
    return {
        "trackers": [_tracker_view(pos)],
        "zones": [{"id": z.id, "name": z.label, "color": z.color} for z in zones],
    }
