# fleetwatch/services/lease_service.py
"""
Per-region single-writer lease for heartbeat passes.

Two heartbeat runners reading the same membership snapshot would both see
prior=False and both log the same ENTRY. Only the instance holding the
region's lease runs the pass; it renews on every pass, and another instance
takes over once the lease has expired.
"""

from datetime import datetime, timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fleetwatch.models.heartbeat_lease import HeartbeatLease
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)


def acquire_lease(db: Session, region: str, holder: str, ttl_seconds: int, now: datetime = None) -> bool:
    """Take or renew the lease. Commits. Returns False if someone else holds it."""
    now = now or datetime.utcnow()
    expires = now + timedelta(seconds=ttl_seconds)

    lease = db.query(HeartbeatLease).filter(HeartbeatLease.region == region).with_for_update().first()
    if lease is None:
        db.add(HeartbeatLease(region=region, holder=holder, acquired_at=now, expires_at=expires))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"[Lease] {region}: lost creation race to another instance")
            return False
        logger.info(f"[Lease] {region}: acquired by {holder}")
        return True

    if lease.holder != holder and lease.expires_at > now:
        db.rollback()
        logger.warning(f"[Lease] {region}: held by {lease.holder} until {lease.expires_at.isoformat()}")
        return False

    if lease.holder != holder:
        logger.info(f"[Lease] {region}: taken over from {lease.holder} (expired {lease.expires_at.isoformat()})")
        lease.acquired_at = now
    lease.holder = holder
    lease.expires_at = expires
    db.commit()
    return True


def release_lease(db: Session, region: str, holder: str) -> bool:
    """Give the lease up early (shutdown). Only the holder can release."""
    lease = db.query(HeartbeatLease).filter(
        HeartbeatLease.region == region, HeartbeatLease.holder == holder
    ).first()
    if lease is None:
        return False
    db.delete(lease)
    db.commit()
    logger.info(f"[Lease] {region}: released by {holder}")
    return True
