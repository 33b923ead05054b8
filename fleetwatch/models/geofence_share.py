# fleetwatch/models/geofence_share.py
"""
Public share links. One active token per (region, zone) or (region, vehicle),
enforced by the two partial unique indexes below; revoked rows are kept.
zone_data caches the zone metadata at issue time so the shared page can draw
the zone without a provider round trip.
"""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, text
from fleetwatch.database import Base

_ZONE_SCOPE_ACTIVE = text("revoked_at IS NULL AND vehicle_id IS NULL")
_VEHICLE_SCOPE_ACTIVE = text("revoked_at IS NULL AND vehicle_id IS NOT NULL")


class GeofenceShare(Base):
    __tablename__ = "geofence_shares"
    __table_args__ = (
        Index("uq_geofence_shares_active_zone", "region", "zone_id", unique=True,
              postgresql_where=_ZONE_SCOPE_ACTIVE, sqlite_where=_ZONE_SCOPE_ACTIVE),
        Index("uq_geofence_shares_active_vehicle", "region", "vehicle_id", unique=True,
              postgresql_where=_VEHICLE_SCOPE_ACTIVE, sqlite_where=_VEHICLE_SCOPE_ACTIVE),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    share_token = Column(String(64), unique=True, nullable=False, index=True)
    region = Column(String(20), nullable=False)
    zone_id = Column(Integer, index=True)       # set for zone-scoped shares
    vehicle_id = Column(Integer, index=True)    # set for vehicle-scoped shares
    zone_data = Column(JSON)
    created_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime)

    @property
    def scope(self) -> str:
        return "vehicle" if self.vehicle_id is not None else "zone"

    def __repr__(self):
        return f"<GeofenceShare {self.share_token} region={self.region} scope={self.scope}>"
