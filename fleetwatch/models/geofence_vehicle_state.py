# fleetwatch/models/geofence_vehicle_state.py
"""
Membership table: last known inside/outside flag per (zone, vehicle).
Source of truth shared by every heartbeat runner. Written only by the
transition detector's state updates (see services/membership_store.py).
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, UniqueConstraint
from fleetwatch.database import Base


class GeofenceVehicleState(Base):
    __tablename__ = "geofence_vehicle_state"
    __table_args__ = (
        UniqueConstraint("zone_id", "vehicle_id", name="uq_geofence_vehicle_state_pair"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    zone_id = Column(Integer, nullable=False, index=True)
    vehicle_id = Column(Integer, nullable=False)
    is_inside = Column(Boolean, nullable=False, default=False)
    last_updated = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<GeofenceVehicleState zone={self.zone_id} vehicle={self.vehicle_id} inside={self.is_inside}>"
