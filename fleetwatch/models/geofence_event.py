# fleetwatch/models/geofence_event.py
"""
Append-only transition log (ENTRY / EXIT).
Rows are never updated. Range queries go through the (zone_id, timestamp) index.
"""

from sqlalchemy import Column, DateTime, Index, Integer, String
from fleetwatch.database import Base


class GeofenceEvent(Base):
    __tablename__ = "geofence_events"
    __table_args__ = (
        Index("ix_geofence_events_zone_time", "zone_id", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, nullable=False, index=True)
    zone_id = Column(Integer, nullable=False)
    region = Column(String(20))
    event_type = Column(String(10), nullable=False)   # ENTRY | EXIT
    timestamp = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<GeofenceEvent {self.id} {self.event_type} zone={self.zone_id} vehicle={self.vehicle_id}>"
