# fleetwatch/models/heartbeat_lease.py
"""
Single-writer lease per region. The instance named in `holder` is the only one
allowed to run heartbeat passes for that region until `expires_at`.
"""

from sqlalchemy import Column, DateTime, String
from fleetwatch.database import Base


class HeartbeatLease(Base):
    __tablename__ = "heartbeat_leases"

    region = Column(String(20), primary_key=True)
    holder = Column(String(200), nullable=False)
    acquired_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<HeartbeatLease {self.region} holder={self.holder} until={self.expires_at}>"
