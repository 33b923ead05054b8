from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class GeofenceEventOut(BaseModel):
    id: int
    vehicle_id: int
    zone_id: int
    region: Optional[str]
    event_type: str          # ENTRY | EXIT
    timestamp: datetime

    class Config:
        from_attributes = True


class GeofenceEventList(BaseModel):
    events: list[GeofenceEventOut]
