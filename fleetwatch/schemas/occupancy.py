from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class OccupantOut(BaseModel):
    vehicle_id: int
    entry_time: datetime
    entry_observed: bool        # False: baseline-inside, entry_time is a lower bound
    dwell_seconds: int
    dwell: str                  # "1h 5m"


class ZoneOccupancyOut(BaseModel):
    zone_id: int
    vehicle_count: int
    occupants: list[OccupantOut]


class LiveOccupantOut(BaseModel):
    zone_id: int
    vehicle_id: int
    label: Optional[str] = None
    status: str
    entry_time: datetime
    last_seen: datetime
    dwell_seconds: int
    dwell: str
