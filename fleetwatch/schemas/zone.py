from pydantic import BaseModel
from typing import Optional


class LatLngIn(BaseModel):
    lat: float
    lng: float


class ZoneCreate(BaseModel):
    label: str
    type: str                       # circle | polygon | corridor
    color: Optional[str] = None
    radius: Optional[float] = None  # meters
    center: Optional[LatLngIn] = None
    points: Optional[list[LatLngIn]] = None


class ZoneOut(BaseModel):
    id: int
    name: str
    type: str
    color: Optional[str] = None
    category: str
    radius: Optional[float] = None
    center: Optional[dict] = None
    points: list[dict] = []
    vehicle_count: int = 0
