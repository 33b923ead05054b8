from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ShareTokenRequest(BaseModel):
    region: str
    zoneId: Optional[int] = None
    vehicleId: Optional[int] = None
    metadata: Optional[dict] = None


class ShareTokenOut(BaseModel):
    token: str


class ShareResolveOut(BaseModel):
    zone: Optional[dict]
    region: str
    vehicleId: Optional[int] = None
    trackerIds: list[int] = Field(default_factory=list)


class SharedTrackerOut(BaseModel):
    id: int
    label: Optional[str] = None
    lat: float
    lng: float
    speed: float = 0
    heading: float = 0
    last_update: Optional[datetime] = None
    status: str
    ignition: Optional[bool] = None


class SharedZoneOut(BaseModel):
    id: int
    name: str
    color: Optional[str] = None


class ShareLiveOut(BaseModel):
    trackers: list[SharedTrackerOut]
    zones: Optional[list[SharedZoneOut]] = None
