from pydantic import BaseModel
from typing import Optional


class RegionResult(BaseModel):
    region: str
    processedCount: Optional[int] = None
    eventCount: Optional[int] = None
    error: Optional[str] = None
    skipped: Optional[str] = None


class HeartbeatOut(BaseModel):
    success: bool
    results: list[RegionResult]
