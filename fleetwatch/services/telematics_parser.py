# fleetwatch/services/telematics_parser.py
"""
Turns raw telematics provider (Navixy) payloads into typed objects.

This is the single ingestion point for vehicle identity: every tracker dict
becomes a VehicleId here, preferring the logical tracker id over the hardware
source id (source ids can move between physical units). Nothing downstream
should read `source.id` again.

Zones are parsed leniently. A malformed zone still becomes a Zone object; the
geometry classifier decides it is "outside" for every point.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import NewType, Optional
from fleetwatch.utils.json_parser import first_present, get_nested, to_float
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)

VehicleId = NewType("VehicleId", int)

# Provider server time for offset-less timestamps ("YYYY-MM-DD HH:MM:SS")
PROVIDER_UTC_OFFSET = timedelta(hours=3)
_NAIVE_PROVIDER_TS = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")

ZONE_KINDS = ("circle", "polygon", "corridor")


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass
class Zone:
    id: int
    label: str
    kind: str                            # circle | polygon | corridor
    center: Optional[LatLng] = None      # circle
    radius: Optional[float] = None       # meters (circle, corridor)
    points: list = field(default_factory=list)   # [LatLng] polygon ring / corridor polyline
    color: Optional[str] = None
    category: str = "custom"

    def to_metadata(self) -> dict:
        """Snapshot cached alongside share tokens."""
        return {
            "id": self.id,
            "name": self.label,
            "type": self.kind,
            "color": self.color,
            "category": self.category,
            "center": {"lat": self.center.lat, "lng": self.center.lng} if self.center else None,
            "radius": self.radius,
            "points": [{"lat": p.lat, "lng": p.lng} for p in self.points],
        }


@dataclass
class VehiclePosition:
    vehicle_id: VehicleId
    label: Optional[str]
    lat: float
    lng: float
    speed: float = 0.0
    heading: float = 0.0
    last_update: Optional[datetime] = None
    ignition: Optional[bool] = None
    movement_status: Optional[str] = None    # moving | stopped | parked
    connection_status: Optional[str] = None  # active | idle | offline

    @property
    def point(self) -> LatLng:
        return LatLng(self.lat, self.lng)

    @property
    def status(self) -> str:
        if self.movement_status:
            return self.movement_status
        return "moving" if self.speed > 0 else "parked"


def vehicle_id_of(raw: dict) -> Optional[VehicleId]:
    """Tracker id first, hardware source id only when the tracker id is missing."""
    value = raw.get("id")
    if value is None:
        value = get_nested(raw, "source", "id")
    if value is None:
        return None
    try:
        return VehicleId(int(value))
    except (TypeError, ValueError):
        return None


def parse_provider_datetime(value) -> Optional[datetime]:
    """
    Parse a provider timestamp into naive UTC.
    Offset-less "YYYY-MM-DD HH:MM:SS" strings are provider server time (UTC+3).
    """
    if not value or not isinstance(value, str):
        return None
    try:
        if _NAIVE_PROVIDER_TS.match(value):
            return datetime.strptime(value, "%Y-%m-%d %H:%M:%S") - PROVIDER_UTC_OFFSET
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable provider timestamp: {value!r}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_point(raw) -> Optional[LatLng]:
    if not isinstance(raw, dict):
        return None
    lat, lng = to_float(raw.get("lat")), to_float(raw.get("lng"))
    if lat is None or lng is None:
        return None
    return LatLng(lat, lng)


def parse_zone(raw: dict) -> Optional[Zone]:
    """Returns None only when the zone has no usable id."""
    try:
        zone_id = int(raw["id"])
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Zone without id skipped: {raw!r:.200}")
        return None

    kind = (raw.get("type") or "").lower()
    if kind == "sausage":
        kind = "corridor"

    points = []
    for p in raw.get("points") or []:
        parsed = _parse_point(p)
        if parsed is not None:
            points.append(parsed)

    return Zone(
        id=zone_id,
        label=raw.get("label") or raw.get("name") or f"Zone {zone_id}",
        kind=kind,
        center=_parse_point(raw.get("center")),
        radius=to_float(raw.get("radius")),
        points=points,
        color=raw.get("color"),
        category=raw.get("category") or "custom",
    )


def parse_tracker(raw: dict) -> Optional[VehiclePosition]:
    """
    Returns None for trackers with no identity or no position fix; those
    vehicles simply do not take part in this pass.
    """
    vehicle_id = vehicle_id_of(raw)
    if vehicle_id is None:
        return None

    lat = to_float(first_present(raw, ("gps", "location", "lat"), ("last_position", "lat")))
    lng = to_float(first_present(raw, ("gps", "location", "lng"), ("last_position", "lng")))
    if lat is None or lng is None:
        return None

    ignition = raw.get("ignition")
    return VehiclePosition(
        vehicle_id=vehicle_id,
        label=raw.get("label"),
        lat=lat,
        lng=lng,
        speed=to_float(first_present(raw, ("gps", "speed"), ("last_position", "speed"))) or 0.0,
        heading=to_float(first_present(raw, ("gps", "heading"), ("last_position", "heading"))) or 0.0,
        last_update=parse_provider_datetime(first_present(raw, ("last_update",), ("gps", "updated"))),
        ignition=ignition if isinstance(ignition, bool) else None,
        movement_status=raw.get("movement_status"),
        connection_status=raw.get("connection_status"),
    )


def parse_zones(raw_list) -> list:
    zones = [parse_zone(z) for z in raw_list or []]
    return [z for z in zones if z is not None]


def parse_trackers(raw_list) -> list:
    positions = [parse_tracker(t) for t in raw_list or []]
    return [p for p in positions if p is not None]
