# fleetwatch/services/occupant_tracker.py
"""
Live occupant tracker: in-memory dwell projection for one dashboard/session.

Per (zone, vehicle):  ABSENT → PRESENT on the first snapshot that has the
vehicle inside; PRESENT → PRESENT refreshes last_seen/status; PRESENT →
ABSENT drops the record on the first snapshot without it.

Nothing is persisted. Entry time is the observation time unless the caller
passes an entry hint (normally the open ENTRY from the event log), so dwell
shown without hints is a lower bound. If a zone was not observed for longer
than `stale_after` seconds (suspended tab, stalled poller), the next snapshot
is taken as authoritative and surviving occupants restart their dwell.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Occupant:
    zone_id: int
    vehicle_id: int
    entry_time: datetime
    last_seen: datetime
    status: str
    label: Optional[str] = None

    def dwell_seconds(self, now: datetime) -> float:
        return max(0.0, (now - self.entry_time).total_seconds())


def format_duration(seconds: float) -> str:
    """Two most significant units: 2d 3h, 1h 5m, 4m 10s, 12s."""
    seconds = int(max(0, seconds))
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


class OccupantTracker:
    def __init__(self, stale_after: Optional[float] = None):
        self.stale_after = stale_after
        self._occupants: dict = {}       # zone_id -> {vehicle_id: Occupant}
        self._last_observed: dict = {}   # zone_id -> datetime

    def observe(self, zone_id: int, inside: dict, now: datetime,
                entry_hints: Optional[dict] = None, labels: Optional[dict] = None) -> dict:
        """
        Apply one snapshot for a zone.
        inside: {vehicle_id: status} for every vehicle currently inside.
        Returns {"entered": [...ids], "left": [...ids]} for this snapshot.
        """
        entry_hints = entry_hints or {}
        labels = labels or {}
        current = self._occupants.setdefault(zone_id, {})

        last = self._last_observed.get(zone_id)
        if last is not None and self.stale_after is not None \
                and (now - last).total_seconds() > self.stale_after:
            for vehicle_id, occ in current.items():
                occ.entry_time = entry_hints.get(vehicle_id, now)
        self._last_observed[zone_id] = now

        left = [vid for vid in current if vid not in inside]
        for vid in left:
            del current[vid]

        entered = []
        for vid, status in inside.items():
            occ = current.get(vid)
            if occ is None:
                current[vid] = Occupant(
                    zone_id=zone_id,
                    vehicle_id=vid,
                    entry_time=entry_hints.get(vid, now),
                    last_seen=now,
                    status=status,
                    label=labels.get(vid),
                )
                entered.append(vid)
            else:
                occ.last_seen = now
                occ.status = status
                if vid in labels:
                    occ.label = labels[vid]

        return {"entered": entered, "left": left}

    def forget_zone(self, zone_id: int):
        """Zone no longer exists upstream."""
        self._occupants.pop(zone_id, None)
        self._last_observed.pop(zone_id, None)

    def zone_ids(self) -> list:
        return list(self._occupants.keys())

    def occupants(self, zone_id: int) -> list:
        """Occupants of one zone, longest dwell first."""
        return sorted(self._occupants.get(zone_id, {}).values(), key=lambda o: o.entry_time)

    def occupant(self, zone_id: int, vehicle_id: int) -> Optional[Occupant]:
        return self._occupants.get(zone_id, {}).get(vehicle_id)

    def vehicle_count(self, zone_id: int) -> int:
        return len(self._occupants.get(zone_id, {}))

    def reset(self):
        self._occupants.clear()
        self._last_observed.clear()
