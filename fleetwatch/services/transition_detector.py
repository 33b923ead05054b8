# fleetwatch/services/transition_detector.py
"""
Transition detection, the core of the heartbeat.

compute_membership() classifies every (zone, vehicle) pair of one region.
detect() compares that against the stored snapshot:

  current  prior      → event   state write
  True     False      → ENTRY   True
  False    True       → EXIT    False
  False    (none)     → -       False   (baseline, so a later crossing is seen)
  True     (none)     → -       True    (baseline; first sighting is not a crossing)
  same     same       → -       -

Events for a pair therefore alternate ENTRY/EXIT by construction: an ENTRY is
only emitted from a stored False and always writes True, and vice versa.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from fleetwatch.services.geometry import geometry_error, is_inside
from fleetwatch.services.membership_store import MembershipRecord
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)

ENTRY = "ENTRY"
EXIT = "EXIT"


@dataclass(frozen=True)
class TransitionEvent:
    zone_id: int
    vehicle_id: int
    event_type: str      # ENTRY | EXIT
    timestamp: datetime


@dataclass
class DetectionResult:
    events: list = field(default_factory=list)
    state_updates: list = field(default_factory=list)


def compute_membership(zones: list, positions: list) -> dict:
    """
    {(zone_id, vehicle_id): inside} over the full zones × positions product.
    Malformed zones are logged once and classify every vehicle as outside.
    """
    current = {}
    for zone in zones:
        problem = geometry_error(zone)
        if problem:
            logger.warning(f"Zone {zone.id} ({zone.label}) has malformed geometry: {problem}")
        for pos in positions:
            current[(zone.id, pos.vehicle_id)] = False if problem else is_inside(pos.point, zone)
    return current


def _transition(current: bool, prior: Optional[bool]) -> tuple:
    """(event_type or None, state to write or None) for one pair."""
    if prior is None:
        return None, current
    if current and not prior:
        return ENTRY, True
    if not current and prior:
        return EXIT, False
    return None, None


def detect(current: dict, prior: dict, now: datetime) -> DetectionResult:
    """
    Pure: neither argument is mutated. Pairs missing from `current` (vehicle
    without a fix, zone deleted) are left alone.
    """
    result = DetectionResult()
    for (zone_id, vehicle_id), inside in current.items():
        event_type, new_state = _transition(bool(inside), prior.get((zone_id, vehicle_id)))
        if event_type:
            result.events.append(TransitionEvent(zone_id, vehicle_id, event_type, now))
        if new_state is not None:
            result.state_updates.append(MembershipRecord(zone_id, vehicle_id, new_state, now))
    return result
