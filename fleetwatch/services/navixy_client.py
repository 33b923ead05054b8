# fleetwatch/services/navixy_client.py
"""
Async client for the Navixy telematics API.

Every call authenticates with the region's session key (`hash` parameter).
Failures raise TelematicsError instead of returning empty lists: an empty
tracker list would look like "every vehicle left every zone".

Endpoints used:
  GET  /tracker/list                 tracker identities and labels
  GET  /tracker/get_states           live GPS / movement / ignition state
  GET  /zone/list?with_points=true   zone geometry
  POST /zone/create, /zone/delete    zone CRUD for the drawing UI
"""

import json
from typing import Optional
import httpx
from fleetwatch.config import RegionConfig
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ZONE_COLOR = "#3b82f6"


class TelematicsError(Exception):
    """Provider unreachable, non-200, or answered success=false."""


class NavixyClient:
    def __init__(self, region: RegionConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.region = region
        self.base_url = region.api_url.rstrip("/")
        self._transport = transport

    async def _call(self, method: str, endpoint: str, **params) -> dict:
        params["hash"] = self.region.require_session_key()
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=self.region.timeout_seconds,
                                         transport=self._transport) as client:
                response = await client.request(method, url, params=params)
        except httpx.HTTPError as e:
            raise TelematicsError(f"{self.region.name} {endpoint}: {type(e).__name__}: {e}") from e

        if response.status_code != 200:
            raise TelematicsError(f"{self.region.name} {endpoint} returned HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise TelematicsError(f"{self.region.name} {endpoint} returned invalid JSON") from e
        if not isinstance(data, dict) or not data.get("success"):
            status = data.get("status") if isinstance(data, dict) else None
            raise TelematicsError(f"{self.region.name} {endpoint} failed: {status or data!r:.200}")
        return data

    async def list_trackers(self) -> list:
        """Tracker dicts with live state merged in (gps, movement_status, ignition...)."""
        trackers = (await self._call("GET", "/tracker/list")).get("list") or []
        if not trackers:
            return []

        ids = [t["id"] for t in trackers if t.get("id") is not None]
        states = {}
        if ids:
            data = await self._call("GET", "/tracker/get_states",
                                    trackers=json.dumps(ids), allow_not_exist="true")
            states = data.get("states") or {}

        merged = []
        for tracker in trackers:
            state = states.get(str(tracker.get("id"))) or states.get(tracker.get("id")) or {}
            merged.append({**tracker, **state})
        logger.debug(f"[Navixy] {self.region.name}: {len(merged)} trackers, {len(states)} states")
        return merged

    async def list_zones(self) -> list:
        return (await self._call("GET", "/zone/list", with_points="true")).get("list") or []

    async def create_zone(self, payload: dict) -> int:
        """Returns the new zone id. `corridor` is the provider's `sausage`."""
        kind = payload["type"]
        params = {
            "label": payload["label"],
            "type": "sausage" if kind == "corridor" else kind,
            "color": payload.get("color") or DEFAULT_ZONE_COLOR,
            "visible": "true",
        }
        if kind == "circle":
            params["radius"] = str(payload["radius"])
            params["center_lat"] = str(payload["center"]["lat"])
            params["center_lng"] = str(payload["center"]["lng"])
        elif kind in ("sausage", "corridor"):
            params["radius"] = str(payload["radius"])
        if payload.get("points"):
            params["points"] = json.dumps(payload["points"])

        data = await self._call("POST", "/zone/create", **params)
        logger.info(f"[Navixy] {self.region.name}: created zone {data.get('id')} ({payload['label']})")
        return int(data["id"])

    async def delete_zone(self, zone_id: int) -> None:
        await self._call("POST", "/zone/delete", zone_id=zone_id)
        logger.info(f"[Navixy] {self.region.name}: deleted zone {zone_id}")


def get_client_factory():
    """FastAPI dependency: builds a provider client for a RegionConfig."""
    return NavixyClient
