# fleetwatch/services/geometry.py
"""
Geometry classifier: is a vehicle position inside a zone?

Shapes:
  circle: haversine distance to center <= radius (meters)
  polygon: point-in-ring, boundary inclusive; ring closed here if needed
  corridor: haversine distance to the nearest point of the polyline <= radius

All distances are meters. Every public function is total over Zone objects:
malformed geometry classifies as outside instead of raising, so one broken
zone never takes the rest of a heartbeat pass down with it.
"""

import math
from typing import Optional
from shapely.errors import GEOSException
from shapely.geometry import LineString, Point, Polygon
from fleetwatch.services.telematics_parser import LatLng, Zone
from fleetwatch.utils.logger import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_METERS = 6371008.8
METERS_PER_DEGREE = EARTH_RADIUS_METERS * math.pi / 180.0


def haversine_m(a: LatLng, b: LatLng) -> float:
    """Great-circle distance in meters."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


def _project(origin: LatLng, p: LatLng) -> tuple:
    """Local equirectangular projection around origin, in meters."""
    x = (p.lng - origin.lng) * METERS_PER_DEGREE * math.cos(math.radians(origin.lat))
    y = (p.lat - origin.lat) * METERS_PER_DEGREE
    return (x, y)


def _unproject(origin: LatLng, x: float, y: float) -> LatLng:
    lat = origin.lat + y / METERS_PER_DEGREE
    cos_lat = math.cos(math.radians(origin.lat))
    lng = origin.lng + (x / (METERS_PER_DEGREE * cos_lat) if cos_lat else 0.0)
    return LatLng(lat, lng)


def distance_to_polyline_m(point: LatLng, polyline: list) -> float:
    """
    Minimum distance in meters from point to any segment of polyline.
    The nearest point on each segment is found in a projection centred on
    the query point, then measured back on the sphere.
    """
    if len(polyline) == 1:
        return haversine_m(point, polyline[0])

    origin = Point(0.0, 0.0)
    best = math.inf
    for start, end in zip(polyline, polyline[1:]):
        if start == end:
            best = min(best, haversine_m(point, start))
            continue
        segment = LineString([_project(point, start), _project(point, end)])
        nearest = segment.interpolate(segment.project(origin))
        best = min(best, haversine_m(point, _unproject(point, nearest.x, nearest.y)))
    return best


def closed_ring(points: list) -> list:
    """Ring with the first vertex repeated at the end."""
    if points and points[0] != points[-1]:
        return list(points) + [points[0]]
    return list(points)


def geometry_error(zone: Zone) -> Optional[str]:
    """Why this zone cannot be classified against, or None if it can."""
    if zone.kind == "circle":
        if zone.center is None:
            return "circle without center"
        if zone.radius is None or zone.radius <= 0:
            return "circle without positive radius"
    elif zone.kind == "polygon":
        distinct = closed_ring(zone.points)[:-1] if zone.points else []
        if len(distinct) < 3:
            return "polygon with fewer than 3 vertices"
    elif zone.kind == "corridor":
        if len(zone.points) < 2:
            return "corridor with fewer than 2 vertices"
        if zone.radius is None or zone.radius <= 0:
            return "corridor without positive radius"
    else:
        return f"unknown zone type {zone.kind!r}"
    return None


def _inside_polygon(point: LatLng, ring: list) -> bool:
    polygon = Polygon([(p.lng, p.lat) for p in closed_ring(ring)])
    return polygon.covers(Point(point.lng, point.lat))


def is_inside(point: LatLng, zone: Zone) -> bool:
    """Fails closed: any malformed geometry or numeric error → False."""
    problem = geometry_error(zone)
    if problem:
        logger.debug(f"Zone {zone.id} not classifiable: {problem}")
        return False

    try:
        if zone.kind == "circle":
            return haversine_m(point, zone.center) <= zone.radius
        if zone.kind == "polygon":
            return _inside_polygon(point, zone.points)
        return distance_to_polyline_m(point, zone.points) <= zone.radius
    except (GEOSException, ValueError, ArithmeticError) as e:
        logger.warning(f"Zone {zone.id} classification failed: {e}")
        return False
