"""Geographic calculations on parcel boundary rings.

All functions accept (lat, lng) vertex sequences as supplied with the
parcel. Rings with fewer than 3 valid vertices are degenerate: the
functions return None (or an empty list) rather than raising.
"""

import logging
import math
from collections.abc import Sequence

from ..config import Settings, config
from ..models.metrics import CommuteTime, LatLng
from .numeric import round_half_up

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

MIN_RING_VERTICES = 3


def _valid_vertices(ring: Sequence[Sequence[float]] | None) -> list[tuple[float, float]]:
    if not ring:
        return []
    valid = []
    for vertex in ring:
        if len(vertex) < 2:
            continue
        lat, lng = vertex[0], vertex[1]
        if isinstance(lat, (int, float)) and isinstance(lng, (int, float)):
            if math.isfinite(lat) and math.isfinite(lng):
                valid.append((float(lat), float(lng)))
    return valid


def haversine_distance_km(lat_a: float, lng_a: float, lat_b: float, lng_b: float) -> float:
    """Great-circle distance in kilometers using the Haversine formula.

    Args:
        lat_a: Latitude of point A (degrees).
        lng_a: Longitude of point A (degrees).
        lat_b: Latitude of point B (degrees).
        lng_b: Longitude of point B (degrees).

    Returns:
        Distance in kilometers.
    """
    phi1, phi2 = math.radians(lat_a), math.radians(lat_b)
    dphi = math.radians(lat_b - lat_a)
    dlambda = math.radians(lng_b - lng_a)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def centroid(ring: Sequence[Sequence[float]] | None) -> LatLng | None:
    """Arithmetic mean of the ring's vertices, None for a degenerate ring."""
    vertices = _valid_vertices(ring)
    if len(vertices) < MIN_RING_VERTICES:
        return None
    lat = math.fsum(v[0] for v in vertices) / len(vertices)
    lng = math.fsum(v[1] for v in vertices) / len(vertices)
    return LatLng(lat=lat, lng=lng)


def perimeter(ring: Sequence[Sequence[float]] | None) -> float | None:
    """Perimeter in meters, closing the ring back to its first vertex.

    Returns:
        Sum of great-circle legs in meters, or None for a degenerate ring.
    """
    vertices = _valid_vertices(ring)
    if len(vertices) < MIN_RING_VERTICES:
        return None
    legs = []
    for i, (lat1, lng1) in enumerate(vertices):
        lat2, lng2 = vertices[(i + 1) % len(vertices)]
        legs.append(haversine_distance_km(lat1, lng1, lat2, lng2) * 1000)
    return math.fsum(legs)


def estimate_commute_times(
    lat: float,
    lng: float,
    settings: Settings | None = None,
) -> list[CommuteTime]:
    """Estimate driving distance and time to each configured major city.

    Straight-line distance underestimates real roads, so it is multiplied
    by the road correction factor before dividing by the average speed.
    No live traffic data is involved.

    Args:
        lat: Origin latitude (usually the parcel centroid).
        lng: Origin longitude.
        settings: Optional settings override.

    Returns:
        CommuteTime entries sorted nearest first; empty for non-finite input.
    """
    settings = settings or config
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return []

    results = []
    for city in settings.major_cities:
        straight_km = haversine_distance_km(lat, lng, city.lat, city.lng)
        road_km = straight_km * settings.road_correction_factor
        minutes = road_km / settings.average_driving_speed_kmh * 60
        results.append(
            CommuteTime(
                city=city.name,
                straight_km=round_half_up(straight_km, 1),
                road_km=round_half_up(road_km, 1),
                driving_minutes=round_half_up(minutes),
            )
        )
    return sorted(results, key=lambda c: (c.road_km, c.city))
