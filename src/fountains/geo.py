"""
Great-circle distance and distance formatting helpers.
"""

import math

from src.data.schema import Coordinate

EARTH_RADIUS_M = 6_371_000  # mean Earth radius


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_between(origin: Coordinate, target: Coordinate) -> float:
    return haversine_m(
        origin.latitude, origin.longitude,
        target.latitude, target.longitude,
    )


def is_valid_coordinate(lat: float, lon: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lon <= 180


def format_distance(meters: float) -> str:
    """Human-readable distance, e.g. '350 m' or '1.2 km'."""
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{meters:.0f} m"
