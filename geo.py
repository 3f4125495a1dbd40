from math import radians, sin, cos, atan2, sqrt
from typing import Tuple

EARTH_RADIUS_KM = 6371

Point = Tuple[float, float]


def distance_km(a: Point, b: Point) -> float:
    """
    Great circle distance between two (lat, lng) points in kilometres (haversine).
    """
    lat1, lng1 = a
    lat2, lng2 = b
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)
    h = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng / 2) ** 2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def within_radius(a: Point, b: Point, radius_km: float) -> bool:
    return distance_km(a, b) <= radius_km
