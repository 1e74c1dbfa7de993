"""Distance helpers shared by the spatial index and subscription regions."""

from __future__ import annotations

import math
from typing import Literal, Tuple

EARTH_RADIUS_M = 6_371_000
HALF_CIRCUMFERENCE_M = math.pi * EARTH_RADIUS_M

DistanceMetric = Literal["haversine", "planar"]


def wrap_longitude(lon: float) -> float:
    """Normalise a longitude into [-180, 180)."""
    return ((lon + 180.0) % 360.0) - 180.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in meters."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def equirectangular_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Planar approximation, accurate for short distances away from the poles."""

    dlon = wrap_longitude(lon2 - lon1)
    x = math.radians(dlon) * math.cos(math.radians((lat1 + lat2) / 2))
    y = math.radians(lat2 - lat1)
    return EARTH_RADIUS_M * math.hypot(x, y)


def distance_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    metric: DistanceMetric = "haversine",
) -> float:
    if metric == "planar":
        return equirectangular_m(lat1, lon1, lat2, lon2)
    return haversine_m(lat1, lon1, lat2, lon2)


def bounding_box(lat: float, lon: float, radius_m: float) -> Tuple[float, float, float, float]:
    """Return (min_lat, max_lat, min_lon, max_lon) enclosing the circle.

    Latitudes are clipped to [-90, 90]. Longitudes are not wrapped and may lie
    outside [-180, 180] when the circle crosses the antimeridian; a circle that
    contains a pole (or spans half the planet) gets the full [-180, 180] range.
    """
    if radius_m >= HALF_CIRCUMFERENCE_M:
        return -90.0, 90.0, -180.0, 180.0
    delta = radius_m / EARTH_RADIUS_M
    lat_r = math.radians(lat)
    min_lat_r = lat_r - delta
    max_lat_r = lat_r + delta
    if max_lat_r >= math.pi / 2 or min_lat_r <= -math.pi / 2:
        return (
            max(-90.0, math.degrees(min_lat_r)),
            min(90.0, math.degrees(max_lat_r)),
            -180.0,
            180.0,
        )
    dlon_r = math.asin(min(1.0, math.sin(delta) / math.cos(lat_r)))
    dlon = math.degrees(dlon_r)
    return math.degrees(min_lat_r), math.degrees(max_lat_r), lon - dlon, lon + dlon


__all__ = [
    "EARTH_RADIUS_M",
    "DistanceMetric",
    "bounding_box",
    "distance_m",
    "equirectangular_m",
    "haversine_m",
    "wrap_longitude",
]
