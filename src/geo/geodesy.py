"""
Geodesy helpers.

Stateless conversions between angles, meter displacements and WGS84
latitude/longitude. Distances are meter-scale approximations suitable for a
fixed camera observing objects within about a kilometer.
"""

from __future__ import annotations

import math
from typing import Tuple

from models.geo import GeoPosition

# Mean earth radius, used for great-circle distances.
EARTH_MEAN_RADIUS_M = 6371000.0
# Equatorial radius, used for the flat-earth displacement conversion.
EARTH_EQUATORIAL_RADIUS_M = 6378137.0


def deg_to_rad(degrees: float) -> float:
    return degrees * math.pi / 180.0


def rad_to_deg(radians: float) -> float:
    return radians * 180.0 / math.pi


def meters_to_latitude_degrees(meters: float) -> float:
    """Degrees of latitude spanned by a north/south displacement."""
    return meters / (EARTH_EQUATORIAL_RADIUS_M * math.pi / 180.0)


def meters_to_longitude_degrees(meters: float, latitude: float) -> float:
    """
    Degrees of longitude spanned by an east/west displacement at a latitude.

    At the poles a longitude degree has no width; any displacement there
    maps to a zero longitude change.
    """
    longitude_radius = EARTH_EQUATORIAL_RADIUS_M * math.cos(deg_to_rad(latitude))
    if abs(longitude_radius) < 1e-9:
        return 0.0
    return meters / (longitude_radius * math.pi / 180.0)


def offset_position(
    latitude: float,
    longitude: float,
    north_m: float,
    east_m: float,
) -> Tuple[float, float]:
    """Shift a lat/lon by a north/east displacement (flat-earth approximation)."""
    return (
        latitude + meters_to_latitude_degrees(north_m),
        longitude + meters_to_longitude_degrees(east_m, latitude),
    )


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle horizontal distance in meters between two lat/lon points."""
    r_lat1 = deg_to_rad(lat1)
    r_lat2 = deg_to_rad(lat2)
    d_lat = deg_to_rad(lat2 - lat1)
    d_lon = deg_to_rad(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(r_lat1) * math.cos(r_lat2) * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push a marginally above 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_MEAN_RADIUS_M * c


def distance_3d_m(a: GeoPosition, b: GeoPosition) -> float:
    """Horizontal haversine distance combined with the height difference."""
    horizontal = haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
    vertical = abs(b.height - a.height)
    return math.hypot(horizontal, vertical)
