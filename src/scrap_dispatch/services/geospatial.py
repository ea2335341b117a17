"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(
    origin: Optional[tuple[float, float]],
    destination: Optional[tuple[float, float]],
) -> Optional[float]:
    """Return the great-circle distance in km, or None when either point is missing."""

    if origin is None or destination is None:
        return None
    return haversine_km(origin[0], origin[1], destination[0], destination[1])


def format_distance_km(distance_km: Optional[float], precision: int = 2) -> Optional[str]:
    if distance_km is None:
        return None
    return f"{distance_km:.{precision}f} km"
