"""Pickup route estimation between an order and its destination yard."""

from __future__ import annotations

import logging
from typing import Callable

import httpx

from ...config import settings
from ..dispatch.errors import RouteEstimateFailure
from ..geospatial import haversine_km
from .models import RouteEstimate
from .osrm_client import OSRMClient

logger = logging.getLogger(__name__)


def format_route_distance(distance_km: float) -> str:
    return f"{distance_km:.1f} km"


def format_route_duration(duration_seconds: float) -> str:
    """Render a duration the way map services do, e.g. ``1 hour 5 mins``."""

    total_minutes = max(1, round(duration_seconds / 60))
    hours, minutes = divmod(total_minutes, 60)
    parts: list[str] = []
    if hours:
        parts.append(f"{hours} hour" if hours == 1 else f"{hours} hours")
    if minutes or not hours:
        parts.append(f"{minutes} min" if minutes == 1 else f"{minutes} mins")
    return " ".join(parts)


def straight_line_estimate(origin_lat: float, origin_lon: float, dest_lat: float, dest_lon: float) -> RouteEstimate:
    distance_km = haversine_km(origin_lat, origin_lon, dest_lat, dest_lon)
    return RouteEstimate(
        distance=f"~{format_route_distance(distance_km)}",
        duration=None,
        distance_km=distance_km,
        duration_min=None,
        source="straight_line",
    )


class OSRMRouteEstimator:
    """Route estimator backed by OSRM, with an optional straight-line fallback."""

    def __init__(
        self,
        client_factory: Callable[[], OSRMClient] = OSRMClient,
        fallback_to_straight_line: bool | None = None,
    ) -> None:
        self._client_factory = client_factory
        self.fallback_to_straight_line = (
            fallback_to_straight_line
            if fallback_to_straight_line is not None
            else settings.route_fallback_to_straight_line
        )

    def estimate_route(
        self, origin_lat: float, origin_lon: float, dest_lat: float, dest_lon: float
    ) -> RouteEstimate:
        try:
            client = self._client_factory()
            data = client.route([(origin_lat, origin_lon), (dest_lat, dest_lon)])
            leg = data["routes"][0]
            distance_km = float(leg["distance"]) / 1000.0
            duration_seconds = float(leg["duration"])
        except (httpx.HTTPError, ConnectionError, ValueError, KeyError, IndexError, TypeError) as exc:
            if self.fallback_to_straight_line:
                logger.info(f"Routing service unavailable, using straight-line estimate: {exc}")
                return straight_line_estimate(origin_lat, origin_lon, dest_lat, dest_lon)
            raise RouteEstimateFailure(f"Route estimate failed: {exc}") from exc

        return RouteEstimate(
            distance=format_route_distance(distance_km),
            duration=format_route_duration(duration_seconds),
            distance_km=distance_km,
            duration_min=duration_seconds / 60.0,
            source="osrm",
        )
