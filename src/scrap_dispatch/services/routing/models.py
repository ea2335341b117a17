"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class RouteEstimate:
    distance: str
    duration: Optional[str]
    distance_km: float
    duration_min: Optional[float]
    source: str
