"""Domain models for orders and dispatch candidates."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class Order:
    """Pickup order as seen by a dispatch session, including any prior assignment."""

    order_id: str
    customer_name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    yard_id: Optional[str] = None
    collector_ids: tuple[str, ...] = ()
    crew_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: str = ""
    version: Optional[str] = None

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class ScrapYard:
    """Delivery destination for collected material."""

    yard_id: str
    name: str
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool = True

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class Collector:
    collector_id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    work_zone: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class Crew:
    """Named group of collectors assignable as a unit."""

    crew_id: str
    name: str
    member_ids: tuple[str, ...] = ()
    description: Optional[str] = None
    is_active: bool = True
