"""Dispatch session request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.domain import Order


class OrderSnapshot(BaseModel):
    """Order as sent by the host page when the assignment dialog opens."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer_name: str = Field(default="", alias="customerName")
    address: str = ""
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    yard_id: Optional[str] = Field(default=None, alias="yardId")
    assigned_collector_ids: List[str] = Field(default_factory=list, alias="assignedCollectorIds")
    assigned_collector_id: Optional[str] = Field(
        default=None,
        alias="assignedCollectorId",
        description="Legacy single-collector assignment; merged into assignedCollectorIds.",
    )
    crew_id: Optional[str] = Field(default=None, alias="crewId")
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    notes: Optional[str] = None
    version: Optional[str] = Field(default=None, description="Order version/etag for optimistic concurrency.")

    def to_domain(self) -> Order:
        collector_ids = list(self.assigned_collector_ids)
        if self.assigned_collector_id and self.assigned_collector_id not in collector_ids:
            collector_ids.append(self.assigned_collector_id)
        return Order(
            order_id=self.id,
            customer_name=self.customer_name,
            address=self.address,
            latitude=self.latitude,
            longitude=self.longitude,
            yard_id=self.yard_id or None,
            collector_ids=tuple(collector_ids),
            crew_id=self.crew_id or None,
            start_time=self.start_time,
            end_time=self.end_time,
            notes=self.notes or "",
            version=self.version,
        )


ActionType = Literal[
    "select_yard",
    "toggle_collector",
    "set_collector",
    "select_crew",
    "set_schedule",
    "set_notes",
    "next",
    "back",
    "confirm",
    "cancel",
]

_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "select_yard": ("yard_id",),
    "toggle_collector": ("collector_id",),
    "set_collector": ("collector_id", "selected"),
}


class DispatchAction(BaseModel):
    """One operator action against a session."""

    type: ActionType
    yard_id: Optional[str] = None
    collector_id: Optional[str] = None
    selected: Optional[bool] = None
    crew_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_required_fields(self) -> "DispatchAction":
        missing = [name for name in _REQUIRED_FIELDS.get(self.type, ()) if getattr(self, name) is None]
        if missing:
            raise ValueError(f"Action '{self.type}' requires: {', '.join(missing)}")
        return self


class DraftModel(BaseModel):
    yard_id: Optional[str]
    collector_ids: List[str]
    crew_id: Optional[str]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    notes: str
    route_distance: Optional[str]
    route_duration: Optional[str]


class YardOptionModel(BaseModel):
    id: str
    name: str
    address: str
    latitude: Optional[float]
    longitude: Optional[float]
    distance_km: Optional[float]
    distance: Optional[str] = Field(description="Straight-line distance text, null when unknown.")
    selected: bool


class CollectorOptionModel(BaseModel):
    id: str
    full_name: str
    email: Optional[str]
    phone: Optional[str]
    work_zone: Optional[str]
    selected: bool


class CrewOptionModel(BaseModel):
    id: str
    name: str
    description: Optional[str]
    member_count: int
    selected: bool


class ReviewCollectorModel(BaseModel):
    id: str
    name: str


class ReviewModel(BaseModel):
    yard_id: Optional[str]
    yard_name: Optional[str]
    yard_address: Optional[str]
    straight_line_distance: Optional[str]
    collectors: List[ReviewCollectorModel]
    crew_id: Optional[str]
    crew_name: Optional[str]
    crew_member_count: int
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    notes: str
    route_distance: str
    route_duration: str
    ready: bool
    blocking_reason: Optional[str]


class SessionView(BaseModel):
    session_id: str
    order_id: str
    state: str
    step: Optional[int]
    loading: bool
    committing: bool
    error: Optional[str]
    draft: DraftModel
    yards: List[YardOptionModel]
    collectors: List[CollectorOptionModel]
    crews: List[CrewOptionModel]
    candidate_errors: dict[str, str]
    review: Optional[ReviewModel] = None
