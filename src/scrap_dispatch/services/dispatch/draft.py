"""In-progress assignment state for one dispatch session.

Drafts are immutable: every mutation returns a new draft, or the same instance
when the mutation would not change anything. Callers can therefore detect a
no-op update with an identity check.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from ...models.domain import Order


@dataclass(frozen=True, slots=True)
class AssignmentDraft:
    yard_id: Optional[str] = None
    collector_ids: frozenset[str] = frozenset()
    crew_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: str = ""
    route_distance: Optional[str] = None
    route_duration: Optional[str] = None

    @classmethod
    def from_order(cls, order: Order) -> "AssignmentDraft":
        """Seed a draft from the order's persisted assignment, if any."""

        return cls(
            yard_id=order.yard_id or None,
            collector_ids=frozenset(cid for cid in order.collector_ids if cid),
            crew_id=order.crew_id or None,
            start_time=order.start_time,
            end_time=order.end_time,
            notes=order.notes or "",
        )

    @property
    def has_team(self) -> bool:
        return bool(self.collector_ids) or self.crew_id is not None

    def _update(self, **changes: Any) -> "AssignmentDraft":
        if all(getattr(self, name) == value for name, value in changes.items()):
            return self
        return replace(self, **changes)

    def select_yard(self, yard_id: str) -> "AssignmentDraft":
        # Downstream team choices are kept when the yard changes
        return self._update(yard_id=yard_id)

    def toggle_collector(self, collector_id: str) -> "AssignmentDraft":
        return self._update(collector_ids=self.collector_ids ^ {collector_id})

    def set_collector(self, collector_id: str, selected: bool) -> "AssignmentDraft":
        if selected:
            return self._update(collector_ids=self.collector_ids | {collector_id})
        return self._update(collector_ids=self.collector_ids - {collector_id})

    def select_crew(self, crew_id: Optional[str]) -> "AssignmentDraft":
        return self._update(crew_id=crew_id or None)

    def set_schedule(self, start_time: Optional[datetime], end_time: Optional[datetime]) -> "AssignmentDraft":
        return self._update(start_time=start_time, end_time=end_time)

    def set_notes(self, notes: Optional[str]) -> "AssignmentDraft":
        return self._update(notes=notes or "")

    def apply_route_estimate(self, distance: Optional[str], duration: Optional[str]) -> "AssignmentDraft":
        return self._update(route_distance=distance, route_duration=duration)

    def to_commit_payload(self) -> dict[str, Any]:
        """Build the body sent to the order service on commit."""

        payload: dict[str, Any] = {
            "yardId": self.yard_id,
            "collectorIds": sorted(self.collector_ids),
        }
        optional = {
            "crewId": self.crew_id,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "notes": self.notes or None,
            "routeDistance": self.route_distance,
            "routeDuration": self.route_duration,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload
