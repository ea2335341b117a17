"""Forward-step validation for dispatch sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...config import settings
from .draft import AssignmentDraft
from .errors import ValidationError

YARD_REQUIRED = "yard required"
TEAM_REQUIRED = "team required"
TEAM_EXCLUSIVE = "choose either collectors or a crew, not both"
SCHEDULE_ORDER = "start time must be before end time"


@dataclass(frozen=True, slots=True)
class DispatchPolicy:
    """Configurable dispatch rules: schedule ordering and crew/collector mixing."""

    enforce_schedule_order: bool = True
    allow_crew_with_collectors: bool = True

    @classmethod
    def from_settings(cls) -> "DispatchPolicy":
        return cls(
            enforce_schedule_order=settings.enforce_schedule_order,
            allow_crew_with_collectors=settings.allow_crew_with_collectors,
        )


def check_yard(draft: AssignmentDraft) -> None:
    if not draft.yard_id:
        raise ValidationError(YARD_REQUIRED)


def check_team(draft: AssignmentDraft, policy: DispatchPolicy) -> None:
    if not draft.has_team:
        raise ValidationError(TEAM_REQUIRED)
    if not policy.allow_crew_with_collectors and draft.collector_ids and draft.crew_id:
        raise ValidationError(TEAM_EXCLUSIVE)


def check_schedule(
    start_time: Optional[datetime], end_time: Optional[datetime], policy: DispatchPolicy
) -> None:
    if not policy.enforce_schedule_order or start_time is None or end_time is None:
        return
    try:
        ordered = start_time < end_time
    except TypeError as exc:
        # naive and timezone-aware values cannot be compared
        raise ValidationError("start and end time must use the same timezone") from exc
    if not ordered:
        raise ValidationError(SCHEDULE_ORDER)


def validate_for_commit(draft: AssignmentDraft, policy: DispatchPolicy) -> None:
    """Re-check every rule before the draft is sent to the backend."""

    check_yard(draft)
    check_team(draft, policy)
    check_schedule(draft.start_time, draft.end_time, policy)


def gate_errors(draft: AssignmentDraft, policy: DispatchPolicy) -> Optional[str]:
    """Return the first failing rule message, or None when the draft is committable."""

    try:
        validate_for_commit(draft, policy)
    except ValidationError as exc:
        return exc.message
    return None
