from datetime import datetime, timezone

import pytest

from scrap_dispatch.services.dispatch.draft import AssignmentDraft
from scrap_dispatch.services.dispatch.errors import ValidationError
from scrap_dispatch.services.dispatch.gates import (
    DispatchPolicy,
    check_schedule,
    check_team,
    check_yard,
    gate_errors,
    validate_for_commit,
)


def test_yard_gate() -> None:
    with pytest.raises(ValidationError, match="yard required"):
        check_yard(AssignmentDraft())
    check_yard(AssignmentDraft(yard_id="Y1"))


@pytest.mark.parametrize(
    "draft",
    [
        AssignmentDraft(collector_ids=frozenset({"C1"})),
        AssignmentDraft(crew_id="K1"),
        AssignmentDraft(collector_ids=frozenset({"C1"}), crew_id="K1"),
    ],
)
def test_team_gate_accepts_collectors_or_crew(draft: AssignmentDraft) -> None:
    check_team(draft, DispatchPolicy())


def test_team_gate_rejects_empty_team() -> None:
    with pytest.raises(ValidationError) as excinfo:
        check_team(AssignmentDraft(), DispatchPolicy())
    assert excinfo.value.message == "team required"


def test_exclusive_team_policy() -> None:
    policy = DispatchPolicy(allow_crew_with_collectors=False)
    draft = AssignmentDraft(collector_ids=frozenset({"C1"}), crew_id="K1")

    with pytest.raises(ValidationError, match="either collectors or a crew"):
        check_team(draft, policy)


def test_schedule_order() -> None:
    start = datetime(2026, 3, 1, 12, 0)
    end = datetime(2026, 3, 1, 10, 0)

    with pytest.raises(ValidationError, match="start time must be before end time"):
        check_schedule(start, end, DispatchPolicy())
    with pytest.raises(ValidationError):
        check_schedule(start, start, DispatchPolicy())

    check_schedule(start, end, DispatchPolicy(enforce_schedule_order=False))
    check_schedule(start, None, DispatchPolicy())
    check_schedule(end, start, DispatchPolicy())


def test_schedule_mixed_timezones_rejected() -> None:
    with pytest.raises(ValidationError, match="same timezone"):
        check_schedule(
            datetime(2026, 3, 1, 9, 0),
            datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc),
            DispatchPolicy(),
        )


def test_commit_validation_reports_first_failure() -> None:
    assert gate_errors(AssignmentDraft(), DispatchPolicy()) == "yard required"
    assert gate_errors(AssignmentDraft(yard_id="Y1"), DispatchPolicy()) == "team required"
    assert gate_errors(AssignmentDraft(yard_id="Y1", crew_id="K1"), DispatchPolicy()) is None
    validate_for_commit(AssignmentDraft(yard_id="Y1", crew_id="K1"), DispatchPolicy())
