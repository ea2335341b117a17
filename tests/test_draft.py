from datetime import datetime

from scrap_dispatch.models.domain import Order
from scrap_dispatch.services.dispatch.draft import AssignmentDraft


def _order(**overrides) -> Order:
    values = dict(order_id="O1", customer_name="Ahmed", address="12 King Road")
    values.update(overrides)
    return Order(**values)


def test_new_order_seeds_empty_draft() -> None:
    draft = AssignmentDraft.from_order(_order())

    assert draft == AssignmentDraft()
    assert draft.collector_ids == frozenset()
    assert draft.yard_id is None and draft.crew_id is None


def test_existing_assignment_seeds_draft() -> None:
    start = datetime(2026, 3, 1, 9, 0)
    end = datetime(2026, 3, 1, 11, 0)
    order = _order(
        yard_id="Y1",
        collector_ids=("C1", "C2"),
        crew_id="K1",
        start_time=start,
        end_time=end,
        notes="Gate code 4411",
    )

    draft = AssignmentDraft.from_order(order)

    assert draft.yard_id == "Y1"
    assert draft.collector_ids == {"C1", "C2"}
    assert draft.crew_id == "K1"
    assert (draft.start_time, draft.end_time) == (start, end)
    assert draft.notes == "Gate code 4411"


def test_toggle_collector_is_its_own_inverse() -> None:
    draft = AssignmentDraft(collector_ids=frozenset({"C1"}))

    assert draft.toggle_collector("C2").toggle_collector("C2") == draft
    assert draft.toggle_collector("C1").toggle_collector("C1") == draft
    assert draft.toggle_collector("C1").collector_ids == frozenset()


def test_set_collector_is_idempotent() -> None:
    draft = AssignmentDraft(collector_ids=frozenset({"C1"}))

    assert draft.set_collector("C1", True) is draft
    assert draft.set_collector("C9", False) is draft
    assert draft.set_collector("C9", True).collector_ids == {"C1", "C9"}


def test_selecting_yard_or_crew_keeps_collectors() -> None:
    draft = AssignmentDraft(yard_id="Y1", collector_ids=frozenset({"C1"}))

    updated = draft.select_yard("Y2").select_crew("K1")

    assert updated.yard_id == "Y2"
    assert updated.crew_id == "K1"
    assert updated.collector_ids == {"C1"}


def test_identical_route_estimate_leaves_draft_untouched() -> None:
    draft = AssignmentDraft(yard_id="Y1").apply_route_estimate("12.4 km", "18 mins")

    assert draft.apply_route_estimate("12.4 km", "18 mins") is draft
    assert draft.apply_route_estimate("13.0 km", "18 mins") is not draft


def test_commit_payload_skips_unset_fields() -> None:
    draft = AssignmentDraft(
        yard_id="Y1",
        collector_ids=frozenset({"C2", "C1"}),
        start_time=datetime(2026, 3, 1, 9, 0),
    )

    payload = draft.to_commit_payload()

    assert payload == {
        "yardId": "Y1",
        "collectorIds": ["C1", "C2"],
        "startTime": "2026-03-01T09:00:00",
    }
