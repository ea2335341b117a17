import httpx
import pytest

from scrap_dispatch.data.candidates_repository import load_candidate_snapshot, rank_yards
from scrap_dispatch.models.domain import Collector, Crew, Order, ScrapYard
from scrap_dispatch.services.dispatch.errors import CandidateLoadError


class DummyRepository:
    def __init__(self, failing: tuple[str, ...] = ()) -> None:
        self.failing = failing
        self.role_filters: list = []

    def _maybe_fail(self, name: str) -> None:
        if name in self.failing:
            raise httpx.ConnectError(f"{name} service unreachable")

    def list_active_scrap_yards(self):
        self._maybe_fail("yards")
        return [ScrapYard(yard_id="Y1", name="North Yard")]

    def list_active_collectors(self, role_filter=None):
        self.role_filters.append(role_filter)
        self._maybe_fail("collectors")
        return [Collector(collector_id="C1", full_name="Omar Saleh")]

    def list_active_crews(self):
        self._maybe_fail("crews")
        return [Crew(crew_id="K1", name="Heavy Lift")]


def test_snapshot_loads_all_pools() -> None:
    repository = DummyRepository()

    snapshot = load_candidate_snapshot(repository, role_filter="COLLECTOR")

    assert [yard.yard_id for yard in snapshot.yards] == ["Y1"]
    assert [c.collector_id for c in snapshot.collectors] == ["C1"]
    assert [crew.crew_id for crew in snapshot.crews] == ["K1"]
    assert not snapshot.is_partial
    assert repository.role_filters == ["COLLECTOR"]


def test_partial_failure_is_flagged() -> None:
    snapshot = load_candidate_snapshot(DummyRepository(failing=("crews",)))

    assert snapshot.crews == ()
    assert snapshot.collectors
    assert snapshot.is_partial
    assert "unreachable" in snapshot.errors["crews"]


def test_total_failure_raises() -> None:
    with pytest.raises(CandidateLoadError) as excinfo:
        load_candidate_snapshot(DummyRepository(failing=("yards", "collectors", "crews")))

    assert set(excinfo.value.errors) == {"yards", "collectors", "crews"}


def test_rank_yards_nearest_first_unknown_last() -> None:
    order = Order(order_id="O1", customer_name="Ahmed", address="12 King Road", latitude=21.50, longitude=39.20)
    yards = [
        ScrapYard(yard_id="FAR", name="Far", latitude=22.0, longitude=39.5),
        ScrapYard(yard_id="NOWHERE", name="No coordinates"),
        ScrapYard(yard_id="NEAR", name="Near", latitude=21.51, longitude=39.21),
        ScrapYard(yard_id="NOWHERE2", name="No coordinates either"),
    ]

    ranked = rank_yards(order, yards)

    assert [yard.yard_id for yard, _ in ranked] == ["NEAR", "FAR", "NOWHERE", "NOWHERE2"]
    assert ranked[0][1] < ranked[1][1]
    assert ranked[2][1] is None


def test_rank_yards_without_order_coordinates_keeps_order() -> None:
    order = Order(order_id="O1", customer_name="Ahmed", address="12 King Road")
    yards = [ScrapYard(yard_id="A", name="A", latitude=1.0, longitude=1.0), ScrapYard(yard_id="B", name="B")]

    assert [(yard.yard_id, distance) for yard, distance in rank_yards(order, yards)] == [("A", None), ("B", None)]
