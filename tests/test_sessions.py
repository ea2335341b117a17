from datetime import datetime, timedelta, timezone

import httpx
import pytest

from scrap_dispatch.models.domain import Collector, Crew, Order, ScrapYard
from scrap_dispatch.services.dispatch.errors import CandidateLoadError, SessionNotFoundError
from scrap_dispatch.services.dispatch.sessions import DispatchSessionManager
from scrap_dispatch.services.dispatch.stepper import DispatchState


class DummyBackend:
    def __init__(self, down: bool = False) -> None:
        self.down = down
        self.commits: list[tuple] = []

    def _check(self) -> None:
        if self.down:
            raise httpx.ConnectError("backend unreachable")

    def list_active_scrap_yards(self):
        self._check()
        return [ScrapYard(yard_id="Y1", name="North Yard", latitude=21.6, longitude=39.25)]

    def list_active_collectors(self, role_filter=None):
        self._check()
        return [Collector(collector_id="C1", full_name="Omar Saleh")]

    def list_active_crews(self):
        self._check()
        return [Crew(crew_id="K1", name="Heavy Lift", member_ids=("C1",))]

    def commit_assignment(self, order_id, payload, *, version=None, idempotency_key=None):
        self.commits.append((order_id, payload))


def _order() -> Order:
    return Order(order_id="O1", customer_name="Ahmed", address="12 King Road", latitude=21.5, longitude=39.2)


def _manager(backend: DummyBackend, **kwargs) -> DispatchSessionManager:
    return DispatchSessionManager(backend_factory=lambda: backend, estimator_factory=None, **kwargs)


def test_open_attaches_snapshot() -> None:
    manager = _manager(DummyBackend())

    session = manager.open(_order())

    assert session.stepper.state is DispatchState.YARD_SELECTION
    assert not session.stepper.loading
    assert manager.get(session.session_id) is session
    assert len(manager) == 1


def test_open_fails_when_backend_down() -> None:
    manager = _manager(DummyBackend(down=True))

    with pytest.raises(CandidateLoadError):
        manager.open(_order())
    assert len(manager) == 0


def test_close_cancels_open_session() -> None:
    manager = _manager(DummyBackend())
    session = manager.open(_order())
    session.stepper.select_yard("Y1")

    closed = manager.close(session.session_id)

    assert closed.stepper.state is DispatchState.CANCELLED
    assert closed.stepper.draft.yard_id is None
    with pytest.raises(SessionNotFoundError):
        manager.get(session.session_id)


def test_close_keeps_committed_state() -> None:
    backend = DummyBackend()
    calls: list[str] = []
    manager = _manager(backend, on_success=calls.append)
    session = manager.open(_order())
    stepper = session.stepper
    stepper.select_yard("Y1")
    stepper.next()
    stepper.toggle_collector("C1")
    stepper.next()
    stepper.confirm()

    closed = manager.close(session.session_id)

    assert closed.stepper.state is DispatchState.COMMITTED
    assert calls == ["O1"]
    assert len(backend.commits) == 1


def test_expired_sessions_are_purged() -> None:
    manager = _manager(DummyBackend(), ttl_minutes=30)
    session = manager.open(_order())
    session.opened_at = datetime.now(timezone.utc) - timedelta(minutes=31)

    with pytest.raises(SessionNotFoundError):
        manager.get(session.session_id)
