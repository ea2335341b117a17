"""Registry of open dispatch sessions."""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional

from ...config import settings
from ...data.backend_client import BackendClient
from ...data.candidates_repository import load_candidate_snapshot
from ...models.domain import Order
from ..routing.estimator import OSRMRouteEstimator
from .errors import SessionNotFoundError
from .gates import DispatchPolicy
from .stepper import DispatchState, DispatchStepper, RouteEstimator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchSession:
    session_id: str
    stepper: DispatchStepper
    opened_at: datetime


def _log_assignment(order_id: str) -> None:
    logger.info(f"Order {order_id} dispatch committed; order lists should be refreshed")


class DispatchSessionManager:
    """Opens, looks up and closes dispatch sessions.

    Sessions never share state; the manager lock only guards the registry itself.
    """

    def __init__(
        self,
        backend_factory: Callable[[], BackendClient] = BackendClient,
        estimator_factory: Optional[Callable[[], RouteEstimator]] = OSRMRouteEstimator,
        policy: Optional[DispatchPolicy] = None,
        ttl_minutes: Optional[int] = None,
        executor: Optional[Executor] = None,
        on_success: Callable[[str], None] = _log_assignment,
    ) -> None:
        self._backend_factory = backend_factory
        self._estimator_factory = estimator_factory
        self.policy = policy or DispatchPolicy.from_settings()
        self.ttl = timedelta(minutes=ttl_minutes if ttl_minutes is not None else settings.session_ttl_minutes)
        self._executor = executor
        self._on_success = on_success
        self._sessions: dict[str, DispatchSession] = {}
        self._lock = threading.Lock()

    def open(self, order: Order) -> DispatchSession:
        """Create a session for ``order`` and load its candidate snapshot.

        Raises CandidateLoadError when no candidate pool could be loaded.
        """
        backend = self._backend_factory()
        stepper = DispatchStepper(
            order,
            committer=backend,
            route_estimator=self._estimator_factory() if self._estimator_factory else None,
            policy=self.policy,
            on_success=self._on_success,
            executor=self._executor,
        )
        stepper.attach_snapshot(load_candidate_snapshot(backend))

        session = DispatchSession(
            session_id=uuid.uuid4().hex,
            stepper=stepper,
            opened_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._purge_expired()
            self._sessions[session.session_id] = session
        logger.info(f"Opened dispatch session {session.session_id} for order {order.order_id}")
        return session

    def get(self, session_id: str) -> DispatchSession:
        with self._lock:
            self._purge_expired()
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Dispatch session {session_id} not found.")
        return session

    def close(self, session_id: str) -> DispatchSession:
        """Drop the session, cancelling it first unless it already finished."""
        session = self.get(session_id)
        stepper = session.stepper
        if stepper.state not in (DispatchState.COMMITTED, DispatchState.CANCELLED):
            stepper.cancel()
        with self._lock:
            self._sessions.pop(session_id, None)
        return session

    def __len__(self) -> int:
        return len(self._sessions)

    def _purge_expired(self) -> None:
        cutoff = datetime.now(timezone.utc) - self.ttl
        expired = [
            sid
            for sid, session in self._sessions.items()
            if session.opened_at < cutoff and not session.stepper.committing
        ]
        for sid in expired:
            logger.debug(f"Discarding expired dispatch session {sid}")
            del self._sessions[sid]


@lru_cache()
def get_session_manager() -> DispatchSessionManager:
    """Process-wide manager used by the API routes."""
    executor = (
        ThreadPoolExecutor(max_workers=settings.route_estimate_workers, thread_name_prefix="route-estimate")
        if settings.background_route_estimates
        else None
    )
    return DispatchSessionManager(executor=executor)
