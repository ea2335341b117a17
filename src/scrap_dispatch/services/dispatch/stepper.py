"""Three-step dispatch workflow: yard selection, team and schedule, review and confirm."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from ...data.candidates_repository import CandidateSnapshot
from ...models.domain import Order
from ..geospatial import distance_between, format_distance_km
from ..routing.models import RouteEstimate
from .draft import AssignmentDraft
from .errors import CommitFailure, RouteEstimateFailure, TransitionError, ValidationError
from .gates import DispatchPolicy, check_schedule, check_team, check_yard, gate_errors, validate_for_commit

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    YARD_SELECTION = "YardSelection"
    TEAM_AND_SCHEDULE = "TeamAndSchedule"
    REVIEW_AND_CONFIRM = "ReviewAndConfirm"
    COMMITTED = "Committed"
    CANCELLED = "Cancelled"


STEPS = (
    DispatchState.YARD_SELECTION,
    DispatchState.TEAM_AND_SCHEDULE,
    DispatchState.REVIEW_AND_CONFIRM,
)
TERMINAL_STATES = frozenset({DispatchState.COMMITTED, DispatchState.CANCELLED})


class AssignmentCommitter(Protocol):
    def commit_assignment(
        self,
        order_id: str,
        payload: dict[str, Any],
        *,
        version: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> None: ...


class RouteEstimator(Protocol):
    def estimate_route(
        self, origin_lat: float, origin_lon: float, dest_lat: float, dest_lon: float
    ) -> RouteEstimate: ...


@dataclass(frozen=True, slots=True)
class ReviewSummary:
    yard_id: Optional[str]
    yard_name: Optional[str]
    yard_address: Optional[str]
    straight_line_distance: Optional[str]
    collectors: tuple[tuple[str, str], ...]
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


def idempotency_key_for(order_id: str, payload: dict[str, Any]) -> str:
    """Same order and payload give the same key, so a re-pressed Confirm is recognisable."""

    canonical = json.dumps({"order": order_id, "payload": payload}, sort_keys=True, default=str)
    return uuid.uuid5(uuid.NAMESPACE_URL, canonical).hex


class DispatchStepper:
    """State machine owning one assignment draft for the lifetime of a session.

    The stepper always opens at ``YardSelection`` with candidates loading; the
    host attaches the candidate snapshot once every fetch has settled. Forward
    moves run the step gate, backward moves never validate, and ``confirm``
    calls the committer exactly once per press.
    """

    def __init__(
        self,
        order: Order,
        *,
        committer: AssignmentCommitter,
        route_estimator: Optional[RouteEstimator] = None,
        policy: Optional[DispatchPolicy] = None,
        on_success: Optional[Callable[[str], None]] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.order = order
        self.policy = policy or DispatchPolicy()
        self.state = DispatchState.YARD_SELECTION
        self.draft = AssignmentDraft.from_order(order)
        self.snapshot: Optional[CandidateSnapshot] = None
        self.committing = False
        self.error: Optional[str] = None
        self.commit_attempts = 0
        self._committer = committer
        self._route_estimator = route_estimator
        self._on_success = on_success
        self._executor = executor
        self._route_key: Optional[tuple] = None
        self._lock = threading.RLock()

    @property
    def loading(self) -> bool:
        return self.snapshot is None

    @property
    def is_closed(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def step_number(self) -> Optional[int]:
        return STEPS.index(self.state) + 1 if self.state in STEPS else None

    def attach_snapshot(self, snapshot: CandidateSnapshot) -> None:
        with self._lock:
            self.snapshot = snapshot
            if snapshot.is_partial:
                logger.warning(
                    f"Dispatch session for order {self.order.order_id} opened with partial candidates: "
                    f"{', '.join(sorted(snapshot.errors))}"
                )

    def _ensure_editable(self) -> None:
        if self.is_closed:
            raise TransitionError(f"Session is {self.state.value}.")
        if self.committing:
            raise TransitionError("Assignment is being committed.")

    def select_yard(self, yard_id: str) -> None:
        with self._lock:
            self._ensure_editable()
            if self.snapshot is not None and yard_id != self.order.yard_id and self.snapshot.find_yard(yard_id) is None:
                raise ValidationError("unknown scrap yard")
            if yard_id == self.draft.yard_id:
                return
            # any estimate on the draft belongs to the previous yard
            self.draft = self.draft.select_yard(yard_id).apply_route_estimate(None, None)
            self._route_key = None
            if self.state is DispatchState.REVIEW_AND_CONFIRM:
                self._request_route_estimate()

    def toggle_collector(self, collector_id: str) -> None:
        with self._lock:
            self._ensure_editable()
            self._check_collector(collector_id)
            self.draft = self.draft.toggle_collector(collector_id)

    def set_collector(self, collector_id: str, selected: bool) -> None:
        with self._lock:
            self._ensure_editable()
            self._check_collector(collector_id)
            self.draft = self.draft.set_collector(collector_id, selected)

    def _check_collector(self, collector_id: str) -> None:
        if collector_id in self.draft.collector_ids or collector_id in self.order.collector_ids:
            return
        if self.snapshot is not None and self.snapshot.find_collector(collector_id) is None:
            raise ValidationError("unknown collector")

    def select_crew(self, crew_id: Optional[str]) -> None:
        with self._lock:
            self._ensure_editable()
            if (
                crew_id
                and self.snapshot is not None
                and crew_id != self.order.crew_id
                and self.snapshot.find_crew(crew_id) is None
            ):
                raise ValidationError("unknown crew")
            self.draft = self.draft.select_crew(crew_id)

    def set_schedule(self, start_time: Optional[datetime], end_time: Optional[datetime]) -> None:
        with self._lock:
            self._ensure_editable()
            check_schedule(start_time, end_time, self.policy)
            self.draft = self.draft.set_schedule(start_time, end_time)

    def set_notes(self, notes: Optional[str]) -> None:
        with self._lock:
            self._ensure_editable()
            self.draft = self.draft.set_notes(notes)

    def apply_route_estimate(self, distance: Optional[str], duration: Optional[str]) -> None:
        with self._lock:
            if self.is_closed:
                return
            self.draft = self.draft.apply_route_estimate(distance, duration)

    def next(self) -> DispatchState:
        with self._lock:
            self._ensure_editable()
            if self.loading:
                raise TransitionError("Candidates are still loading.")
            if self.state is DispatchState.REVIEW_AND_CONFIRM:
                return self.state

            try:
                if self.state is DispatchState.YARD_SELECTION:
                    check_yard(self.draft)
                else:
                    check_team(self.draft, self.policy)
            except ValidationError as exc:
                self.error = exc.message
                raise

            self.error = None
            self.state = STEPS[STEPS.index(self.state) + 1]
            logger.debug(f"Dispatch session for order {self.order.order_id} advanced to {self.state.value}")
            if self.state is DispatchState.REVIEW_AND_CONFIRM:
                self._request_route_estimate()
            return self.state

    def back(self) -> DispatchState:
        with self._lock:
            self._ensure_editable()
            index = STEPS.index(self.state)
            if index > 0:
                self.state = STEPS[index - 1]
            self.error = None
            return self.state

    def cancel(self) -> DispatchState:
        with self._lock:
            if self.committing:
                raise TransitionError("Assignment is being committed.")
            if self.state is DispatchState.COMMITTED:
                raise TransitionError("Assignment is already committed.")
            self.state = DispatchState.CANCELLED
            self.draft = AssignmentDraft()
            self.error = None
            return self.state

    def confirm(self) -> DispatchState:
        """Validate and commit the draft.

        Raises ValidationError when a gate fails and CommitFailure when the
        backend rejects the write; in both cases the session stays in review
        with the draft intact.
        """
        with self._lock:
            self._ensure_editable()
            if self.state is not DispatchState.REVIEW_AND_CONFIRM:
                raise TransitionError("Assignment can only be confirmed from the review step.")
            try:
                validate_for_commit(self.draft, self.policy)
            except ValidationError as exc:
                self.error = exc.message
                raise

            payload = self.draft.to_commit_payload()
            self.committing = True
            self.commit_attempts += 1

        # the lock is released for the backend call; committing keeps other actions out
        try:
            self._committer.commit_assignment(
                self.order.order_id,
                payload,
                version=self.order.version,
                idempotency_key=idempotency_key_for(self.order.order_id, payload),
            )
        except CommitFailure as exc:
            with self._lock:
                self.error = exc.message
            logger.info(f"Assignment for order {self.order.order_id} was not committed: {exc.message}")
            raise
        else:
            with self._lock:
                self.state = DispatchState.COMMITTED
                self.error = None
        finally:
            with self._lock:
                self.committing = False

        logger.info(
            f"Order {self.order.order_id} assigned to yard {payload['yardId']} "
            f"(collectors={len(payload['collectorIds'])}, crew={payload.get('crewId', '-')})"
        )
        if self._on_success is not None:
            try:
                self._on_success(self.order.order_id)
            except Exception as e:
                logger.error(f"Post-commit callback failed for order {self.order.order_id}: {e}")
        return DispatchState.COMMITTED

    def _route_endpoints(self) -> Optional[tuple[float, float, float, float]]:
        yard = self.snapshot.find_yard(self.draft.yard_id) if self.snapshot else None
        if yard is None or yard.coordinates is None or self.order.coordinates is None:
            return None
        return (*self.order.coordinates, *yard.coordinates)

    def _request_route_estimate(self) -> None:
        endpoints = self._route_endpoints()
        key = (self.draft.yard_id, endpoints)
        if key == self._route_key:
            return
        self._route_key = key
        # A previous estimate describes a different yard
        self.draft = self.draft.apply_route_estimate(None, None)
        if self._route_estimator is None or endpoints is None:
            return
        if self._executor is None:
            self._estimate(key, endpoints)
        else:
            self._executor.submit(self._estimate, key, endpoints)

    def _estimate(self, key: tuple, endpoints: tuple[float, float, float, float]) -> None:
        try:
            estimate = self._route_estimator.estimate_route(*endpoints)
        except RouteEstimateFailure as exc:
            logger.debug(f"Route estimate for order {self.order.order_id} skipped: {exc.message}")
            return
        except Exception as e:
            logger.warning(f"Unexpected error estimating route for order {self.order.order_id}: {e}")
            return
        with self._lock:
            if key != self._route_key:
                return
            self.apply_route_estimate(estimate.distance, estimate.duration)

    def straight_line_distance(self, yard_id: Optional[str] = None) -> Optional[str]:
        yard = self.snapshot.find_yard(yard_id or self.draft.yard_id) if self.snapshot else None
        if yard is None:
            return None
        return format_distance_km(distance_between(self.order.coordinates, yard.coordinates))

    def review(self) -> ReviewSummary:
        with self._lock:
            draft = self.draft
            snapshot = self.snapshot or CandidateSnapshot()
            yard = snapshot.find_yard(draft.yard_id)
            crew = snapshot.find_crew(draft.crew_id)
            collectors = []
            for collector_id in sorted(draft.collector_ids):
                collector = snapshot.find_collector(collector_id)
                collectors.append((collector_id, collector.full_name if collector else collector_id))
            blocking_reason = gate_errors(draft, self.policy)
            return ReviewSummary(
                yard_id=draft.yard_id,
                yard_name=yard.name if yard else None,
                yard_address=yard.address if yard else None,
                straight_line_distance=self.straight_line_distance(),
                collectors=tuple(collectors),
                crew_id=draft.crew_id,
                crew_name=crew.name if crew else draft.crew_id,
                crew_member_count=len(crew.member_ids) if crew else 0,
                start_time=draft.start_time,
                end_time=draft.end_time,
                notes=draft.notes,
                route_distance=draft.route_distance or "N/A",
                route_duration=draft.route_duration or "N/A",
                ready=blocking_reason is None,
                blocking_reason=blocking_reason,
            )
