"""Serialize dispatch sessions into API views."""

from __future__ import annotations

from dataclasses import asdict

from ...data.candidates_repository import CandidateSnapshot, rank_yards
from ...schemas.dispatch import (
    CollectorOptionModel,
    CrewOptionModel,
    DraftModel,
    ReviewCollectorModel,
    ReviewModel,
    SessionView,
    YardOptionModel,
)
from ..dispatch.sessions import DispatchSession
from ..dispatch.stepper import DispatchState, DispatchStepper
from ..geospatial import format_distance_km


def _draft_model(stepper: DispatchStepper) -> DraftModel:
    draft = stepper.draft
    return DraftModel(
        yard_id=draft.yard_id,
        collector_ids=sorted(draft.collector_ids),
        crew_id=draft.crew_id,
        start_time=draft.start_time,
        end_time=draft.end_time,
        notes=draft.notes,
        route_distance=draft.route_distance,
        route_duration=draft.route_duration,
    )


def _review_model(stepper: DispatchStepper) -> ReviewModel:
    summary = asdict(stepper.review())
    summary["collectors"] = [
        ReviewCollectorModel(id=collector_id, name=name) for collector_id, name in summary["collectors"]
    ]
    return ReviewModel(**summary)


def session_to_view(session: DispatchSession) -> SessionView:
    stepper = session.stepper
    snapshot = stepper.snapshot or CandidateSnapshot()
    draft = stepper.draft

    yards = [
        YardOptionModel(
            id=yard.yard_id,
            name=yard.name,
            address=yard.address,
            latitude=yard.latitude,
            longitude=yard.longitude,
            distance_km=round(distance, 2) if distance is not None else None,
            distance=format_distance_km(distance),
            selected=yard.yard_id == draft.yard_id,
        )
        for yard, distance in rank_yards(stepper.order, snapshot.yards)
    ]
    collectors = [
        CollectorOptionModel(
            id=collector.collector_id,
            full_name=collector.full_name,
            email=collector.email,
            phone=collector.phone,
            work_zone=collector.work_zone,
            selected=collector.collector_id in draft.collector_ids,
        )
        for collector in snapshot.collectors
    ]
    crews = [
        CrewOptionModel(
            id=crew.crew_id,
            name=crew.name,
            description=crew.description,
            member_count=len(crew.member_ids),
            selected=crew.crew_id == draft.crew_id,
        )
        for crew in snapshot.crews
    ]

    return SessionView(
        session_id=session.session_id,
        order_id=stepper.order.order_id,
        state=stepper.state.value,
        step=stepper.step_number,
        loading=stepper.loading,
        committing=stepper.committing,
        error=stepper.error,
        draft=_draft_model(stepper),
        yards=yards,
        collectors=collectors,
        crews=crews,
        candidate_errors=dict(snapshot.errors),
        review=_review_model(stepper) if stepper.state is DispatchState.REVIEW_AND_CONFIRM else None,
    )
