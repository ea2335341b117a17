"""Order dispatch session endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.dispatch import DispatchAction, OrderSnapshot, SessionView
from ...services.dispatch.errors import (
    CandidateLoadError,
    CommitFailure,
    SessionNotFoundError,
    TransitionError,
    ValidationError,
)
from ...services.dispatch.sessions import DispatchSessionManager, get_session_manager
from ...services.dispatch.stepper import DispatchStepper
from ...services.outputs.formatter import session_to_view

router = APIRouter(prefix="/dispatch", tags=["dispatch"])

logger = logging.getLogger(__name__)


def _apply(stepper: DispatchStepper, action: DispatchAction) -> None:
    match action.type:
        case "select_yard":
            stepper.select_yard(action.yard_id)
        case "toggle_collector":
            stepper.toggle_collector(action.collector_id)
        case "set_collector":
            stepper.set_collector(action.collector_id, action.selected)
        case "select_crew":
            stepper.select_crew(action.crew_id)
        case "set_schedule":
            stepper.set_schedule(action.start_time, action.end_time)
        case "set_notes":
            stepper.set_notes(action.notes)
        case "next":
            stepper.next()
        case "back":
            stepper.back()
        case "confirm":
            stepper.confirm()
        case "cancel":
            stepper.cancel()
        case _:
            raise ValueError(f"Unknown dispatch action '{action.type}'.")


@router.post("/sessions", response_model=SessionView, status_code=status.HTTP_201_CREATED)
def open_session(
    payload: OrderSnapshot,
    manager: DispatchSessionManager = Depends(get_session_manager),
) -> SessionView:
    """Open the assignment stepper for an order and load the candidate pools."""
    try:
        session = manager.open(payload.to_domain())
    except CandidateLoadError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": exc.message, "errors": exc.errors},
        ) from exc
    except ValueError as exc:
        logger.exception(f"Failed to open dispatch session for order {payload.id}: {exc}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return session_to_view(session)


@router.get("/sessions/{session_id}", response_model=SessionView, status_code=status.HTTP_200_OK)
def get_session(
    session_id: str,
    manager: DispatchSessionManager = Depends(get_session_manager),
) -> SessionView:
    try:
        return session_to_view(manager.get(session_id))
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc


@router.post("/sessions/{session_id}/actions", response_model=SessionView, status_code=status.HTTP_200_OK)
def apply_action(
    session_id: str,
    action: DispatchAction,
    manager: DispatchSessionManager = Depends(get_session_manager),
) -> SessionView:
    """Apply one operator action and return the resulting session state.

    A rejected commit is not an HTTP error: the view comes back in review with
    ``error`` holding the backend message so the operator can correct and retry.
    """
    try:
        session = manager.get(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc

    try:
        _apply(session.stepper, action)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message) from exc
    except TransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message) from exc
    except CommitFailure:
        # the stepper keeps the message in session.stepper.error
        pass
    return session_to_view(session)


@router.delete("/sessions/{session_id}", response_model=SessionView, status_code=status.HTTP_200_OK)
def close_session(
    session_id: str,
    manager: DispatchSessionManager = Depends(get_session_manager),
) -> SessionView:
    """Close the dialog. Open sessions are cancelled without touching the backend."""
    try:
        return session_to_view(manager.close(session_id))
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except TransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message) from exc
