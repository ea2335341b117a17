"""Exceptions raised by dispatch sessions."""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for dispatch failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    """A step gate or data rule rejected the draft. Corrected by the operator."""


class TransitionError(DispatchError):
    """The requested action is not available in the current session state."""


class CandidateLoadError(DispatchError):
    """Candidate pools could not be loaded."""

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors = dict(errors or {})


class RouteEstimateFailure(DispatchError):
    """The routing service could not produce an estimate."""


class CommitFailure(DispatchError):
    """The backend rejected the assignment or could not be reached."""


class SessionNotFoundError(DispatchError):
    pass
