"""Session lifecycle: WAITING -> COLLECTING_IDEAS -> VOTING -> REVOTING* -> FINISHED."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class SessionStatus(str, Enum):
    WAITING = "WAITING"
    COLLECTING_IDEAS = "COLLECTING_IDEAS"
    VOTING = "VOTING"
    REVOTING = "REVOTING"
    FINISHED = "FINISHED"


VOTING_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.VOTING, SessionStatus.REVOTING}
)

VALID_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.WAITING: frozenset({SessionStatus.COLLECTING_IDEAS}),
    SessionStatus.COLLECTING_IDEAS: frozenset({SessionStatus.VOTING}),
    SessionStatus.VOTING: frozenset({SessionStatus.REVOTING, SessionStatus.FINISHED}),
    SessionStatus.REVOTING: frozenset(
        {SessionStatus.REVOTING, SessionStatus.FINISHED}
    ),
    SessionStatus.FINISHED: frozenset(),
}


class SessionStateError(ValueError):
    """Raised when a session is asked to move along an edge it does not have."""

    def __init__(self, current: str, target: str) -> None:
        self.current = str(current)
        self.target = str(target)
        super().__init__(
            f"Cannot move session from {self.current} to {self.target}."
        )


def coerce_status(value) -> SessionStatus:
    if isinstance(value, SessionStatus):
        return value
    return SessionStatus(str(value).strip().upper())


def can_transition(current, target) -> bool:
    try:
        current_status = coerce_status(current)
        target_status = coerce_status(target)
    except ValueError:
        return False
    return target_status in VALID_TRANSITIONS.get(current_status, frozenset())


def validate_transition(current, target) -> SessionStatus:
    """Return the target status, raising SessionStateError for an illegal edge."""
    if not can_transition(current, target):
        raise SessionStateError(
            getattr(current, "value", current), getattr(target, "value", target)
        )
    return coerce_status(target)


def is_voting_open(status) -> bool:
    try:
        return coerce_status(status) in VOTING_STATUSES
    except ValueError:
        return False
