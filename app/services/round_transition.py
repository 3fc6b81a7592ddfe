from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Tuple

from app.services.resolution_engine import (
    WINNER_SEATS,
    Finalize,
    NewRound,
    ResolutionError,
    ResolutionOutcome,
)
from app.services.session_lifecycle import SessionStatus, validate_transition
from app.services.vote_tally import IdeaSnapshot

JSONCompatibleDict = Dict[str, Any]


@dataclass(frozen=True)
class RoundState:
    """Voting state of a session between two rounds."""

    round: int = 1
    status: SessionStatus = SessionStatus.VOTING
    locked_ideas: Tuple[IdeaSnapshot, ...] = ()
    candidate_ideas: Tuple[IdeaSnapshot, ...] = ()
    ballot: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    winners: Tuple[IdeaSnapshot, ...] = ()

    @property
    def open_seats(self) -> int:
        return WINNER_SEATS - len(self.locked_ideas)

    def to_payload(self) -> JSONCompatibleDict:
        """Return a JSON-friendly snapshot of the round state."""
        payload: JSONCompatibleDict = {
            "round": self.round,
            "status": self.status.value,
            "lockedIdeas": [idea.to_payload() for idea in self.locked_ideas],
            "candidateIdeas": [idea.to_payload() for idea in self.candidate_ideas],
            "ballot": {voter: list(ids) for voter, ids in self.ballot.items()},
        }
        if self.winners:
            payload["winners"] = [idea.to_payload() for idea in self.winners]
        return payload


def next_round_state(state: RoundState, outcome: NewRound) -> RoundState:
    """Build the tie-break round that follows a NEW_ROUND decision."""
    return replace(
        state,
        round=state.round + 1,
        status=SessionStatus.REVOTING,
        locked_ideas=tuple(outcome.locked),
        candidate_ideas=tuple(outcome.candidates),
        ballot={},
    )


def finished_state(state: RoundState, outcome: Finalize) -> RoundState:
    return replace(
        state,
        status=SessionStatus.FINISHED,
        candidate_ideas=(),
        ballot={},
        winners=tuple(outcome.winners),
    )


def apply_outcome(state: RoundState, outcome: ResolutionOutcome) -> RoundState:
    """
    Move a voting round along the lifecycle edge chosen by the engine.

    FINALIZE finishes the session with its three winners, NEW_ROUND opens the
    next tie-break round, and ERROR leaves the round open and unchanged.
    """
    if isinstance(outcome, ResolutionError):
        return state
    if isinstance(outcome, Finalize):
        validate_transition(state.status, SessionStatus.FINISHED)
        return finished_state(state, outcome)
    if isinstance(outcome, NewRound):
        validate_transition(state.status, SessionStatus.REVOTING)
        return next_round_state(state, outcome)
    raise TypeError(f"Unsupported resolution outcome: {outcome!r}")


def votes_per_ballot(candidate_count: int, open_seats: int = WINNER_SEATS) -> int:
    """
    Number of picks each participant makes on a ballot.

    Three picks from four or more ideas, two from three, one from two, never
    more than the seats still open.
    """
    if candidate_count >= 4:
        picks = 3
    elif candidate_count == 3:
        picks = 2
    elif candidate_count == 2:
        picks = 1
    else:
        picks = 0
    return max(0, min(picks, open_seats))
