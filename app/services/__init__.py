"""Idea selection core: tallying, round resolution and the session lifecycle."""

from .vote_tally import IdeaSnapshot, group_by_vote_count, ranked_tiers
from .resolution_engine import (
    WINNER_SEATS,
    Finalize,
    NewRound,
    ResolutionError,
    ResolutionOutcome,
    resolve_round,
)
from .session_lifecycle import (
    SessionStateError,
    SessionStatus,
    can_transition,
    validate_transition,
)
from .round_transition import (
    RoundState,
    apply_outcome,
    next_round_state,
    votes_per_ballot,
)

__all__ = [
    "IdeaSnapshot",
    "group_by_vote_count",
    "ranked_tiers",
    "WINNER_SEATS",
    "Finalize",
    "NewRound",
    "ResolutionError",
    "ResolutionOutcome",
    "resolve_round",
    "SessionStateError",
    "SessionStatus",
    "can_transition",
    "validate_transition",
    "RoundState",
    "apply_outcome",
    "next_round_state",
    "votes_per_ballot",
]
