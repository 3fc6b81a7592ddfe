"""Decide whether a closed voting round yields three winners or a tie-break.

Ideas are ranked into tiers of equal vote count. Seats are filled tier by
tier: a tier that fits in the remaining seats is secured whole, and the first
tier that does not fit becomes the candidate set of a tie-break round. Ideas
below that tier cannot win this round and are left out of the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Sequence, Tuple, Union

from app.services.vote_tally import IdeaSnapshot, ranked_tiers

WINNER_SEATS = 3

NO_IDEAS_REASON = "no ideas to resolve"
NOT_ENOUGH_IDEAS_REASON = "not enough ideas to fill the remaining seats"


def _payload(ideas: Sequence[IdeaSnapshot]) -> List[Dict[str, Any]]:
    return [idea.to_payload() for idea in ideas]


@dataclass(frozen=True)
class Finalize:
    winners: Tuple[IdeaSnapshot, ...]

    action: ClassVar[str] = "FINALIZE"

    def to_payload(self) -> Dict[str, Any]:
        return {"action": self.action, "winners": _payload(self.winners)}


@dataclass(frozen=True)
class NewRound:
    locked: Tuple[IdeaSnapshot, ...]
    candidates: Tuple[IdeaSnapshot, ...]

    action: ClassVar[str] = "NEW_ROUND"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "locked": _payload(self.locked),
            "candidates": _payload(self.candidates),
        }


@dataclass(frozen=True)
class ResolutionError:
    reason: str

    action: ClassVar[str] = "ERROR"

    def to_payload(self) -> Dict[str, Any]:
        return {"action": self.action, "reason": self.reason}


ResolutionOutcome = Union[Finalize, NewRound, ResolutionError]


def resolve_round(
    ideas: Sequence[IdeaSnapshot],
    locked: Sequence[IdeaSnapshot] = (),
) -> ResolutionOutcome:
    """
    Resolve one round of votes.

    ``ideas`` are the ideas on the ballot being closed, in ballot order, with
    their vote counts. ``locked`` are the ideas secured in earlier rounds; they
    are reported first in the outcome and never re-contested. With nothing
    locked all three seats are open.

    Returns ``Finalize`` with exactly three winners, ``NewRound`` with at most
    two locked ideas and at least one candidate, or ``ResolutionError`` when
    there is nothing to resolve or too few ideas to fill the open seats.
    """
    if len(locked) >= WINNER_SEATS:
        raise ValueError(
            f"At most {WINNER_SEATS - 1} ideas can be locked before a round is resolved."
        )
    if not ideas:
        return ResolutionError(reason=NO_IDEAS_REASON)

    secured: List[IdeaSnapshot] = list(locked)
    open_seats = WINNER_SEATS - len(secured)
    for tier in ranked_tiers(ideas):
        if len(tier) > open_seats:
            return NewRound(locked=tuple(secured), candidates=tuple(tier))
        secured.extend(tier)
        open_seats -= len(tier)
        if open_seats == 0:
            return Finalize(winners=tuple(secured))

    return ResolutionError(reason=NOT_ENOUGH_IDEAS_REASON)
