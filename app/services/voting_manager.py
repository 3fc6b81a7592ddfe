from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.idea import Idea
from app.models.user import User
from app.models.vote import VoteRecord
from app.models.voting_session import VotingSession
from app.services.resolution_engine import (
    Finalize,
    NewRound,
    ResolutionError,
    ResolutionOutcome,
    resolve_round,
)
from app.services.round_transition import RoundState, apply_outcome, votes_per_ballot
from app.services.session_lifecycle import (
    SessionStateError,
    SessionStatus,
    coerce_status,
    is_voting_open,
)
from app.services.vote_tally import IdeaSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundCloseResult:
    closed_round: int
    changed: bool
    outcome: Optional[ResolutionOutcome]
    state: RoundState

    def to_payload(self) -> Dict[str, Any]:
        return {
            "closedRound": self.closed_round,
            "changed": self.changed,
            "outcome": self.outcome.to_payload() if self.outcome else None,
            "state": self.state.to_payload(),
        }


class VotingManager:
    """Ballots, tallies and round resolution for a voting session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def _is_participant(session: VotingSession, user: User) -> bool:
        return any(p.user_id == user.user_id for p in session.participants or [])

    @staticmethod
    def ballot_idea_ids(session: VotingSession) -> List[int]:
        return [int(idea_id) for idea_id in session.candidate_idea_ids or []]

    @staticmethod
    def _ballot_for_round(session: VotingSession, round_number: int) -> List[int]:
        history = session.ballot_history or {}
        return [int(idea_id) for idea_id in history.get(str(round_number), [])]

    def _count_votes(
        self, session_id: str, round_number: int, idea_ids: Sequence[int]
    ) -> Dict[int, int]:
        """Votes per idea for one round; ideas nobody picked count zero."""
        counts = {int(idea_id): 0 for idea_id in idea_ids}
        rows = (
            self.db.query(VoteRecord.idea_id, func.count(VoteRecord.vote_id))
            .filter(
                VoteRecord.session_id == session_id,
                VoteRecord.round == round_number,
            )
            .group_by(VoteRecord.idea_id)
            .all()
        )
        for idea_id, total in rows:
            if idea_id in counts:
                counts[idea_id] = int(total)
        return counts

    def _snapshots(
        self, session_id: str, idea_ids: Sequence[int], counts: Dict[int, int]
    ) -> List[IdeaSnapshot]:
        if not idea_ids:
            return []
        ideas = {
            idea.id: idea
            for idea in self.db.query(Idea)
            .filter(Idea.session_id == session_id, Idea.id.in_(list(idea_ids)))
            .all()
        }
        snapshots: List[IdeaSnapshot] = []
        for idea_id in idea_ids:
            idea = ideas.get(idea_id)
            if idea is None:
                continue
            snapshots.append(
                IdeaSnapshot(
                    idea_id=idea.id,
                    content=idea.content,
                    author_id=idea.author_id,
                    vote_count=counts.get(idea.id, 0),
                )
            )
        return snapshots

    def _deciding_counts(
        self, session: VotingSession, idea_ids: Sequence[int]
    ) -> Dict[int, int]:
        """Vote counts from the last round each idea was on the ballot."""
        last_round: Dict[int, int] = {}
        for round_key, ballot in (session.ballot_history or {}).items():
            for idea_id in ballot:
                if int(idea_id) in idea_ids:
                    last_round[int(idea_id)] = max(
                        last_round.get(int(idea_id), 0), int(round_key)
                    )
        counts: Dict[int, int] = {}
        for idea_id in idea_ids:
            round_number = last_round.get(idea_id)
            if round_number is None:
                counts[idea_id] = 0
                continue
            counts[idea_id] = self._count_votes(
                session.session_id, round_number, [idea_id]
            )[idea_id]
        return counts

    def _current_ballots(
        self, session_id: str, round_number: int
    ) -> Dict[str, Tuple[int, ...]]:
        rows = (
            self.db.query(VoteRecord.voter_id, VoteRecord.idea_id)
            .filter(
                VoteRecord.session_id == session_id,
                VoteRecord.round == round_number,
            )
            .order_by(VoteRecord.voter_id, VoteRecord.idea_id)
            .all()
        )
        ballots: Dict[str, List[int]] = {}
        for voter_id, idea_id in rows:
            ballots.setdefault(voter_id, []).append(idea_id)
        return {voter_id: tuple(ids) for voter_id, ids in ballots.items()}

    def round_state(self, session: VotingSession) -> RoundState:
        """Rebuild the RoundState of a session from what is persisted."""
        status = coerce_status(session.status)
        locked_ids = [int(i) for i in session.locked_idea_ids or []]
        locked = self._snapshots(
            session.session_id, locked_ids, self._deciding_counts(session, locked_ids)
        )
        candidate_ids = self.ballot_idea_ids(session)
        candidates = self._snapshots(
            session.session_id,
            candidate_ids,
            self._count_votes(session.session_id, session.current_round, candidate_ids),
        )
        winners: List[IdeaSnapshot] = []
        if status == SessionStatus.FINISHED:
            winner_ids = [int(i) for i in session.winner_idea_ids or []]
            winners = self._snapshots(
                session.session_id,
                winner_ids,
                self._deciding_counts(session, winner_ids),
            )
        ballot = (
            self._current_ballots(session.session_id, session.current_round)
            if is_voting_open(status)
            else {}
        )
        return RoundState(
            round=session.current_round,
            status=status,
            locked_ideas=tuple(locked),
            candidate_ideas=tuple(candidates),
            ballot=ballot,
            winners=tuple(winners),
        )

    def has_voted(self, session: VotingSession, user: User) -> bool:
        return bool(self.user_ballot(session, user))

    def user_ballot(self, session: VotingSession, user: User) -> List[int]:
        return [
            idea_id
            for (idea_id,) in self.db.query(VoteRecord.idea_id)
            .filter(
                VoteRecord.session_id == session.session_id,
                VoteRecord.voter_id == user.user_id,
                VoteRecord.round == session.current_round,
            )
            .order_by(VoteRecord.idea_id)
            .all()
        ]

    def voter_ids(self, session: VotingSession) -> List[str]:
        return [
            voter_id
            for (voter_id,) in self.db.query(VoteRecord.voter_id)
            .filter(
                VoteRecord.session_id == session.session_id,
                VoteRecord.round == session.current_round,
            )
            .distinct()
            .order_by(VoteRecord.voter_id)
            .all()
        ]

    def vote_status(self, session: VotingSession) -> Dict[str, Any]:
        voters = self.voter_ids(session) if is_voting_open(session.status) else []
        participant_count = len(session.participants or [])
        return {
            "session_id": session.session_id,
            "status": coerce_status(session.status).value,
            "round": session.current_round,
            "votes_per_ballot": session.votes_per_ballot,
            "participant_count": participant_count,
            "ballots_cast": len(voters),
            "voter_ids": voters,
            "complete": bool(participant_count) and len(voters) >= participant_count,
        }

    def round_results(
        self, session: VotingSession, round_number: Optional[int] = None
    ) -> Dict[str, Any]:
        """Per-idea tallies for a round, defaulting to the current one."""
        target = session.current_round if round_number is None else round_number
        if target < 1 or str(target) not in (session.ballot_history or {}):
            raise HTTPException(status_code=404, detail="Round not found.")
        idea_ids = self._ballot_for_round(session, target)
        counts = self._count_votes(session.session_id, target, idea_ids)
        snapshots = self._snapshots(session.session_id, idea_ids, counts)
        return {
            "session_id": session.session_id,
            "round": target,
            "results": [
                {
                    "idea_id": snapshot.idea_id,
                    "content": snapshot.content,
                    "author_id": snapshot.author_id,
                    "votes": snapshot.vote_count,
                }
                for snapshot in snapshots
            ],
        }

    def cast_ballot(
        self, session: VotingSession, user: User, idea_ids: Sequence[int]
    ) -> Tuple[int, Optional[RoundCloseResult]]:
        """
        Record one participant's ballot for the current round.

        Returns the round voted in and, when this ballot was the last one
        missing, the result of closing that round.
        """
        if not is_voting_open(session.status):
            raise HTTPException(status_code=400, detail="Voting is not open.")
        if not self._is_participant(session, user):
            raise HTTPException(
                status_code=403, detail="You are not a participant of this session."
            )

        picks = [int(idea_id) for idea_id in idea_ids]
        if len(set(picks)) != len(picks):
            raise HTTPException(
                status_code=400,
                detail="Each idea can only be picked once per ballot.",
            )
        required = session.votes_per_ballot
        if len(picks) != required:
            raise HTTPException(
                status_code=400,
                detail=f"Pick exactly {required} idea(s) on this ballot.",
            )
        ballot_ids = set(self.ballot_idea_ids(session))
        off_ballot = [idea_id for idea_id in picks if idea_id not in ballot_ids]
        if off_ballot:
            raise HTTPException(
                status_code=400,
                detail=f"Idea(s) {off_ballot} are not on the current ballot.",
            )
        if self.has_voted(session, user):
            raise HTTPException(
                status_code=409, detail="You have already voted in this round."
            )

        round_number = session.current_round
        for idea_id in picks:
            self.db.add(
                VoteRecord(
                    session_id=session.session_id,
                    voter_id=user.user_id,
                    idea_id=idea_id,
                    round=round_number,
                )
            )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=409, detail="You have already voted in this round."
            )
        logger.info(
            f"{user.user_id} voted {picks} in round {round_number} of {session.session_id}"
        )

        self.db.refresh(session)
        if len(self.voter_ids(session)) >= len(session.participants or []):
            return round_number, self.close_round(session, round_number)
        return round_number, None

    def close_round(
        self, session: VotingSession, round_number: int
    ) -> RoundCloseResult:
        """
        Resolve ``round_number`` and persist the next state.

        Closing a round the session has already moved past, or closing a
        session that is not voting, changes nothing and returns the current
        state. A resolution error leaves the round open.
        """
        if session.current_round != round_number or not is_voting_open(
            session.status
        ):
            logger.info(
                f"Round {round_number} of {session.session_id} is already closed"
            )
            return RoundCloseResult(
                closed_round=round_number,
                changed=False,
                outcome=None,
                state=self.round_state(session),
            )

        state = self.round_state(session)
        outcome = resolve_round(state.candidate_ideas, locked=state.locked_ideas)
        try:
            next_state = apply_outcome(state, outcome)
        except SessionStateError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        if isinstance(outcome, ResolutionError):
            logger.warning(
                f"Round {round_number} of {session.session_id} left open: {outcome.reason}"
            )
            return RoundCloseResult(
                closed_round=round_number,
                changed=False,
                outcome=outcome,
                state=state,
            )

        self._persist(session, next_state, outcome)
        self.db.commit()
        self.db.refresh(session)
        logger.info(
            f"Closed round {round_number} of {session.session_id}: {outcome.action}"
        )
        return RoundCloseResult(
            closed_round=round_number,
            changed=True,
            outcome=outcome,
            state=next_state,
        )

    def _persist(
        self,
        session: VotingSession,
        next_state: RoundState,
        outcome: ResolutionOutcome,
    ) -> None:
        session.status = next_state.status.value
        session.current_round = next_state.round
        session.locked_idea_ids = [idea.idea_id for idea in next_state.locked_ideas]
        session.candidate_idea_ids = [
            idea.idea_id for idea in next_state.candidate_ideas
        ]
        if isinstance(outcome, Finalize):
            session.winner_idea_ids = [idea.idea_id for idea in next_state.winners]
            session.votes_per_ballot = 0
            session.finished_at = datetime.now(timezone.utc)
        elif isinstance(outcome, NewRound):
            session.votes_per_ballot = votes_per_ballot(
                len(next_state.candidate_ideas), next_state.open_seats
            )
            history = dict(session.ballot_history or {})
            history[str(next_state.round)] = list(session.candidate_idea_ids)
            session.ballot_history = history

    def session_snapshot(self, session: VotingSession) -> Dict[str, Any]:
        """JSON-friendly view of a session pushed to real-time clients."""
        snapshot: Dict[str, Any] = {
            "sessionId": session.session_id,
            "code": session.code,
            "ownerId": session.owner_id,
            "status": coerce_status(session.status).value,
            "round": session.current_round,
            "votesPerBallot": session.votes_per_ballot,
            "participants": [
                {"userId": p.user_id, "displayName": p.display_name}
                for p in session.participants or []
            ],
        }
        if coerce_status(session.status) in (
            SessionStatus.VOTING,
            SessionStatus.REVOTING,
            SessionStatus.FINISHED,
        ):
            snapshot["roundState"] = self.round_state(session).to_payload()
        return snapshot


def get_voting_manager(db: Session = Depends(get_db)) -> VotingManager:
    """Dependency provider for VotingManager."""
    return VotingManager(db=db)
