import logging
from typing import List, Optional, Tuple

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..config.loader import get_session_settings
from ..database import get_db
from ..models.idea import Idea
from ..models.user import User
from ..models.voting_session import VotingSession
from ..services.round_transition import votes_per_ballot
from ..services.session_lifecycle import (
    SessionStateError,
    SessionStatus,
    coerce_status,
    validate_transition,
)
from ..utils.identifiers import (
    generate_join_code,
    generate_session_id,
    normalize_join_code,
)

logger = logging.getLogger(__name__)

MIN_IDEAS_FOR_VOTING = 3


def move_session_to(session: VotingSession, target: SessionStatus) -> SessionStatus:
    """Set the session status along a legal lifecycle edge, 400 otherwise."""
    try:
        new_status = validate_transition(session.status, target)
    except SessionStateError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    session.status = new_status.value
    return new_status


class SessionManager:
    """Manages voting sessions and their participants using SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def get_session(self, session_id: str) -> Optional[VotingSession]:
        return (
            self.db.query(VotingSession)
            .options(
                joinedload(VotingSession.participants),
                joinedload(VotingSession.owner),
            )
            .filter(VotingSession.session_id == session_id)
            .first()
        )

    def require_session(self, session_id: str) -> VotingSession:
        session = self.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    @staticmethod
    def is_participant(session: VotingSession, user: User) -> bool:
        return any(p.user_id == user.user_id for p in session.participants or [])

    def require_participant(self, session_id: str, user: User) -> VotingSession:
        session = self.require_session(session_id)
        if not self.is_participant(session, user):
            raise HTTPException(
                status_code=403, detail="You are not a participant of this session."
            )
        return session

    def require_owner(self, session_id: str, user: User) -> VotingSession:
        session = self.require_session(session_id)
        if session.owner_id != user.user_id:
            raise HTTPException(
                status_code=403,
                detail="Only the session owner can perform this action.",
            )
        return session

    def list_sessions_for_user(self, user: User) -> List[VotingSession]:
        return (
            self.db.query(VotingSession)
            .join(VotingSession.participants)
            .filter(User.user_id == user.user_id)
            .order_by(VotingSession.created_at.desc(), VotingSession.session_id.desc())
            .all()
        )

    def create_session(self, owner: User) -> VotingSession:
        """Create a WAITING session owned by ``owner``, who joins it straight away."""
        settings = get_session_settings()
        try:
            db_session = VotingSession(
                session_id=generate_session_id(self.db),
                code=generate_join_code(self.db, settings["join_code_length"]),
                owner_id=owner.user_id,
                status=SessionStatus.WAITING.value,
                current_round=1,
                votes_per_ballot=0,
                locked_idea_ids=[],
                candidate_idea_ids=[],
                winner_idea_ids=[],
                ballot_history={},
            )
            db_session.participants.append(owner)
            self.db.add(db_session)
            self.db.commit()
            self.db.refresh(db_session)
        except SQLAlchemyError as e:
            logger.error(f"Database error creating session for {owner.user_id}: {e}")
            self.db.rollback()
            raise HTTPException(
                status_code=500,
                detail="Could not create session due to a database error.",
            )
        logger.info(
            f"Created session {db_session.session_id} (code {db_session.code}) for {owner.user_id}"
        )
        return db_session

    def join_session_by_code(
        self, code: str, user: User
    ) -> Tuple[VotingSession, bool]:
        """Add ``user`` to the session behind ``code``; returns (session, newly_joined)."""
        clean_code = normalize_join_code(code)
        session = (
            self.db.query(VotingSession)
            .options(joinedload(VotingSession.participants))
            .filter(VotingSession.code == clean_code)
            .one_or_none()
        )
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")

        if self.is_participant(session, user):
            return session, False
        if coerce_status(session.status) != SessionStatus.WAITING:
            raise HTTPException(
                status_code=400,
                detail="This session has already started and cannot be joined.",
            )
        session.participants.append(user)
        self.db.commit()
        self.db.refresh(session)
        logger.info(f"{user.user_id} joined session {session.session_id}")
        return session, True

    def start_session(self, session_id: str, user: User) -> VotingSession:
        session = self.require_owner(session_id, user)
        min_participants = get_session_settings()["min_participants"]
        if len(session.participants) < min_participants:
            raise HTTPException(
                status_code=400,
                detail=f"At least {min_participants} participants are needed to start.",
            )
        move_session_to(session, SessionStatus.COLLECTING_IDEAS)
        self.db.commit()
        self.db.refresh(session)
        logger.info(f"Session {session.session_id} is collecting ideas")
        return session

    def start_voting(self, session_id: str, user: User) -> VotingSession:
        """Open round one with every submitted idea on the ballot."""
        session = self.require_owner(session_id, user)
        idea_ids = [
            idea_id
            for (idea_id,) in self.db.query(Idea.id)
            .filter(Idea.session_id == session.session_id)
            .order_by(Idea.id)
            .all()
        ]
        if coerce_status(session.status) == SessionStatus.COLLECTING_IDEAS and len(
            idea_ids
        ) < MIN_IDEAS_FOR_VOTING:
            raise HTTPException(
                status_code=400,
                detail=f"At least {MIN_IDEAS_FOR_VOTING} ideas are needed to start voting.",
            )
        move_session_to(session, SessionStatus.VOTING)
        session.current_round = 1
        session.locked_idea_ids = []
        session.candidate_idea_ids = idea_ids
        session.winner_idea_ids = []
        session.ballot_history = {"1": idea_ids}
        session.votes_per_ballot = votes_per_ballot(len(idea_ids))
        self.db.commit()
        self.db.refresh(session)
        logger.info(
            f"Voting opened for session {session.session_id} with {len(idea_ids)} ideas"
        )
        return session

    def delete_session(self, session_id: str, user: User) -> None:
        session = self.require_owner(session_id, user)
        self.db.delete(session)
        self.db.commit()
        logger.info(f"Session {session_id} deleted by {user.user_id}")


def get_session_manager(db: Session = Depends(get_db)) -> SessionManager:
    """Dependency provider for SessionManager."""
    return SessionManager(db=db)
