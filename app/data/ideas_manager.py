import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from ..config.loader import get_idea_limits
from ..models.idea import Idea

logger = logging.getLogger(__name__)


def idea_quota_for_group(participant_count: int) -> int:
    """Ideas each participant may submit: fewer people, more ideas each."""
    limits = get_idea_limits()
    if participant_count <= 2:
        return limits["small_group_quota"]
    if participant_count <= 4:
        return limits["medium_group_quota"]
    return limits["large_group_quota"]


class IdeasManager:
    """Manages session ideas using SQLAlchemy."""

    def add_idea(
        self,
        db: Session,
        session_id: str,
        author_id: Optional[str],
        content: str,
        *,
        commit: bool = True,
    ) -> Idea:
        """Add a new idea to a session and return it."""
        db_idea = Idea(
            content=content.strip(),
            session_id=session_id,
            author_id=author_id,
        )
        db.add(db_idea)
        if commit:
            db.commit()
        else:
            db.flush()
        db.refresh(db_idea)
        logger.info(f"Added idea {db_idea.id} to session {session_id}")
        return db_idea

    def get_ideas_for_session(self, db: Session, session_id: str) -> List[Idea]:
        """Get all ideas for a session in submission order."""
        return (
            db.query(Idea)
            .options(joinedload(Idea.author))
            .filter(Idea.session_id == session_id)
            .order_by(Idea.id)
            .all()
        )

    def get_ideas_by_ids(
        self, db: Session, session_id: str, idea_ids: Sequence[int]
    ) -> List[Idea]:
        """Ideas of the session whose ids are in ``idea_ids``, in the order given."""
        if not idea_ids:
            return []
        found = {
            idea.id: idea
            for idea in db.query(Idea)
            .filter(Idea.session_id == session_id, Idea.id.in_(list(idea_ids)))
            .all()
        }
        return [found[idea_id] for idea_id in idea_ids if idea_id in found]

    def count_ideas_for_user(self, db: Session, session_id: str, user_id: str) -> int:
        """Count how many ideas a user has submitted to a session."""
        return (
            db.query(Idea)
            .filter(Idea.session_id == session_id, Idea.author_id == user_id)
            .count()
        )

    def get_idea(self, db: Session, idea_id: int) -> Optional[Idea]:
        return db.query(Idea).filter(Idea.id == idea_id).first()
