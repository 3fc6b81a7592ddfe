from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base


def generate_vote_id() -> str:
    return str(uuid4())


class VoteRecord(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint(
            "session_id", "voter_id", "idea_id", "round", name="uq_votes_voter_idea_round"
        ),
    )

    vote_id = Column(String(36), primary_key=True, default=generate_vote_id)
    session_id = Column(
        String(20),
        ForeignKey("sessions.session_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    voter_id = Column(
        String(20),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    idea_id = Column(
        Integer,
        ForeignKey("ideas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    round = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("VotingSession", back_populates="votes")
    idea = relationship("Idea")
