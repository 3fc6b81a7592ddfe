from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    func,
)
from sqlalchemy.orm import relationship

from app.database import Base
from app.services.session_lifecycle import SessionStatus

session_participants_table = Table(
    "session_participants",
    Base.metadata,
    Column(
        "session_id",
        String(20),
        ForeignKey("sessions.session_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        String(20),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("joined_at", DateTime(timezone=True), server_default=func.now()),
)


class VotingSession(Base):
    __tablename__ = "sessions"

    session_id = Column(String(20), primary_key=True, index=True)
    code = Column(String(12), unique=True, index=True, nullable=False)
    owner_id = Column(
        String(20),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(32), nullable=False, default=SessionStatus.WAITING.value)
    current_round = Column(Integer, nullable=False, default=1)
    votes_per_ballot = Column(Integer, nullable=False, default=0)
    # Idea ids, ordered: locked only grows, candidates are the current ballot
    # once a tie-break round is open, winners are set on FINISHED.
    locked_idea_ids = Column(JSON, nullable=False, default=list)
    candidate_idea_ids = Column(JSON, nullable=False, default=list)
    winner_idea_ids = Column(JSON, nullable=False, default=list)
    # {"<round>": [idea ids on that ballot]}
    ballot_history = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    finished_at = Column(DateTime(timezone=True), nullable=True)

    owner = relationship(
        "User", back_populates="owned_sessions", foreign_keys=[owner_id]
    )
    participants = relationship(
        "User",
        secondary=session_participants_table,
        back_populates="sessions",
        order_by=session_participants_table.c.joined_at,
    )
    ideas = relationship(
        "Idea",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Idea.id",
    )
    votes = relationship(
        "VoteRecord",
        back_populates="session",
        cascade="all, delete-orphan",
    )
