from sqlalchemy import Boolean, Column, DateTime, String, func
from sqlalchemy.orm import relationship

from app.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(20), primary_key=True, index=True)
    display_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_active_at = Column(DateTime(timezone=True), nullable=True)

    # Sessions this user created
    owned_sessions = relationship(
        "VotingSession",
        back_populates="owner",
        foreign_keys="VotingSession.owner_id",
    )

    # Sessions this user joined (the owner is also a participant)
    sessions = relationship(
        "VotingSession",
        secondary="session_participants",
        back_populates="participants",
    )
