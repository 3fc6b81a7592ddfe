# Import models to make them accessible via app.models
# and ensure they are registered with SQLAlchemy's Base metadata
from .user import User
from .voting_session import VotingSession, session_participants_table
from .idea import Idea
from .vote import VoteRecord

__all__ = [
    "User",
    "VotingSession",
    "session_participants_table",
    "Idea",
    "VoteRecord",
]
