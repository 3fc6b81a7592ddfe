from .user import LoginRequest, ParticipantSummary, UserResponse
from .session import JoinSessionRequest, SessionResponse, SessionSummary
from .idea import IdeaCreate, IdeaResponse, IdeaSubmissionResponse
from .voting import (
    BallotReceipt,
    BallotRequest,
    CloseRoundResponse,
    IdeaTally,
    MyVoteResponse,
    RoundResultsResponse,
    VoteStatusResponse,
)

__all__ = [
    "LoginRequest",
    "ParticipantSummary",
    "UserResponse",
    "JoinSessionRequest",
    "SessionResponse",
    "SessionSummary",
    "IdeaCreate",
    "IdeaResponse",
    "IdeaSubmissionResponse",
    "BallotReceipt",
    "BallotRequest",
    "CloseRoundResponse",
    "IdeaTally",
    "MyVoteResponse",
    "RoundResultsResponse",
    "VoteStatusResponse",
]
