from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.user import ParticipantSummary
from app.services.session_lifecycle import SessionStatus


class JoinSessionRequest(BaseModel):
    code: str = Field(..., min_length=4, max_length=16, json_schema_extra={"example": "K7QX2M"})


class SessionResponse(BaseModel):
    session_id: str
    code: str
    owner_id: str
    status: SessionStatus
    current_round: int
    votes_per_ballot: int
    locked_idea_ids: List[int] = Field(default_factory=list)
    candidate_idea_ids: List[int] = Field(default_factory=list)
    winner_idea_ids: List[int] = Field(default_factory=list)
    participants: List[ParticipantSummary] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionSummary(BaseModel):
    session_id: str
    code: str
    owner_id: str
    status: SessionStatus
    current_round: int

    model_config = ConfigDict(from_attributes=True)
