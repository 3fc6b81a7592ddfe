from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class BallotRequest(BaseModel):
    idea_ids: List[int] = Field(..., min_length=1, max_length=3)

    @field_validator("idea_ids")
    @classmethod
    def ids_must_be_distinct(cls, value: List[int]) -> List[int]:
        if len(set(value)) != len(value):
            raise ValueError("Each idea can only be picked once per ballot.")
        return value


class IdeaTally(BaseModel):
    idea_id: int
    content: str
    author_id: Optional[str] = None
    votes: int = 0


class VoteStatusResponse(BaseModel):
    session_id: str
    status: str
    round: int
    votes_per_ballot: int
    participant_count: int
    ballots_cast: int
    voter_ids: List[str] = Field(default_factory=list)
    complete: bool = False


class RoundResultsResponse(BaseModel):
    session_id: str
    round: int
    results: List[IdeaTally] = Field(default_factory=list)


class BallotReceipt(BaseModel):
    session_id: str
    round: int
    idea_ids: List[int]
    round_closed: bool = False
    outcome: Optional[Dict[str, Any]] = None


class MyVoteResponse(BaseModel):
    session_id: str
    round: int
    has_voted: bool
    idea_ids: List[int] = Field(default_factory=list)


class CloseRoundResponse(BaseModel):
    session_id: str
    closed_round: int
    changed: bool
    outcome: Optional[Dict[str, Any]] = None
    state: Dict[str, Any] = Field(default_factory=dict)
