from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class IdeaCreate(BaseModel):
    content: str = Field(..., min_length=1)


class IdeaResponse(BaseModel):
    id: int
    session_id: str
    author_id: Optional[str] = None
    content: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class IdeaSubmissionResponse(IdeaResponse):
    ideas_remaining: int = 0
