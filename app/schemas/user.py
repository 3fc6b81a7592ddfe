from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoginRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, json_schema_extra={"example": "Alice"})

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class UserResponse(BaseModel):
    user_id: str
    display_name: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ParticipantSummary(BaseModel):
    user_id: str
    display_name: str

    model_config = ConfigDict(from_attributes=True)
