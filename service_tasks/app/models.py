"""
Request and response models for the Tasks service.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Task(BaseModel):
    """Task model."""
    id: str = Field(..., description="Unique task ID")
    description: str = Field(..., description="Task description")
    completed: bool = Field(default=False, description="Completion flag")
    user_id: Optional[str] = Field(None, description="Creator user ID")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class TaskCreate(BaseModel):
    """Payload for creating a task."""
    description: str = Field(..., min_length=1, max_length=255, description="Task description")
    completed: bool = Field(default=False, description="Completion flag")

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("description must not be blank")
        return value


class TaskUpdate(BaseModel):
    """Partial update of a task; omitted fields are left unchanged."""
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    completed: Optional[bool] = None

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("description must not be blank")
        return value


class User(BaseModel):
    """Identified user."""
    id: str
    username: str
    email: str
    created_at: datetime


class IdentifyRequest(BaseModel):
    """Password-less identification payload."""
    username: str = Field(..., min_length=3, max_length=30, description="Display name")
    email: str = Field(..., max_length=255, description="Email address")

    @field_validator("email")
    @classmethod
    def email_has_at(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("invalid email")
        return value.lower()


class IdentifyResponse(BaseModel):
    """Identification result with a freshly issued credential."""
    message: str
    user: User
    token: str
    token_type: str = "Bearer"
    expires_in: int
