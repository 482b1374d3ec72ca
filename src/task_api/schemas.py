from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TaskStatus


def _strip_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
class AuthCredentials(BaseModel):
    """
    Schema for sign-up and sign-in requests.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "correct-horse"}}
    )

    username: str = Field(..., description="Unique login name", min_length=4, max_length=20)
    password: str = Field(..., description="Plaintext password", min_length=8, max_length=32)


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """
    Public view of a registered user. Never carries the password hash.
    """

    id: str = Field(..., description="Unique identifier of the user")
    username: str = Field(..., description="Login name")


# PUBLIC_INTERFACE
class AccessToken(BaseModel):
    """
    Sign-in response carrying the signed access token.
    """

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken", description="Signed JWT for the Authorization header")


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy groceries", "description": "Milk, eggs, bread"}}
    )

    title: str = Field(..., description="Short title for the task", min_length=1, max_length=200)
    description: str = Field(default="", description="Detailed description", max_length=2000)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _strip_title(v)  # type: ignore[return-value]


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for editing a task's text.
    All fields are optional; only provided fields will be updated.
    """

    title: Optional[str] = Field(default=None, description="Short title for the task", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Detailed description", max_length=2000)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        return _strip_title(v)


# PUBLIC_INTERFACE
class TaskStatusUpdate(BaseModel):
    """
    Schema for changing a task's status.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"status": "IN_PROGRESS"}})

    status: TaskStatus = Field(..., description="New status: OPEN, IN_PROGRESS or DONE")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task. The owner is deliberately omitted.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5f0c1c9e-2b7a-4a36-9d0f-1f4b0c6f8a21",
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "OPEN",
                "created_at": "2025-01-25T10:15:30.123456+00:00",
                "updated_at": "2025-01-26T09:00:00.000001+00:00",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: str = Field(..., description="Detailed description")
    status: TaskStatus = Field(..., description="Current status")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
