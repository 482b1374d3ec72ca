from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """Lifecycle state of a task. Any state may be set from any other."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A registered user as held by the credential stores.

    Fields:
    - id: Opaque uuid4 string
    - username: Unique login identity (case-sensitive)
    - password_hash: bcrypt hash; the plaintext is never stored
    - created_at: Registration timestamp (UTC)
    """

    id: str
    username: str
    password_hash: str
    created_at: datetime


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A task record owned by exactly one user.

    Fields:
    - id: Opaque uuid4 string assigned on insert
    - title: Non-empty short title
    - description: Free text, may be empty
    - status: One of TaskStatus
    - owner_id: id of the owning user, fixed at creation
    - created_at: Creation timestamp (UTC)
    - updated_at: Last update timestamp (UTC)
    """

    id: str
    title: str
    description: str
    status: TaskStatus
    owner_id: str
    created_at: datetime
    updated_at: datetime
