from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Iterator, List, Optional, Tuple

from .errors import ConflictError, NotFoundError
from .models import TaskEntity, TaskStatus, UserEntity
from .settings import Settings


@dataclass(frozen=True)
class TaskListQuery:
    """
    Optional filters for listing a user's tasks. Filters are combined with AND.
    """
    status: Optional[TaskStatus] = None
    search: Optional[str] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def task_not_found(task_id: str) -> NotFoundError:
    return NotFoundError(f'Task with ID "{task_id}" not found')


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract credential store."""

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[UserEntity]:
        """Return the user with exactly this username, or None."""

    @abstractmethod
    def insert(self, username: str, password_hash: str) -> UserEntity:
        """Create a user. Raise ConflictError if the username is taken."""


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract task store. Every method takes the owner explicitly; there is no
    way to read or write a task without naming whose it is.
    """

    @abstractmethod
    def insert(self, title: str, description: str, owner_id: str) -> TaskEntity:
        """Create and return a new OPEN task for owner_id."""

    @abstractmethod
    def find_one(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        """Return the task if it exists and belongs to owner_id, else None."""

    @abstractmethod
    def query(self, owner_id: str, query: Optional[TaskListQuery] = None) -> List[TaskEntity]:
        """
        Return owner_id's tasks in creation order.
        - Filter by exact status
        - Case-insensitive substring search across title and description
        """

    @abstractmethod
    def update(self, task: TaskEntity) -> TaskEntity:
        """Persist title, description and status. Raise NotFoundError if gone."""

    @abstractmethod
    def delete(self, task_id: str, owner_id: str) -> None:
        """Delete one owned task. Raise NotFoundError if there is none."""


class InMemoryUserRepository(UserRepository):
    """
    Thread-safe in-memory credential store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._by_username: dict[str, UserEntity] = {}

    def find_by_username(self, username: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._by_username.get(username)
            return None if user is None else user.copy()

    def insert(self, username: str, password_hash: str) -> UserEntity:
        user: UserEntity = {
            "id": _new_id(),
            "username": username,
            "password_hash": password_hash,
            "created_at": _now(),
        }
        with self._lock:
            if username in self._by_username:
                raise ConflictError("Username already exists")
            self._by_username[username] = user
        return user.copy()


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory task store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        # dicts keep insertion order, which is creation order here
        self._items: dict[str, TaskEntity] = {}

    @staticmethod
    def _owns(task: TaskEntity, owner_id: str) -> bool:
        return task["owner_id"] == owner_id

    def _owned(self, owner_id: str) -> Iterator[Tuple[str, TaskEntity]]:
        # Caller must hold the lock.
        for task_id, task in self._items.items():
            if self._owns(task, owner_id):
                yield task_id, task

    def _owned_get(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        # Caller must hold the lock.
        task = self._items.get(task_id)
        return task if task is not None and self._owns(task, owner_id) else None

    def insert(self, title: str, description: str, owner_id: str) -> TaskEntity:
        now = _now()
        entity: TaskEntity = {
            "id": _new_id(),
            "title": title,
            "description": description,
            "status": TaskStatus.OPEN,
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def find_one(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        with self._lock:
            task = self._owned_get(task_id, owner_id)
            return task.copy() if task is not None else None

    def query(self, owner_id: str, query: Optional[TaskListQuery] = None) -> List[TaskEntity]:
        q = query or TaskListQuery()
        with self._lock:
            items = [t for _, t in self._owned(owner_id)]

            if q.status is not None:
                items = [t for t in items if t["status"] == q.status]

            if q.search:
                s = q.search.lower()
                items = [
                    t for t in items
                    if s in t["title"].lower() or s in (t["description"] or "").lower()
                ]

            # Return copies to avoid external mutation
            return [t.copy() for t in items]

    def update(self, task: TaskEntity) -> TaskEntity:
        with self._lock:
            existing = self._owned_get(task["id"], task["owner_id"])
            if existing is None:
                raise task_not_found(task["id"])
            updated = existing.copy()
            updated["title"] = task["title"]
            updated["description"] = task["description"]
            updated["status"] = TaskStatus(task["status"])
            updated["updated_at"] = _now()
            self._items[task["id"]] = updated
            return updated.copy()

    def delete(self, task_id: str, owner_id: str) -> None:
        with self._lock:
            if self._owned_get(task_id, owner_id) is None:
                raise task_not_found(task_id)
            del self._items[task_id]


# PUBLIC_INTERFACE
def get_repositories(settings: Settings) -> Tuple[UserRepository, TaskRepository]:
    """
    Factory returning the configured credential and task stores.
    - memory: InMemoryUserRepository / InMemoryTaskRepository
    - sqlite: SQLiteUserRepository / SQLiteTaskRepository sharing one database file
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskRepository, SQLiteUserRepository

        users = SQLiteUserRepository(settings.sqlite_db_path, timeout=settings.sqlite_timeout_seconds)
        tasks = SQLiteTaskRepository(settings.sqlite_db_path, timeout=settings.sqlite_timeout_seconds)
        return users, tasks
    return InMemoryUserRepository(), InMemoryTaskRepository()
