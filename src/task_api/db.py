from __future__ import annotations

import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generator, List, Optional, Sequence, Tuple

from .errors import ConflictError, InternalError, StoreUnavailableError
from .models import TaskEntity, TaskStatus, UserEntity
from .repositories import TaskListQuery, TaskRepository, UserRepository, task_not_found

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    username: str = "username"
    password_hash: str = "password_hash"
    created_at: str = "created_at"


@dataclass(frozen=True)
class _TaskCols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    status: str = "status"
    owner_id: str = "owner_id"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_USERS = _UserCols()
_TASKS = _TaskCols()


def _py_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class _SQLiteStore:
    """
    Shared connection handling for the SQLite stores. Each operation opens its
    own connection, commits on success and closes it.
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._timeout = timeout
        self._init_db()

    @contextmanager
    def _conn(self, action: str) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout)
            conn.row_factory = sqlite3.Row
            # SQLite's LOWER() folds ASCII only.
            conn.create_function("py_lower", 1, _py_lower, deterministic=True)
            try:
                yield conn
                conn.commit()
            finally:
                conn.close()
        except sqlite3.IntegrityError:
            # Constraint violations carry meaning for the caller.
            raise
        except sqlite3.OperationalError as e:
            logger.exception("SQLite store unavailable while trying to %s", action)
            raise StoreUnavailableError(f"Failed to {action}") from e
        except sqlite3.Error as e:
            logger.exception("SQLite error while trying to %s", action)
            raise InternalError(f"Failed to {action}") from e

    def _init_db(self) -> None:
        with self._conn("initialize database") as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_USERS.table} (
                    {_USERS.id} TEXT PRIMARY KEY,
                    {_USERS.username} TEXT NOT NULL UNIQUE,
                    {_USERS.password_hash} TEXT NOT NULL,
                    {_USERS.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_TASKS.table} (
                    {_TASKS.id} TEXT PRIMARY KEY,
                    {_TASKS.title} TEXT NOT NULL,
                    {_TASKS.description} TEXT NOT NULL DEFAULT '',
                    {_TASKS.status} TEXT NOT NULL,
                    {_TASKS.owner_id} TEXT NOT NULL,
                    {_TASKS.created_at} TEXT NOT NULL,
                    {_TASKS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_TASKS.table}_owner ON {_TASKS.table}({_TASKS.owner_id})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_TASKS.table}_owner_status "
                f"ON {_TASKS.table}({_TASKS.owner_id}, {_TASKS.status})"
            )


class SQLiteUserRepository(_SQLiteStore, UserRepository):
    """
    SQLite credential store. The UNIQUE constraint on username decides races
    between concurrent registrations.
    """

    def _row_to_entity(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": str(row[_USERS.id]),
            "username": str(row[_USERS.username]),
            "password_hash": str(row[_USERS.password_hash]),
            "created_at": datetime.fromisoformat(row[_USERS.created_at]),
        }

    def find_by_username(self, username: str) -> Optional[UserEntity]:
        with self._conn("look up user") as conn:
            row = conn.execute(
                f"SELECT * FROM {_USERS.table} WHERE {_USERS.username} = ?", (username,)
            ).fetchone()
            return self._row_to_entity(row) if row else None

    def insert(self, username: str, password_hash: str) -> UserEntity:
        user: UserEntity = {
            "id": str(uuid.uuid4()),
            "username": username,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            with self._conn("create user") as conn:
                conn.execute(
                    f"""
                    INSERT INTO {_USERS.table} ({_USERS.id}, {_USERS.username},
                        {_USERS.password_hash}, {_USERS.created_at})
                    VALUES (?, ?, ?, ?)
                    """,
                    (user["id"], username, password_hash, user["created_at"].isoformat()),
                )
        except sqlite3.IntegrityError as e:
            raise ConflictError("Username already exists") from e
        return user


class SQLiteTaskRepository(_SQLiteStore, TaskRepository):
    """
    SQLite task store. All statements are built on _owned_where so the owner
    predicate cannot be left out.
    """

    @staticmethod
    def _owned_where(owner_id: str, *clauses: Tuple[str, Sequence[Any]]) -> Tuple[str, List[Any]]:
        parts = [f"{_TASKS.owner_id} = ?"]
        params: List[Any] = [owner_id]
        for sql, values in clauses:
            parts.append(sql)
            params.extend(values)
        return "WHERE " + " AND ".join(parts), params

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_TASKS.id]),
            "title": str(row[_TASKS.title]),
            "description": str(row[_TASKS.description] or ""),
            "status": TaskStatus(row[_TASKS.status]),
            "owner_id": str(row[_TASKS.owner_id]),
            "created_at": datetime.fromisoformat(row[_TASKS.created_at]),
            "updated_at": datetime.fromisoformat(row[_TASKS.updated_at]),
        }

    def _select_one(self, conn: sqlite3.Connection, task_id: str, owner_id: str) -> Optional[sqlite3.Row]:
        where_sql, params = self._owned_where(owner_id, (f"{_TASKS.id} = ?", [task_id]))
        return conn.execute(f"SELECT * FROM {_TASKS.table} {where_sql}", params).fetchone()

    def insert(self, title: str, description: str, owner_id: str) -> TaskEntity:
        task_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        with self._conn("create task") as conn:
            conn.execute(
                f"""
                INSERT INTO {_TASKS.table} ({_TASKS.id}, {_TASKS.title}, {_TASKS.description},
                    {_TASKS.status}, {_TASKS.owner_id}, {_TASKS.created_at}, {_TASKS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (task_id, title, description, TaskStatus.OPEN.value, owner_id, now, now),
            )
            row = self._select_one(conn, task_id, owner_id)
            assert row is not None
            return self._row_to_entity(row)

    def find_one(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        with self._conn("get task") as conn:
            row = self._select_one(conn, task_id, owner_id)
            return self._row_to_entity(row) if row else None

    def query(self, owner_id: str, query: Optional[TaskListQuery] = None) -> List[TaskEntity]:
        q = query or TaskListQuery()
        clauses: List[Tuple[str, Sequence[Any]]] = []

        if q.status is not None:
            clauses.append((f"{_TASKS.status} = ?", [TaskStatus(q.status).value]))

        if q.search:
            like = f"%{_escape_like(q.search.lower())}%"
            clauses.append(
                (
                    f"(py_lower({_TASKS.title}) LIKE ? ESCAPE '\\' "
                    f"OR py_lower({_TASKS.description}) LIKE ? ESCAPE '\\')",
                    [like, like],
                )
            )

        where_sql, params = self._owned_where(owner_id, *clauses)
        logger.debug('Owner "%s" retrieving tasks (status=%s, search=%r)', owner_id, q.status, q.search)
        with self._conn("get tasks") as conn:
            rows = conn.execute(
                f"SELECT * FROM {_TASKS.table} {where_sql} ORDER BY rowid", params
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def update(self, task: TaskEntity) -> TaskEntity:
        where_sql, params = self._owned_where(task["owner_id"], (f"{_TASKS.id} = ?", [task["id"]]))
        with self._conn("update task") as conn:
            cur = conn.execute(
                f"""
                UPDATE {_TASKS.table}
                SET {_TASKS.title} = ?, {_TASKS.description} = ?, {_TASKS.status} = ?,
                    {_TASKS.updated_at} = ?
                {where_sql}
                """,
                [
                    task["title"],
                    task["description"],
                    TaskStatus(task["status"]).value,
                    datetime.now(timezone.utc).isoformat(),
                    *params,
                ],
            )
            if cur.rowcount == 0:
                raise task_not_found(task["id"])
            row = self._select_one(conn, task["id"], task["owner_id"])
            assert row is not None
            return self._row_to_entity(row)

    def delete(self, task_id: str, owner_id: str) -> None:
        where_sql, params = self._owned_where(owner_id, (f"{_TASKS.id} = ?", [task_id]))
        with self._conn("delete task") as conn:
            cur = conn.execute(f"DELETE FROM {_TASKS.table} {where_sql}", params)
            if cur.rowcount == 0:
                raise task_not_found(task_id)
