import logging
import sqlite3

import pytest

from task_api.db import SQLiteTaskRepository, SQLiteUserRepository
from task_api.errors import ConflictError, InternalError, NotFoundError
from task_api.models import TaskStatus
from task_api.repositories import (
    InMemoryTaskRepository,
    InMemoryUserRepository,
    TaskListQuery,
    get_repositories,
)
from task_api.settings import Settings


@pytest.fixture(params=["memory", "sqlite"])
def users(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteUserRepository(str(tmp_path / "tasks.db"))
    return InMemoryUserRepository()


@pytest.fixture(params=["memory", "sqlite"])
def tasks(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteTaskRepository(str(tmp_path / "tasks.db"))
    return InMemoryTaskRepository()


def ids(items):
    return {t["id"] for t in items}


class TestUserRepository:
    def test_insert_and_find(self, users):
        created = users.insert("alice", "hash")
        found = users.find_by_username("alice")
        assert found["id"] == created["id"]
        assert found["password_hash"] == "hash"

    def test_find_miss_returns_none(self, users):
        assert users.find_by_username("ghost") is None

    def test_lookup_is_case_sensitive(self, users):
        users.insert("alice", "hash")
        assert users.find_by_username("ALICE") is None

    def test_duplicate_insert_conflicts(self, users):
        users.insert("alice", "hash")
        with pytest.raises(ConflictError, match="Username already exists"):
            users.insert("alice", "other-hash")
        assert users.find_by_username("alice")["password_hash"] == "hash"


class TestTaskRepository:
    def test_insert_defaults(self, tasks):
        task = tasks.insert("buy milk", "", "owner-a")
        assert task["status"] == TaskStatus.OPEN
        assert task["owner_id"] == "owner-a"
        assert task["id"]

    def test_find_one_is_owner_scoped(self, tasks):
        task = tasks.insert("buy milk", "", "owner-a")
        assert tasks.find_one(task["id"], "owner-a")["title"] == "buy milk"
        assert tasks.find_one(task["id"], "owner-b") is None
        assert tasks.find_one("missing", "owner-a") is None

    def test_query_filter_composition(self, tasks):
        t1 = tasks.insert("buy milk", "", "owner-a")
        t2 = tasks.insert("buy bread", "", "owner-a")
        t2["status"] = TaskStatus.DONE
        tasks.update(t2)
        tasks.insert("buy eggs", "", "owner-b")

        assert ids(tasks.query("owner-a")) == {t1["id"], t2["id"]}
        assert ids(tasks.query("owner-a", TaskListQuery(status=TaskStatus.OPEN))) == {t1["id"]}
        assert ids(tasks.query("owner-a", TaskListQuery(search="buy"))) == {t1["id"], t2["id"]}
        assert ids(tasks.query("owner-a", TaskListQuery(status=TaskStatus.OPEN, search="bread"))) == set()

    def test_search_matches_description_case_insensitively(self, tasks):
        t = tasks.insert("groceries", "Get MILK and eggs", "owner-a")
        tasks.insert("laundry", "whites", "owner-a")
        assert ids(tasks.query("owner-a", TaskListQuery(search="milk"))) == {t["id"]}

    def test_search_folds_non_ascii_case(self, tasks):
        cafe = tasks.insert("CAFÉ order", "", "owner-a")
        cake = tasks.insert("errands", "Pick up the ÉCLAIRS", "owner-a")
        tasks.insert("cafe without accent", "", "owner-a")
        assert ids(tasks.query("owner-a", TaskListQuery(search="café"))) == {cafe["id"]}
        assert ids(tasks.query("owner-a", TaskListQuery(search="éclair"))) == {cake["id"]}

    def test_search_wildcards_are_literal(self, tasks):
        pct = tasks.insert("100% done", "", "owner-a")
        tasks.insert("100 done", "", "owner-a")
        under = tasks.insert("snake_case", "", "owner-a")
        tasks.insert("snakeXcase", "", "owner-a")
        assert ids(tasks.query("owner-a", TaskListQuery(search="%"))) == {pct["id"]}
        assert ids(tasks.query("owner-a", TaskListQuery(search="e_c"))) == {under["id"]}

    def test_query_is_in_creation_order(self, tasks):
        created = [tasks.insert(f"task {i}", "", "owner-a")["id"] for i in range(5)]
        assert [t["id"] for t in tasks.query("owner-a")] == created

    def test_update_persists_state(self, tasks):
        task = tasks.insert("old", "", "owner-a")
        task["title"] = "new"
        task["status"] = TaskStatus.IN_PROGRESS
        tasks.update(task)
        stored = tasks.find_one(task["id"], "owner-a")
        assert stored["title"] == "new"
        assert stored["status"] == TaskStatus.IN_PROGRESS
        assert stored["updated_at"] >= stored["created_at"]

    def test_update_missing_task(self, tasks):
        task = tasks.insert("old", "", "owner-a")
        tasks.delete(task["id"], "owner-a")
        with pytest.raises(NotFoundError):
            tasks.update(task)

    def test_update_cannot_reassign_owner(self, tasks):
        task = tasks.insert("mine", "", "owner-a")
        task["owner_id"] = "owner-b"
        with pytest.raises(NotFoundError):
            tasks.update(task)
        assert tasks.find_one(task["id"], "owner-a") is not None

    def test_delete_is_owner_scoped(self, tasks):
        task = tasks.insert("mine", "", "owner-a")
        with pytest.raises(NotFoundError, match=task["id"]):
            tasks.delete(task["id"], "owner-b")
        tasks.delete(task["id"], "owner-a")
        assert tasks.query("owner-a") == []
        with pytest.raises(NotFoundError):
            tasks.delete(task["id"], "owner-a")

    def test_returned_records_are_copies(self, tasks):
        task = tasks.insert("original", "", "owner-a")
        task["title"] = "mutated"
        assert tasks.find_one(task["id"], "owner-a")["title"] == "original"


class TestSQLiteFailures:
    def test_broken_store_raises_internal_error_and_logs(self, tmp_path, caplog):
        path = str(tmp_path / "tasks.db")
        repo = SQLiteTaskRepository(path)
        conn = sqlite3.connect(path)
        conn.execute("DROP TABLE tasks")
        conn.commit()
        conn.close()

        with caplog.at_level(logging.ERROR, logger="task_api"):
            with pytest.raises(InternalError) as exc:
                repo.query("owner-a")
        assert exc.value.message == "Failed to get tasks"
        assert "no such table" not in exc.value.message
        assert "get tasks" in caplog.text


class TestFactory:
    def test_memory_backend(self):
        users, tasks = get_repositories(Settings())
        assert isinstance(users, InMemoryUserRepository)
        assert isinstance(tasks, InMemoryTaskRepository)

    def test_sqlite_backend_shares_one_file(self, tmp_path):
        settings = Settings(persistence_backend="sqlite", sqlite_db_path=str(tmp_path / "db" / "tasks.db"))
        users, tasks = get_repositories(settings)
        assert isinstance(users, SQLiteUserRepository)
        assert isinstance(tasks, SQLiteTaskRepository)
        user = users.insert("alice", "hash")
        tasks.insert("t", "", user["id"])
        assert (tmp_path / "db" / "tasks.db").exists()
        assert len(tasks.query(user["id"])) == 1
