from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from task_api.auth_service import AuthService
from task_api.main import create_app
from task_api.models import UserEntity
from task_api.repositories import InMemoryTaskRepository, InMemoryUserRepository
from task_api.security import BcryptPasswordHasher
from task_api.settings import Settings
from task_api.task_service import TaskService
from task_api.tokens import TokenSigner

TEST_SECRET = "test-signing-secret-at-least-32-bytes"


@pytest.fixture()
def settings() -> Settings:
    # Minimum bcrypt cost keeps hashing fast in tests.
    return Settings(stage="test", jwt_secret=TEST_SECRET, bcrypt_rounds=4, log_level="DEBUG")


@pytest.fixture()
def hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture()
def signer() -> TokenSigner:
    return TokenSigner(TEST_SECRET, expires_in=timedelta(minutes=5))


@pytest.fixture()
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def auth_service(user_repo, hasher, signer) -> AuthService:
    return AuthService(user_repo, hasher, signer)


@pytest.fixture()
def task_service(task_repo) -> TaskService:
    return TaskService(task_repo)


@pytest.fixture()
def alice(user_repo) -> UserEntity:
    return user_repo.insert("alice", "not-a-real-hash")


@pytest.fixture()
def bob(user_repo) -> UserEntity:
    return user_repo.insert("bob", "not-a-real-hash")


@pytest.fixture()
def client(settings) -> TestClient:
    return TestClient(create_app(settings))
