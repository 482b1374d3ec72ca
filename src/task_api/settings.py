from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

_STAGES = {"dev", "test", "prod"}
_BACKENDS = {"memory", "sqlite"}
_DEV_JWT_SECRET = "dev-only-insecure-secret"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - STAGE: 'dev' (default), 'test' or 'prod'
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - SQLITE_TIMEOUT_SECONDS: seconds to wait on a locked database. Default 5
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - JWT_SECRET: secret used to sign access tokens (required when STAGE=prod)
    - JWT_ALGORITHM: signing algorithm, 'HS256' by default
    - ACCESS_TOKEN_EXPIRE_MINUTES: access token lifetime. Default 60
    - BCRYPT_ROUNDS: bcrypt cost factor (4..31). Default 12
    - LOG_LEVEL: root log level name. Default 'INFO'
    """

    stage: str = "dev"
    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/tasks.db"
    sqlite_timeout_seconds: float = 5.0
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    jwt_secret: str = _DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    bcrypt_rounds: int = 12
    log_level: str = "INFO"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(name: str, default: int, low: int, high: int) -> int:
    raw = _get_env(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if not (low <= value <= high):
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


def _parse_float(name: str, default: float) -> float:
    raw = _get_env(name, str(default)).strip()
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """
    Return application settings loaded from environment variables.

    Raises:
        ValueError: if a variable holds an unsupported value, or if STAGE=prod
        and no JWT_SECRET is configured.
    """
    stage = _get_env("STAGE", "dev").strip().lower()
    if stage not in _STAGES:
        raise ValueError(f"STAGE must be one of {sorted(_STAGES)}, got {stage!r}")

    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in _BACKENDS:
        raise ValueError(f"PERSISTENCE_BACKEND must be one of {sorted(_BACKENDS)}, got {backend!r}")

    jwt_secret = os.getenv("JWT_SECRET") or ""
    if not jwt_secret:
        if stage == "prod":
            raise ValueError("JWT_SECRET is required when STAGE=prod")
        jwt_secret = _DEV_JWT_SECRET

    return Settings(
        stage=stage,
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        sqlite_timeout_seconds=_parse_float("SQLITE_TIMEOUT_SECONDS", 5.0),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        jwt_secret=jwt_secret,
        jwt_algorithm=_get_env("JWT_ALGORITHM", "HS256").strip(),
        access_token_expire_minutes=_parse_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60, 1, 60 * 24 * 30),
        bcrypt_rounds=_parse_int("BCRYPT_ROUNDS", 12, 4, 31),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
