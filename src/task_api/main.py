from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth_service import AuthService
from .errors import ServiceError
from .logging_setup import setup_logging
from .repositories import get_repositories
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .security import BcryptPasswordHasher
from .settings import Settings, get_settings
from .task_service import TaskService
from .tokens import TokenSigner

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "User registration and sign-in."},
    {
        "name": "tasks",
        "description": "CRUD operations for the caller's own tasks with status and text filters.",
    },
]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    Map a ServiceError to its status code with a stable body:
        {"error": "<ErrorClass>", "message": "<caller-facing message>"}

    401 responses also carry 'WWW-Authenticate: Bearer'.
    """
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "message": exc.message},
        headers=headers,
    )


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application and wire stores and services into app.state.

    Settings are read once here; the token signer built from them is not
    changed afterwards.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Task Tracker Backend",
        description="Per-user task tracker with JWT authentication and owner-scoped tasks.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ServiceError, service_error_handler)  # type: ignore[arg-type]

    users, tasks = get_repositories(settings)
    signer = TokenSigner(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_in=timedelta(minutes=settings.access_token_expire_minutes),
    )
    app.state.settings = settings
    app.state.auth_service = AuthService(users, BcryptPasswordHasher(settings.bcrypt_rounds), signer)
    app.state.task_service = TaskService(tasks)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(auth_router.router)
    app.include_router(tasks_router.router)

    logger.info("Task API ready (stage=%s, backend=%s)", settings.stage, settings.persistence_backend)
    return app
