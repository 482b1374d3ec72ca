from __future__ import annotations

from fastapi import Request

from .auth_service import AuthService
from .task_service import TaskService


# PUBLIC_INTERFACE
def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService wired into the running app by create_app()."""
    return request.app.state.auth_service


# PUBLIC_INTERFACE
def get_task_service(request: Request) -> TaskService:
    """Return the TaskService wired into the running app by create_app()."""
    return request.app.state.task_service
