from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth_service import AuthService
from .dependencies import get_auth_service
from .errors import UnauthorizedError
from .models import UserEntity

_security = HTTPBearer(auto_error=False)


# PUBLIC_INTERFACE
def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserEntity:
    """
    FastAPI dependency resolving 'Authorization: Bearer <token>' to the caller.

    Usage:
        @router.get("/", ...)
        def list_tasks(user: UserEntity = Depends(get_current_user)): ...

    Raises:
        UnauthorizedError if the header is missing or the token is invalid,
        expired, or names a user that no longer exists. The app's service
        error handler turns it into a 401 with 'WWW-Authenticate: Bearer'.
    """
    if creds is None or not creds.credentials:
        raise UnauthorizedError("Not authenticated")
    return auth_service.authenticate(creds.credentials)
