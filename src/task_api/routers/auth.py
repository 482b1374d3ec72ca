from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..auth_service import AuthService
from ..dependencies import get_auth_service
from ..schemas import AccessToken, AuthCredentials, UserOut

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/signup",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up",
    description="Register a new user with a unique username.",
    responses={
        201: {"description": "User registered"},
        409: {"description": "Username already exists"},
        422: {"description": "Validation error"},
    },
)
def sign_up(payload: AuthCredentials, auth: AuthService = Depends(get_auth_service)) -> UserOut:
    """
    Register a user. The password is stored only as a bcrypt hash.
    """
    user = auth.register(payload.username, payload.password)
    return UserOut(id=user["id"], username=user["username"])


# PUBLIC_INTERFACE
@router.post(
    "/signin",
    response_model=AccessToken,
    summary="Sign In",
    description="Exchange valid credentials for a signed access token.",
    responses={
        200: {"description": "Signed in"},
        401: {"description": "Invalid credentials"},
    },
)
def sign_in(payload: AuthCredentials, auth: AuthService = Depends(get_auth_service)) -> AccessToken:
    """
    Verify credentials and return {"accessToken": "<jwt>"}.
    """
    issued = auth.login(payload.username, payload.password)
    return AccessToken(accessToken=issued.access_token)
