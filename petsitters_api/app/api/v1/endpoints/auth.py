"""
Authentication endpoints for API v1.

Registration and login both answer with a bearer token and a short
summary of the user, so a client can start calling protected routes
right away.
"""

from fastapi import APIRouter, status

from petsitters_api.app.core.errors import ServiceError, raise_http_error
from petsitters_api.app.core.security import create_access_token
from petsitters_api.app.schemas.user import AuthUser, TokenResponse, UserCreate, UserLogin, UserRead
from petsitters_api.app.services.user_service import UserService


router = APIRouter()


def _token_response(user: UserRead) -> TokenResponse:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return TokenResponse(
        access_token=token,
        user=AuthUser(id=user.id, name=user.name, email=user.email, role=user.role),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate) -> TokenResponse:
    """Register a client or petsitter account.

    Returns HTTP 409 if the email is already taken.
    """
    try:
        user = await UserService.create_user(payload)
    except ServiceError as e:
        raise_http_error(e)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(payload: UserLogin) -> TokenResponse:
    """Exchange email and password for an access token."""
    try:
        user = await UserService.authenticate(payload.email, payload.password)
    except ServiceError as e:
        raise_http_error(e)
    return _token_response(user)
