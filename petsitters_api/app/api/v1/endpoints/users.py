"""
User endpoints for API v1.

The ``/profile`` routes act on the authenticated user.  Directory reads
are public and only return active accounts.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from petsitters_api.app.core.errors import ServiceError, raise_http_error
from petsitters_api.app.core.security import get_current_user
from petsitters_api.app.schemas.user import ProfileUpdate, UserRead, UserRole
from petsitters_api.app.services.user_service import UserService


router = APIRouter()


@router.get("/profile", response_model=UserRead)
async def get_profile(current_user: dict = Depends(get_current_user)) -> UserRead:
    """Return the authenticated user's profile."""
    try:
        return await UserService.get_user_by_id(current_user["user_id"])
    except ServiceError as e:
        raise_http_error(e)


@router.patch("/profile", response_model=UserRead)
async def update_profile(
    payload: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
) -> UserRead:
    """Update name, phone, address or bio of the authenticated user."""
    try:
        return await UserService.update_profile(current_user["user_id"], payload)
    except ServiceError as e:
        raise_http_error(e)


@router.delete("/profile", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_profile(current_user: dict = Depends(get_current_user)) -> Response:
    """Deactivate the authenticated user's account.

    The token stops working immediately; data is kept.
    """
    try:
        await UserService.deactivate(current_user["user_id"])
    except ServiceError as e:
        raise_http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/petsitters", response_model=List[UserRead])
async def list_petsitters(
    min_rating: Optional[float] = Query(None, ge=0, le=5, description="Minimum rating"),
) -> List[UserRead]:
    """List active petsitters, best rated first."""
    return await UserService.list_petsitters(min_rating=min_rating)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int = Path(..., description="ID of the user"),
) -> UserRead:
    try:
        return await UserService.get_user_by_id(user_id)
    except ServiceError as e:
        raise_http_error(e)


@router.get("", response_model=List[UserRead])
async def list_users(
    role: Optional[UserRole] = Query(None, description="Only users with this role"),
) -> List[UserRead]:
    return await UserService.list_users(role=role)
