"""
Pet endpoints for API v1.

Clients register their pets here; browsing them needs no
authentication.  Only the owner may edit or remove a pet.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Response, status

from petsitters_api.app.core.errors import ServiceError, raise_http_error
from petsitters_api.app.core.security import get_current_user, require_roles
from petsitters_api.app.schemas.pet import PetCreate, PetRead, PetUpdate
from petsitters_api.app.schemas.user import UserRole
from petsitters_api.app.services.pet_service import PetService


router = APIRouter()


@router.post("", response_model=PetRead, status_code=status.HTTP_201_CREATED)
async def create_pet(
    pet: PetCreate,
    current_user: dict = Depends(require_roles(UserRole.CLIENT.value)),
) -> PetRead:
    return await PetService.create_pet(current_user["user_id"], pet)


@router.get("", response_model=List[PetRead])
async def list_pets() -> List[PetRead]:
    return await PetService.list_pets()


@router.get("/my", response_model=List[PetRead])
async def list_my_pets(
    current_user: dict = Depends(require_roles(UserRole.CLIENT.value)),
) -> List[PetRead]:
    """Pets owned by the authenticated client."""
    return await PetService.list_by_owner(current_user["user_id"])


@router.get("/{pet_id}", response_model=PetRead)
async def get_pet(
    pet_id: int = Path(..., description="ID of the pet"),
) -> PetRead:
    try:
        return await PetService.get_pet(pet_id)
    except ServiceError as e:
        raise_http_error(e)


@router.patch("/{pet_id}", response_model=PetRead)
async def update_pet(
    payload: PetUpdate,
    pet_id: int = Path(..., description="ID of the pet"),
    current_user: dict = Depends(get_current_user),
) -> PetRead:
    """Update a pet.  Returns HTTP 403 for anyone but the owner."""
    try:
        return await PetService.update_pet(pet_id, current_user["user_id"], payload)
    except ServiceError as e:
        raise_http_error(e)


@router.delete("/{pet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pet(
    pet_id: int = Path(..., description="ID of the pet"),
    current_user: dict = Depends(get_current_user),
) -> Response:
    """Remove a pet from the registry (soft delete)."""
    try:
        await PetService.remove_pet(pet_id, current_user["user_id"])
    except ServiceError as e:
        raise_http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
