"""
Service request endpoints for API v1.

Clients create and cancel requests, petsitters browse the pending ones
and accept them, and both sides move an accepted request forward via
``PATCH /requests/{id}/status``.  Status rules live in
``RequestService``; these handlers only translate its errors.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from petsitters_api.app.core.errors import ServiceError, raise_http_error
from petsitters_api.app.core.security import get_current_user, require_roles
from petsitters_api.app.schemas.request import (
    RequestCreate,
    RequestRead,
    RequestStatistics,
    RequestStatus,
    RequestStatusUpdate,
    StatusHistoryRead,
)
from petsitters_api.app.schemas.user import UserRole
from petsitters_api.app.services.request_service import RequestService


router = APIRouter()


@router.post("", response_model=RequestRead, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreate,
    current_user: dict = Depends(require_roles(UserRole.CLIENT.value)),
) -> RequestRead:
    """Create a request for one of the client's pets.

    Returns HTTP 400 for an invalid time window or a removed pet, 403
    for someone else's pet and 404 for an unknown pet.
    """
    try:
        return await RequestService.create_request(current_user["user_id"], payload)
    except ServiceError as e:
        raise_http_error(e)


@router.get("", response_model=List[RequestRead])
async def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status", description="Filter by status"),
) -> List[RequestRead]:
    return await RequestService.list_requests(status=status_filter)


@router.get("/pending", response_model=List[RequestRead])
async def list_pending_requests() -> List[RequestRead]:
    """Requests still waiting for a petsitter."""
    return await RequestService.list_pending()


@router.get("/my", response_model=List[RequestRead])
async def list_my_requests(current_user: dict = Depends(get_current_user)) -> List[RequestRead]:
    """Requests created by the client, or assigned to the petsitter."""
    return await RequestService.list_mine(current_user)


@router.get("/statistics", response_model=RequestStatistics)
async def request_statistics(current_user: dict = Depends(get_current_user)) -> RequestStatistics:
    return await RequestService.get_statistics(current_user["user_id"], current_user["role"])


@router.get("/{request_id}", response_model=RequestRead)
async def get_request(
    request_id: int = Path(..., description="ID of the request"),
) -> RequestRead:
    try:
        return await RequestService.get_request(request_id)
    except ServiceError as e:
        raise_http_error(e)


@router.post("/{request_id}/accept", response_model=RequestRead)
async def accept_request(
    request_id: int = Path(..., description="ID of the request"),
    current_user: dict = Depends(require_roles(UserRole.PETSITTER.value)),
) -> RequestRead:
    """Take a pending request.

    Only one petsitter can win; the others get HTTP 409.
    """
    try:
        return await RequestService.accept_request(request_id, current_user["user_id"])
    except ServiceError as e:
        raise_http_error(e)


@router.patch("/{request_id}/status", response_model=RequestRead)
async def update_request_status(
    payload: RequestStatusUpdate,
    request_id: int = Path(..., description="ID of the request"),
    current_user: dict = Depends(get_current_user),
) -> RequestRead:
    try:
        return await RequestService.update_status(request_id, current_user, payload)
    except ServiceError as e:
        raise_http_error(e)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_request(
    request_id: int = Path(..., description="ID of the request"),
    current_user: dict = Depends(require_roles(UserRole.CLIENT.value)),
) -> Response:
    """Cancel a request.  Completed requests cannot be cancelled."""
    try:
        await RequestService.cancel_request(request_id, current_user["user_id"])
    except ServiceError as e:
        raise_http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{request_id}/history", response_model=List[StatusHistoryRead])
async def request_history(
    request_id: int = Path(..., description="ID of the request"),
    current_user: dict = Depends(get_current_user),
) -> List[StatusHistoryRead]:
    try:
        return await RequestService.get_history(request_id, current_user["user_id"])
    except ServiceError as e:
        raise_http_error(e)
