"""
Review endpoints for API v1.

Clients review completed requests; public listings only include
visible reviews while the statistics cover all of them.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from petsitters_api.app.core.errors import ServiceError, raise_http_error
from petsitters_api.app.core.security import require_roles
from petsitters_api.app.schemas.review import RatingStatistics, ReviewCreate, ReviewRead
from petsitters_api.app.schemas.user import UserRole
from petsitters_api.app.services.review_service import ReviewService


router = APIRouter()


@router.post("", response_model=ReviewRead, status_code=status.HTTP_201_CREATED)
async def create_review(
    review: ReviewCreate,
    current_user: dict = Depends(require_roles(UserRole.CLIENT.value)),
) -> ReviewRead:
    """Review the petsitter of a completed request.

    Returns HTTP 409 if the request already has a review.
    """
    try:
        return await ReviewService.create_review(current_user["user_id"], review)
    except ServiceError as e:
        raise_http_error(e)


@router.get("", response_model=List[ReviewRead])
async def list_reviews(
    petsitter_id: Optional[int] = Query(None, description="Only reviews about this petsitter"),
) -> List[ReviewRead]:
    return await ReviewService.list_reviews(petsitter_id=petsitter_id)


@router.get("/petsitter/{petsitter_id}", response_model=List[ReviewRead])
async def list_petsitter_reviews(
    petsitter_id: int = Path(..., description="ID of the petsitter"),
) -> List[ReviewRead]:
    try:
        return await ReviewService.list_for_petsitter(petsitter_id)
    except ServiceError as e:
        raise_http_error(e)


@router.get("/petsitter/{petsitter_id}/statistics", response_model=RatingStatistics)
async def petsitter_review_statistics(
    petsitter_id: int = Path(..., description="ID of the petsitter"),
) -> RatingStatistics:
    """Review count, average and 1..5 distribution, hidden reviews included."""
    try:
        return await ReviewService.get_statistics(petsitter_id)
    except ServiceError as e:
        raise_http_error(e)


@router.get("/{review_id}", response_model=ReviewRead)
async def get_review(
    review_id: int = Path(..., description="ID of the review"),
) -> ReviewRead:
    try:
        return await ReviewService.get_review(review_id)
    except ServiceError as e:
        raise_http_error(e)


@router.patch("/{review_id}/toggle-visibility", response_model=ReviewRead)
async def toggle_review_visibility(
    review_id: int = Path(..., description="ID of the review"),
    current_user: dict = Depends(require_roles(UserRole.PETSITTER.value)),
) -> ReviewRead:
    """Hide or show a review about the authenticated petsitter."""
    try:
        return await ReviewService.toggle_visibility(review_id, current_user["user_id"])
    except ServiceError as e:
        raise_http_error(e)
