"""
Pydantic schemas for petsitter reviews.

A client reviews the petsitter of one of their completed requests.
Reviews may be hidden by the reviewed petsitter; hidden reviews still
count towards the rating.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class ReviewCreate(BaseModel):
    """Schema for creating a new review."""

    request_id: int = Field(..., description="Identifier of the completed request")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Optional textual comment")

    @field_validator("comment")
    @classmethod
    def sanitize_comment(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace from the comment and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > 1000:
            raise ValueError("Comment must be 1000 characters or fewer")
        return v or None


class ReviewRead(BaseModel):
    id: int
    request_id: int
    client_id: int
    petsitter_id: int
    rating: int
    comment: Optional[str]
    is_visible: bool
    created_at: str

    model_config = {
        "from_attributes": True,
    }


class RatingStatistics(BaseModel):
    total_reviews: int
    average_rating: float
    rating_distribution: Dict[int, int]
