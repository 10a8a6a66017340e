"""
Pydantic models for pet profiles.

A pet belongs to exactly one client.  ``PetUpdate`` mirrors
``PetCreate`` with every field optional so owners can patch a single
attribute.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PetType(str, Enum):
    DOG = "dog"
    CAT = "cat"
    BIRD = "bird"
    RABBIT = "rabbit"
    OTHER = "other"


class PetSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class PetBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["Rex"])
    type: PetType = Field(..., examples=["dog"])
    breed: str = Field(..., min_length=1, examples=["Labrador"])
    age: float = Field(..., ge=0, description="Age in years", examples=[3])
    size: PetSize = Field(..., examples=["medium"])
    weight: Optional[float] = Field(None, ge=0, description="Weight in kilograms", examples=[25.5])
    special_needs: Optional[str] = Field(None, examples=["Afraid of loud noises"])
    medical_info: Optional[str] = Field(None, examples=["All vaccinations done"])
    photo: Optional[str] = Field(None, examples=["https://example.com/photos/rex.jpg"])


class PetCreate(PetBase):
    """Schema for registering a pet."""
    pass


class PetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[PetType] = None
    breed: Optional[str] = Field(None, min_length=1)
    age: Optional[float] = Field(None, ge=0)
    size: Optional[PetSize] = None
    weight: Optional[float] = Field(None, ge=0)
    special_needs: Optional[str] = None
    medical_info: Optional[str] = None
    photo: Optional[str] = None


class PetRead(PetBase):
    id: int
    owner_id: int
    is_active: bool = True
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }
