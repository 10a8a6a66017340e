"""
Pydantic models for user data.

Defines schemas for registration, login, profile updates and reading
users.  The password hash is never part of a response model.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    CLIENT = "client"
    PETSITTER = "petsitter"


class UserBase(BaseModel):
    name: str = Field(..., min_length=2, examples=["Ivan Ivanov"])
    email: EmailStr = Field(..., examples=["ivan@example.com"])
    phone: str = Field(..., min_length=1, examples=["+79001234567"])
    role: UserRole = Field(..., examples=["client"])
    address: Optional[str] = Field(None, examples=["1 Example St, Moscow"])
    bio: Optional[str] = Field(None, examples=["Five years of experience with dogs"])


class UserCreate(UserBase):
    """Schema for registering a user."""

    password: str = Field(..., min_length=6, examples=["password123"])


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile.

    Email, password and role are not editable.  Omitted fields are left
    unchanged.
    """

    name: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    bio: Optional[str] = None


class UserRead(BaseModel):
    """Schema for reading a user from the API."""

    id: int
    name: str
    email: str
    phone: str
    role: UserRole
    address: Optional[str] = None
    bio: Optional[str] = None
    rating: float = 0
    reviews_count: int = 0
    is_active: bool = True
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }


class AuthUser(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUser
