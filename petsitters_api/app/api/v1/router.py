"""
Top-level router for version 1 of the API.

This router aggregates the domain routers (auth, users, pets, requests,
reviews) under a unified prefix.  When a new domain is introduced,
include its router here.
"""

from fastapi import APIRouter

from .endpoints import auth, pets, requests, reviews, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(pets.router, prefix="/pets", tags=["pets"])
router.include_router(requests.router, prefix="/requests", tags=["requests"])
router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
