"""
Application package initializer.

Each domain (users, pets, requests, reviews) has a service in
``services``, pydantic models in ``schemas`` and a router in
``api/v1/endpoints``.  Shared infrastructure (configuration, database,
security, errors, logging) lives in ``core``.
"""

from .main import app  # noqa: F401
