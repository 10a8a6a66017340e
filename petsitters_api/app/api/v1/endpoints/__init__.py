"""
Endpoint subpackage for API v1.

Each module defines an APIRouter for one domain (auth, users, pets,
requests, reviews).  The routers are aggregated in ``router.py``.
"""
