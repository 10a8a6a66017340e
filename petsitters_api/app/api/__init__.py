"""
HTTP layer of the PetSitters API, grouped by version.

``v1.router`` aggregates the domain routers and is mounted by
``main.create_app`` under ``/api/v1``.
"""
