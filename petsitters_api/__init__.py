"""
Top-level package for the PetSitters API.

Makes ``petsitters_api`` importable so modules can be referenced with
fully qualified names like ``petsitters_api.app.main``.  All
functionality lives in submodules under ``app``.
"""

__all__ = []
