# src/seedkey_backend/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import seedkey_router, system_router

__all__ = [
    "seedkey_router",
    "system_router",
]
