# src/seedkey_backend/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .seedkey import router as seedkey_router
from .system import router as system_router

__all__ = [
    "seedkey_router",
    "system_router",
]
