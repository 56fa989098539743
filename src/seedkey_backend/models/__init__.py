# src/seedkey_backend/models/__init__.py
"""SQLAlchemy models for the SeedKey backend."""

from .challenge import Challenge
from .session import AuthSession
from .user import PublicKey, User

__all__ = [
    "AuthSession",
    "Challenge",
    "PublicKey",
    "User",
]
