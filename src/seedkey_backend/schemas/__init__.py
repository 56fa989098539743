# src/seedkey_backend/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .seedkey import (
    AuthResponse,
    ChallengeBody,
    ChallengeCreateRequest,
    ChallengeCreateResponse,
    ErrorResponse,
    KeyMetadataBody,
    LogoutAllResponse,
    LogoutResponse,
    RefreshBody,
    RegisterBody,
    TokenOut,
    UserOut,
    UserResponse,
    VerifyBody,
)

__all__ = [
    "ChallengeBody", "ChallengeCreateRequest", "ChallengeCreateResponse",
    "RegisterBody", "VerifyBody", "KeyMetadataBody", "RefreshBody",
    "AuthResponse", "TokenOut", "UserOut", "UserResponse",
    "LogoutResponse", "LogoutAllResponse", "ErrorResponse",
]
