# src/seedkey_backend/services/__init__.py
"""Authentication services built on top of the stores."""

from .auth import (
    AuthResult,
    AuthService,
    ChallengeRequest,
    ChallengeResult,
    RegisterRequest,
    VerifyRequest,
)
from .authenticator import RequestAuthenticator
from .cleanup import CleanupWorker
from .tokens import TokenIssuer

__all__ = [
    "AuthService",
    "AuthResult",
    "ChallengeRequest",
    "ChallengeResult",
    "RegisterRequest",
    "VerifyRequest",
    "RequestAuthenticator",
    "CleanupWorker",
    "TokenIssuer",
]
