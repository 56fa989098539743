"""Error taxonomy shared by the stores, services, and HTTP layer."""

from __future__ import annotations

ERROR_CODES = {
    "VALIDATION_ERROR": "VALIDATION_ERROR",
    "DOMAIN_NOT_ALLOWED": "DOMAIN_NOT_ALLOWED",
    "INVALID_ACTION": "INVALID_ACTION",
    "INVALID_CHALLENGE": "INVALID_CHALLENGE",
    "CHALLENGE_NOT_FOUND": "CHALLENGE_NOT_FOUND",
    "CHALLENGE_EXPIRED": "CHALLENGE_EXPIRED",
    "CHALLENGE_USED": "CHALLENGE_USED",
    "INVALID_SIGNATURE": "INVALID_SIGNATURE",
    "USER_NOT_FOUND": "USER_NOT_FOUND",
    "USER_EXISTS": "USER_EXISTS",
    "INVALID_PUBLIC_KEY": "INVALID_PUBLIC_KEY",
    "INVALID_TOKEN": "INVALID_TOKEN",
    "UNAUTHORIZED": "UNAUTHORIZED",
    "NOT_FOUND": "NOT_FOUND",
    "CONFLICT": "CONFLICT",
    "INTERNAL_ERROR": "INTERNAL_ERROR",
}


class SeedKeyError(Exception):
    """Base class for errors that map onto an HTTP status and a stable code."""

    status_code: int = 400
    error_code: str = ERROR_CODES["VALIDATION_ERROR"]

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, str]:
        """Return the wire representation used in error responses."""
        return {"error": self.error_code, "message": self.message}


class ValidationError(SeedKeyError):
    """Malformed or missing input (400)."""

    status_code = 400
    error_code = ERROR_CODES["VALIDATION_ERROR"]


class NotFoundError(SeedKeyError):
    """Unknown user, challenge, or session (404)."""

    status_code = 404
    error_code = ERROR_CODES["NOT_FOUND"]


class ConflictError(SeedKeyError):
    """State conflict such as a duplicate key or a consumed challenge (409)."""

    status_code = 409
    error_code = ERROR_CODES["CONFLICT"]


class KeyExistsError(ConflictError):
    """The public key is already bound to a user."""

    error_code = ERROR_CODES["USER_EXISTS"]


class ReplayError(ConflictError):
    """The challenge or its nonce has already been redeemed."""

    error_code = ERROR_CODES["CHALLENGE_USED"]


class UnauthorizedError(SeedKeyError):
    """Bad, expired, or wrong-type token, or an invalid session (401)."""

    status_code = 401
    error_code = ERROR_CODES["UNAUTHORIZED"]


class InternalError(SeedKeyError):
    """Store or infrastructure failure (500). The message never leaves the process."""

    status_code = 500
    error_code = ERROR_CODES["INTERNAL_ERROR"]


__all__ = [
    "ERROR_CODES",
    "SeedKeyError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "KeyExistsError",
    "ReplayError",
    "UnauthorizedError",
    "InternalError",
]
