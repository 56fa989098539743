"""Per-request gate for protected endpoints."""

from __future__ import annotations

import logging

from seedkey_backend.core.errors import ERROR_CODES, UnauthorizedError
from seedkey_backend.services.tokens import TokenIssuer
from seedkey_backend.storage.protocols import SessionStore
from seedkey_backend.storage.records import TokenPayload

logger = logging.getLogger(__name__)


class RequestAuthenticator:
    """Validates an access token and re-checks its session against the store.

    A token whose session was invalidated is rejected immediately, even though
    the token itself has not expired yet.
    """

    def __init__(self, tokens: TokenIssuer, sessions: SessionStore) -> None:
        self.tokens = tokens
        self.sessions = sessions

    def authenticate(self, token: str | None) -> TokenPayload:
        if not token:
            logger.info("Rejected request: missing bearer token")
            raise _unauthorized()
        payload = self.tokens.verify(token, "access")
        if not self.sessions.is_valid(payload.session_id):
            logger.info(
                "Rejected request: session %s for user %s is no longer valid",
                payload.session_id,
                payload.sub,
            )
            raise _unauthorized()
        return payload


def _unauthorized() -> UnauthorizedError:
    return UnauthorizedError("Unauthorized", error_code=ERROR_CODES["UNAUTHORIZED"])
