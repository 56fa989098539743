"""Issue and verify the access/refresh token pair bound to a session."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from seedkey_backend.core.errors import ERROR_CODES, UnauthorizedError
from seedkey_backend.core.settings import AuthConfig
from seedkey_backend.storage.records import TokenPair, TokenPayload, TokenType

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Mints and verifies HMAC-signed JWTs.

    Every token carries ``sub``, ``type``, ``publicKeyId``, and ``sessionId``.
    The ``type`` claim is checked on every verification so access and refresh
    tokens can never stand in for one another.
    """

    def __init__(self, config: AuthConfig, clock: Callable[[], float] = time.time) -> None:
        self._secret = config.jwt_secret
        self._algorithm = config.jwt_algorithm
        self.access_ttl = config.access_token_ttl
        self.refresh_ttl = config.refresh_token_ttl
        self._clock = clock

    def _encode(self, claims: TokenPayload, ttl_seconds: int) -> str:
        issued_at = int(self._clock())
        to_encode: dict[str, Any] = {
            "sub": claims.sub,
            "type": claims.type,
            "publicKeyId": claims.public_key_id,
            "sessionId": claims.session_id,
            "iat": issued_at,
            "exp": issued_at + ttl_seconds,
        }
        encoded_jwt: str = jwt.encode(to_encode, self._secret, algorithm=self._algorithm)
        return encoded_jwt

    def issue(self, user_id: str, public_key_id: str, session_id: str) -> TokenPair:
        """Mint a fresh access/refresh pair for the given session."""
        access = TokenPayload(
            sub=user_id, type="access", public_key_id=public_key_id, session_id=session_id
        )
        refresh = TokenPayload(
            sub=user_id, type="refresh", public_key_id=public_key_id, session_id=session_id
        )
        return TokenPair(
            access_token=self._encode(access, self.access_ttl),
            refresh_token=self._encode(refresh, self.refresh_ttl),
            expires_in=self.access_ttl,
        )

    def verify(self, token: str, expected_type: TokenType) -> TokenPayload:
        """Decode ``token`` and require ``type == expected_type``.

        Raises:
            UnauthorizedError: On a bad signature, expiry, missing claims, or a
                token of the other kind. The message does not say which.
        """
        if not token:
            raise _invalid_token("empty token")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as err:
            raise _invalid_token("expired") from err
        except JWTError as err:
            raise _invalid_token("undecodable") from err

        token_type = payload.get("type")
        if token_type != expected_type:
            raise _invalid_token(f"type {token_type!r}, expected {expected_type!r}")

        sub = payload.get("sub")
        public_key_id = payload.get("publicKeyId")
        session_id = payload.get("sessionId")
        if not all(isinstance(v, str) and v for v in (sub, public_key_id, session_id)):
            raise _invalid_token("missing claims")

        return TokenPayload(
            sub=sub,
            type=token_type,
            public_key_id=public_key_id,
            session_id=session_id,
        )


def _invalid_token(reason: str) -> UnauthorizedError:
    logger.info("Rejected token: %s", reason)
    return UnauthorizedError("Invalid or expired token", error_code=ERROR_CODES["INVALID_TOKEN"])
