"""Plain records exchanged between the stores and the service layer.

None of these types reference SQLAlchemy or FastAPI, so the core can be
exercised against any store implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

ChallengeAction = Literal["registration", "login", "reauth"]
TokenType = Literal["access", "refresh"]


@dataclass(frozen=True)
class KeyMetadata:
    """Optional client-supplied description of a key."""

    device_name: str | None = None


@dataclass(frozen=True)
class PublicKeyInfo:
    """The single active public key of a user."""

    id: str
    public_key: str
    added_at: int
    last_used: int
    device_name: str | None = None


@dataclass(frozen=True)
class UserRecord:
    """A user together with its one public key."""

    id: str
    public_key: PublicKeyInfo
    created_at: int
    last_login: int | None = None


@dataclass(frozen=True)
class ChallengePayload:
    """The part of a challenge the client signs."""

    nonce: str
    timestamp: int
    domain: str
    action: str
    expires_at: int
    public_key: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase mapping sent to and signed by clients."""
        data: dict[str, Any] = {
            "nonce": self.nonce,
            "timestamp": self.timestamp,
            "domain": self.domain,
            "action": self.action,
            "expiresAt": self.expires_at,
        }
        if self.public_key:
            data["publicKey"] = self.public_key
        return data


@dataclass(frozen=True)
class StoredChallenge:
    """A persisted one-time challenge."""

    id: str
    nonce: str
    timestamp: int
    domain: str
    action: str
    expires_at: int
    created_at: int
    public_key: str | None = None
    used: bool = False

    @property
    def payload(self) -> ChallengePayload:
        return ChallengePayload(
            nonce=self.nonce,
            timestamp=self.timestamp,
            domain=self.domain,
            action=self.action,
            expires_at=self.expires_at,
            public_key=self.public_key,
        )

    def is_expired(self, now: int) -> bool:
        return self.expires_at <= now


@dataclass(frozen=True)
class SessionRecord:
    """A server-side login session."""

    id: str
    user_id: str
    public_key_id: str
    created_at: int
    expires_at: int
    invalidated: bool = False

    def is_valid(self, now: int) -> bool:
        return not self.invalidated and self.expires_at > now


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh tokens returned to the client."""

    access_token: str
    refresh_token: str
    expires_in: int

    def to_wire(self) -> dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
        }


@dataclass(frozen=True)
class TokenPayload:
    """Claims carried by every token this service issues."""

    sub: str
    type: TokenType
    public_key_id: str
    session_id: str
