"""Request and response schemas for the SeedKey endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from seedkey_backend.storage.records import (
    ChallengePayload,
    KeyMetadata,
    TokenPair,
    UserRecord,
)


class WireModel(BaseModel):
    """Base model accepting either the camelCase alias or the field name."""

    model_config = ConfigDict(populate_by_name=True)


class ChallengeBody(WireModel):
    """The challenge exactly as issued and signed."""

    nonce: str = Field(..., min_length=1, description="Hex-encoded 32-byte nonce")
    timestamp: int = Field(..., description="Issue time, epoch milliseconds")
    domain: str = Field(..., min_length=1)
    action: str = Field(..., description="registration, login, or reauth")
    expires_at: int = Field(..., alias="expiresAt", description="Expiry, epoch milliseconds")
    public_key: str | None = Field(None, alias="publicKey")

    @classmethod
    def from_payload(cls, payload: ChallengePayload) -> ChallengeBody:
        return cls(
            nonce=payload.nonce,
            timestamp=payload.timestamp,
            domain=payload.domain,
            action=payload.action,
            expires_at=payload.expires_at,
            public_key=payload.public_key,
        )

    def to_payload(self) -> ChallengePayload:
        return ChallengePayload(
            nonce=self.nonce,
            timestamp=self.timestamp,
            domain=self.domain,
            action=self.action,
            expires_at=self.expires_at,
            public_key=self.public_key,
        )


class ChallengeCreateRequest(WireModel):
    """Request for a new one-time challenge."""

    action: str = Field(..., description="registration, login, or reauth")
    domain: str | None = Field(None, description="Defaults to the server's current domain")
    public_key: str | None = Field(
        None, alias="publicKey", description="Binds the challenge to a known key"
    )


class ChallengeCreateResponse(WireModel):
    challenge: ChallengeBody
    challenge_id: str = Field(..., alias="challengeId")


class KeyMetadataBody(WireModel):
    device_name: str | None = Field(None, alias="deviceName", max_length=255)

    def to_metadata(self) -> KeyMetadata:
        return KeyMetadata(device_name=self.device_name)


class VerifyBody(WireModel):
    """Signed proof over a previously issued challenge."""

    challenge_id: str = Field(..., alias="challengeId", min_length=1)
    challenge: ChallengeBody
    signature: str = Field(..., min_length=1, description="Ed25519 signature, base64url or hex")
    public_key: str = Field(
        ..., alias="publicKey", min_length=1, description="Ed25519 public key, base64url or hex"
    )


class RegisterBody(VerifyBody):
    metadata: KeyMetadataBody | None = None


class RefreshBody(WireModel):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)


class UserOut(WireModel):
    id: str
    public_key: str = Field(..., alias="publicKey")
    public_key_id: str = Field(..., alias="publicKeyId")
    device_name: str | None = Field(None, alias="deviceName")
    created_at: int = Field(..., alias="createdAt")
    last_login: int | None = Field(None, alias="lastLogin")

    @classmethod
    def from_record(cls, user: UserRecord) -> UserOut:
        return cls(
            id=user.id,
            public_key=user.public_key.public_key,
            public_key_id=user.public_key.id,
            device_name=user.public_key.device_name,
            created_at=user.created_at,
            last_login=user.last_login,
        )


class TokenOut(WireModel):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
    expires_in: int = Field(..., alias="expiresIn", description="Access token TTL in seconds")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> TokenOut:
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
        )


class AuthResponse(WireModel):
    """Result of a successful registration or login."""

    success: bool = True
    action: str
    user: UserOut
    token: TokenOut


class LogoutResponse(WireModel):
    success: bool = True
    message: str


class LogoutAllResponse(LogoutResponse):
    invalidated: int = Field(..., description="Number of sessions that were still open")


class UserResponse(WireModel):
    user: UserOut


class ErrorResponse(WireModel):
    """Body of every non-2xx response."""

    error: str = Field(..., description="Stable machine-readable error code")
    message: str
