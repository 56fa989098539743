"""Challenge, registration, login, and session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from seedkey_backend.api.v1.dependencies import AuthServiceDep, CurrentTokenDep
from seedkey_backend.core.errors import ERROR_CODES, NotFoundError
from seedkey_backend.schemas.seedkey import (
    AuthResponse,
    ChallengeBody,
    ChallengeCreateRequest,
    ChallengeCreateResponse,
    ErrorResponse,
    LogoutAllResponse,
    LogoutResponse,
    RefreshBody,
    RegisterBody,
    TokenOut,
    UserOut,
    UserResponse,
    VerifyBody,
)
from seedkey_backend.services.auth import (
    AuthResult,
    ChallengeRequest,
    RegisterRequest,
    VerifyRequest,
)

router = APIRouter(
    prefix="/seedkey",
    tags=["seedkey"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)


def _auth_response(action: str, result: AuthResult) -> AuthResponse:
    return AuthResponse(
        action=action,
        user=UserOut.from_record(result.user),
        token=TokenOut.from_pair(result.tokens),
    )


@router.post(
    "/challenge",
    response_model=ChallengeCreateResponse,
    response_model_exclude_none=True,
)
async def create_challenge(
    body: ChallengeCreateRequest, service: AuthServiceDep
) -> ChallengeCreateResponse:
    """Issue a one-time challenge for the client to sign."""
    result = service.create_challenge(
        ChallengeRequest(action=body.action, domain=body.domain, public_key=body.public_key)
    )
    return ChallengeCreateResponse(
        challenge=ChallengeBody.from_payload(result.challenge),
        challenge_id=result.challenge_id,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterBody, service: AuthServiceDep) -> AuthResponse:
    """Create a user from a signed registration challenge and log it in."""
    result = service.register(
        RegisterRequest(
            challenge_id=body.challenge_id,
            challenge=body.challenge.to_payload(),
            signature=body.signature,
            public_key=body.public_key,
            metadata=body.metadata.to_metadata() if body.metadata else None,
        )
    )
    return _auth_response("register", result)


@router.post("/verify", response_model=AuthResponse)
async def verify(body: VerifyBody, service: AuthServiceDep) -> AuthResponse:
    """Log an existing user in with a signed login challenge."""
    result = service.verify(
        VerifyRequest(
            challenge_id=body.challenge_id,
            challenge=body.challenge.to_payload(),
            signature=body.signature,
            public_key=body.public_key,
        )
    )
    return _auth_response(body.challenge.action, result)


@router.post("/logout", response_model=LogoutResponse)
async def logout(token: CurrentTokenDep, service: AuthServiceDep) -> LogoutResponse:
    service.logout(token.session_id)
    return LogoutResponse(message="Logged out successfully")


@router.post("/logout/all", response_model=LogoutAllResponse)
async def logout_all(token: CurrentTokenDep, service: AuthServiceDep) -> LogoutAllResponse:
    """Invalidate every session of the authenticated user, this one included."""
    count = service.logout_all(token.sub)
    return LogoutAllResponse(message="Logged out from all sessions", invalidated=count)


@router.post("/refresh", response_model=TokenOut)
async def refresh(body: RefreshBody, service: AuthServiceDep) -> TokenOut:
    """Exchange a refresh token for a new pair bound to the same session."""
    return TokenOut.from_pair(service.refresh(body.refresh_token))


@router.get("/user", response_model=UserResponse)
async def get_user(token: CurrentTokenDep, service: AuthServiceDep) -> UserResponse:
    user = service.get_user(token.sub)
    if user is None:
        raise NotFoundError("User not found", error_code=ERROR_CODES["USER_NOT_FOUND"])
    return UserResponse(user=UserOut.from_record(user))
