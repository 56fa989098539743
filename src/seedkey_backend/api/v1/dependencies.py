"""Shared API dependencies for authentication and service lookup."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from seedkey_backend.services import AuthService, RequestAuthenticator
from seedkey_backend.storage.protocols import SeedKeyStores
from seedkey_backend.storage.records import TokenPayload

# Missing credentials pass through as None; RequestAuthenticator rejects them.
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService built by ``create_app``."""
    service: AuthService = request.app.state.auth_service
    return service


def get_authenticator(request: Request) -> RequestAuthenticator:
    authenticator: RequestAuthenticator = request.app.state.authenticator
    return authenticator


def get_stores(request: Request) -> SeedKeyStores:
    stores: SeedKeyStores = request.app.state.stores
    return stores


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
AuthenticatorDep = Annotated[RequestAuthenticator, Depends(get_authenticator)]
StoresDep = Annotated[SeedKeyStores, Depends(get_stores)]


def get_current_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    authenticator: AuthenticatorDep,
) -> TokenPayload:
    """Authenticate the bearer token and return its claims.

    Raises:
        UnauthorizedError: If the token is missing, invalid, expired, of the
            wrong type, or bound to a session that is no longer valid.
    """
    token = credentials.credentials if credentials else None
    return authenticator.authenticate(token)


# Type alias for the authenticated-token dependency
CurrentTokenDep = Annotated[TokenPayload, Depends(get_current_token)]
