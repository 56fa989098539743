"""Challenge/registration/login/session orchestration.

``AuthService`` is the only component that spans the user, challenge, and
session stores. It holds no locks of its own: every cross-request invariant is
delegated to an atomic store operation, and the boolean returned by
``ChallengeStore.mark_as_used`` is the sole authorization to mint a session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from seedkey_backend.core.errors import (
    ERROR_CODES,
    KeyExistsError,
    NotFoundError,
    ReplayError,
    UnauthorizedError,
    ValidationError,
)
from seedkey_backend.core.security import SignatureVerifier, canonical_public_key
from seedkey_backend.core.settings import (
    ACTION_LOGIN,
    ACTION_REAUTH,
    ACTION_REGISTRATION,
    AuthConfig,
)
from seedkey_backend.db.time import now_ms
from seedkey_backend.services.tokens import TokenIssuer
from seedkey_backend.storage.protocols import Clock, SeedKeyStores
from seedkey_backend.storage.records import (
    ChallengePayload,
    KeyMetadata,
    PublicKeyInfo,
    SessionRecord,
    StoredChallenge,
    TokenPair,
    UserRecord,
)
from seedkey_backend.utils.ids import ID_PREFIX_CHALLENGE, generate_id, generate_nonce

logger = logging.getLogger(__name__)

CHALLENGE_ACTIONS = (ACTION_REGISTRATION, ACTION_LOGIN, ACTION_REAUTH)
LOGIN_ACTIONS = (ACTION_LOGIN, ACTION_REAUTH)


@dataclass(frozen=True)
class ChallengeRequest:
    action: str
    domain: str | None = None
    public_key: str | None = None


@dataclass(frozen=True)
class ChallengeResult:
    challenge_id: str
    challenge: ChallengePayload


@dataclass(frozen=True)
class VerifyRequest:
    """Proof that the holder of ``public_key`` signed challenge ``challenge_id``."""

    challenge_id: str
    challenge: ChallengePayload
    signature: str
    public_key: str


@dataclass(frozen=True)
class RegisterRequest(VerifyRequest):
    metadata: KeyMetadata | None = None


@dataclass(frozen=True)
class AuthResult:
    user: UserRecord
    key_info: PublicKeyInfo
    tokens: TokenPair
    session: SessionRecord


class AuthService:
    """Register, verify (login), logout, and refresh flows over injected stores."""

    def __init__(
        self,
        config: AuthConfig,
        stores: SeedKeyStores,
        tokens: TokenIssuer,
        verifier: SignatureVerifier,
        *,
        clock: Clock = now_ms,
    ) -> None:
        self.config = config
        self.users = stores.users
        self.challenges = stores.challenges
        self.sessions = stores.sessions
        self.tokens = tokens
        self.verifier = verifier
        self._clock = clock

    # --- Challenges -----------------------------------------------------------------
    def create_challenge(self, request: ChallengeRequest) -> ChallengeResult:
        """Issue and persist a fresh one-time challenge.

        Raises:
            ValidationError: Unknown action or a domain outside the allowed set,
                or an undecodable public key.
            NotFoundError: A login challenge for a key nobody has registered.
            KeyExistsError: A registration challenge for a key already in use.
        """
        domain = (request.domain or self.config.current_domain).strip().lower()
        if domain not in self.config.allowed_domains:
            raise ValidationError(
                f"Domain {domain!r} is not allowed",
                error_code=ERROR_CODES["DOMAIN_NOT_ALLOWED"],
            )
        if request.action not in CHALLENGE_ACTIONS:
            raise ValidationError(
                f"Unknown action {request.action!r}",
                error_code=ERROR_CODES["INVALID_ACTION"],
            )

        public_key = _canonical_key(request.public_key) if request.public_key else None
        if public_key is not None:
            exists = self.users.public_key_exists(public_key)
            if request.action in LOGIN_ACTIONS and not exists:
                raise NotFoundError("User not found", error_code=ERROR_CODES["USER_NOT_FOUND"])
            if request.action == ACTION_REGISTRATION and exists:
                raise KeyExistsError("User already exists")

        now = self._clock()
        stored = StoredChallenge(
            id=generate_id(ID_PREFIX_CHALLENGE),
            nonce=generate_nonce(),
            timestamp=now,
            domain=domain,
            action=request.action,
            expires_at=now + self.config.challenge_ttl_ms,
            created_at=now,
            public_key=public_key,
        )
        self.challenges.save(stored)
        logger.debug("Issued %s challenge %s for %s", stored.action, stored.id, domain)
        return ChallengeResult(challenge_id=stored.id, challenge=stored.payload)

    def _check_challenge(
        self, request: VerifyRequest, allowed_actions: tuple[str, ...]
    ) -> StoredChallenge:
        """Pre-check a presented challenge and its signature.

        This only shapes client-facing errors; winning the claim in
        :meth:`_claim` is what actually authorizes the caller.
        """
        stored = self.challenges.find_by_id(request.challenge_id)
        if stored is None:
            raise NotFoundError(
                "Challenge not found", error_code=ERROR_CODES["CHALLENGE_NOT_FOUND"]
            )
        if stored.is_expired(self._clock()):
            raise UnauthorizedError(
                "Challenge has expired", error_code=ERROR_CODES["CHALLENGE_EXPIRED"]
            )
        if (
            stored.used
            or self.challenges.is_nonce_used(stored.nonce)
            or self.challenges.is_nonce_used(request.challenge.nonce)
        ):
            logger.warning("Replay attempt on challenge %s", stored.id)
            raise ReplayError("Challenge has already been used")
        presented = request.challenge
        if (presented.nonce, presented.domain, presented.action) != (
            stored.nonce,
            stored.domain,
            stored.action,
        ):
            raise ValidationError(
                "Challenge does not match", error_code=ERROR_CODES["INVALID_CHALLENGE"]
            )
        if stored.domain not in self.config.allowed_domains:
            raise ValidationError(
                "Challenge domain is not allowed",
                error_code=ERROR_CODES["DOMAIN_NOT_ALLOWED"],
            )
        if stored.action not in allowed_actions:
            raise ValidationError(
                f"Challenge was issued for {stored.action!r}",
                error_code=ERROR_CODES["INVALID_ACTION"],
            )
        if stored.public_key is not None and stored.public_key != request.public_key:
            raise ValidationError(
                "Challenge is bound to a different key",
                error_code=ERROR_CODES["INVALID_CHALLENGE"],
            )
        # The stored payload is authoritative; the client must have signed exactly it.
        if not self.verifier.verify(stored.payload, request.signature, request.public_key):
            raise UnauthorizedError(
                "Invalid signature", error_code=ERROR_CODES["INVALID_SIGNATURE"]
            )
        return stored

    def _claim(self, stored: StoredChallenge) -> None:
        if not self.challenges.mark_as_used(stored.id):
            logger.warning("Lost redemption race for challenge %s", stored.id)
            raise ReplayError("Challenge has already been used")

    def _open_session(self, user: UserRecord) -> tuple[SessionRecord, TokenPair]:
        session = self.sessions.create(user.id, user.public_key.id, self.config.session_ttl)
        tokens = self.tokens.issue(user.id, user.public_key.id, session.id)
        return session, tokens

    # --- Flows ----------------------------------------------------------------------
    def register(self, request: RegisterRequest) -> AuthResult:
        """Redeem a registration challenge and create the user with its key.

        Raises:
            NotFoundError: Unknown challenge.
            UnauthorizedError: Expired challenge or bad signature.
            ReplayError: The challenge (or its nonce) was already redeemed.
            KeyExistsError: The key is already registered.
            ValidationError: The challenge does not fit this request.
        """
        request = replace(request, public_key=_canonical_key(request.public_key))
        stored = self._check_challenge(request, (ACTION_REGISTRATION,))
        if self.users.public_key_exists(request.public_key):
            raise KeyExistsError("User already exists")
        self._claim(stored)

        user = self.users.create(request.public_key, request.metadata)
        session, tokens = self._open_session(user)
        logger.info("Registered user %s (session %s)", user.id, session.id)
        return AuthResult(user=user, key_info=user.public_key, tokens=tokens, session=session)

    def verify(self, request: VerifyRequest) -> AuthResult:
        """Redeem a login challenge for an existing user. Never creates users."""
        request = replace(request, public_key=_canonical_key(request.public_key))
        stored = self._check_challenge(request, LOGIN_ACTIONS)
        user = self.users.find_by_public_key(request.public_key)
        if user is None:
            raise NotFoundError("User not found", error_code=ERROR_CODES["USER_NOT_FOUND"])
        self._claim(stored)

        self.users.update_last_login(user.id, request.public_key)
        user = self.users.find_by_id(user.id) or user
        session, tokens = self._open_session(user)
        logger.info("User %s logged in (session %s)", user.id, session.id)
        return AuthResult(user=user, key_info=user.public_key, tokens=tokens, session=session)

    def logout(self, session_id: str) -> None:
        """Invalidate one session. Invalidating an already-invalid session is fine."""
        if self.sessions.invalidate(session_id):
            logger.info("Session %s invalidated", session_id)

    def logout_all(self, user_id: str) -> int:
        """Invalidate every live session of ``user_id``; returns how many were open."""
        count = self.sessions.invalidate_all_for_user(user_id)
        logger.info("Invalidated %d session(s) for user %s", count, user_id)
        return count

    def refresh(self, refresh_token: str) -> TokenPair:
        """Mint a new pair for the session behind ``refresh_token``.

        The session is re-checked in the store, so logging out revokes refresh
        tokens that are otherwise still unexpired. The session id is kept.
        """
        payload = self.tokens.verify(refresh_token, "refresh")
        if not self.sessions.is_valid(payload.session_id):
            raise UnauthorizedError(
                "Session is invalid or expired", error_code=ERROR_CODES["INVALID_TOKEN"]
            )
        if self.users.find_by_id(payload.sub) is None:
            raise NotFoundError("User not found", error_code=ERROR_CODES["USER_NOT_FOUND"])
        return self.tokens.issue(payload.sub, payload.public_key_id, payload.session_id)

    def get_user(self, user_id: str) -> UserRecord | None:
        return self.users.find_by_id(user_id)


def _canonical_key(public_key: str) -> str:
    """Map any accepted encoding of a key to the single form the stores compare."""
    try:
        return canonical_public_key(public_key)
    except ValueError as err:
        raise ValidationError(
            "Invalid public key", error_code=ERROR_CODES["INVALID_PUBLIC_KEY"]
        ) from err
