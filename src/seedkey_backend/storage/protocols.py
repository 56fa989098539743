"""Capability interfaces the authentication core requires from a store.

Any backend providing these operations with the stated atomicity can back the
service layer; the SQL and in-memory implementations in this package are two
such backends.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from seedkey_backend.storage.records import (
    KeyMetadata,
    PublicKeyInfo,
    SessionRecord,
    StoredChallenge,
    UserRecord,
)

Clock = Callable[[], int]

DEFAULT_SESSION_TTL_SECONDS = 30 * 24 * 60 * 60


class ChallengeStore(Protocol):
    def save(self, challenge: StoredChallenge) -> None: ...

    def find_by_id(self, challenge_id: str) -> StoredChallenge | None: ...

    def mark_as_used(self, challenge_id: str) -> bool:
        """Atomically flip ``used`` from False to True.

        Returns True only for the caller whose update took effect.
        """
        ...

    def is_nonce_used(self, nonce: str) -> bool: ...

    def delete(self, challenge_id: str) -> None: ...

    def cleanup(self) -> int: ...


class UserStore(Protocol):
    def find_by_id(self, user_id: str) -> UserRecord | None: ...

    def find_by_public_key(self, public_key: str) -> UserRecord | None: ...

    def create(self, public_key: str, metadata: KeyMetadata | None = None) -> UserRecord:
        """Create a user and its key; raises KeyExistsError if the key is taken."""
        ...

    def update_last_login(self, user_id: str, public_key: str) -> None: ...

    def public_key_exists(self, public_key: str) -> bool: ...

    def replace_public_key(
        self, user_id: str, new_public_key: str, metadata: KeyMetadata | None = None
    ) -> PublicKeyInfo | None: ...


class SessionStore(Protocol):
    def create(
        self, user_id: str, public_key_id: str, ttl_seconds: int | None = None
    ) -> SessionRecord: ...

    def find_by_id(self, session_id: str) -> SessionRecord | None: ...

    def invalidate(self, session_id: str) -> bool: ...

    def invalidate_all_for_user(self, user_id: str) -> int: ...

    def is_valid(self, session_id: str) -> bool: ...

    def cleanup(self) -> int: ...


class HealthCheck(Protocol):
    def ping(self) -> bool: ...


@dataclass(frozen=True)
class SeedKeyStores:
    """The three stores the service layer is built from."""

    users: UserStore
    challenges: ChallengeStore
    sessions: SessionStore
    health: HealthCheck | None = None

    def is_healthy(self) -> bool:
        """Return True if the backing store answers a trivial query."""
        if self.health is None:
            return True
        return self.health.ping()
