"""In-memory implementations of the store protocols.

Used by tests and single-process development. Each operation holds the
store's lock for its whole duration, which gives the same per-operation
atomicity (conditional update, unique constraint, transaction) the SQL stores
get from the database.
"""

from __future__ import annotations

from dataclasses import replace
from threading import Lock

from seedkey_backend.core.errors import KeyExistsError
from seedkey_backend.db.time import now_ms
from seedkey_backend.storage.protocols import (
    DEFAULT_SESSION_TTL_SECONDS,
    Clock,
    SeedKeyStores,
)
from seedkey_backend.storage.records import (
    KeyMetadata,
    PublicKeyInfo,
    SessionRecord,
    StoredChallenge,
    UserRecord,
)
from seedkey_backend.utils.ids import (
    ID_PREFIX_KEY,
    ID_PREFIX_SESSION,
    ID_PREFIX_USER,
    generate_id,
)


class InMemoryChallengeStore:
    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._lock = Lock()
        self._challenges: dict[str, StoredChallenge] = {}

    def save(self, challenge: StoredChallenge) -> None:
        with self._lock:
            existing = self._challenges.get(challenge.id)
            if existing is None:
                self._challenges[challenge.id] = challenge
            elif challenge.used and not existing.used:
                self._challenges[challenge.id] = replace(existing, used=True)

    def find_by_id(self, challenge_id: str) -> StoredChallenge | None:
        with self._lock:
            return self._challenges.get(challenge_id)

    def mark_as_used(self, challenge_id: str) -> bool:
        with self._lock:
            existing = self._challenges.get(challenge_id)
            if existing is None or existing.used:
                return False
            self._challenges[challenge_id] = replace(existing, used=True)
            return True

    def is_nonce_used(self, nonce: str) -> bool:
        with self._lock:
            return any(c.used and c.nonce == nonce for c in self._challenges.values())

    def delete(self, challenge_id: str) -> None:
        with self._lock:
            self._challenges.pop(challenge_id, None)

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [cid for cid, c in self._challenges.items() if c.expires_at < now]
            for cid in expired:
                del self._challenges[cid]
            return len(expired)


class InMemoryUserStore:
    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._lock = Lock()
        self._users: dict[str, UserRecord] = {}
        self._user_by_key: dict[str, str] = {}

    def find_by_id(self, user_id: str) -> UserRecord | None:
        with self._lock:
            return self._users.get(user_id)

    def find_by_public_key(self, public_key: str) -> UserRecord | None:
        with self._lock:
            user_id = self._user_by_key.get(public_key)
            return self._users.get(user_id) if user_id else None

    def create(self, public_key: str, metadata: KeyMetadata | None = None) -> UserRecord:
        now = self._clock()
        with self._lock:
            if public_key in self._user_by_key:
                raise KeyExistsError("Public key is already registered")
            user = UserRecord(
                id=generate_id(ID_PREFIX_USER),
                public_key=_new_key(public_key, metadata, now),
                created_at=now,
                last_login=now,
            )
            self._users[user.id] = user
            self._user_by_key[public_key] = user.id
            return user

    def update_last_login(self, user_id: str, public_key: str) -> None:
        now = self._clock()
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.public_key.public_key != public_key:
                return
            self._users[user_id] = replace(
                user,
                last_login=now,
                public_key=replace(user.public_key, last_used=now),
            )

    def public_key_exists(self, public_key: str) -> bool:
        with self._lock:
            return public_key in self._user_by_key

    def replace_public_key(
        self, user_id: str, new_public_key: str, metadata: KeyMetadata | None = None
    ) -> PublicKeyInfo | None:
        now = self._clock()
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            owner = self._user_by_key.get(new_public_key)
            if owner is not None and owner != user_id:
                raise KeyExistsError("Public key is already registered")
            key = _new_key(new_public_key, metadata, now)
            self._user_by_key.pop(user.public_key.public_key, None)
            self._user_by_key[new_public_key] = user_id
            self._users[user_id] = replace(user, public_key=key)
            return key


class InMemorySessionStore:
    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._lock = Lock()
        self._sessions: dict[str, SessionRecord] = {}

    def create(
        self, user_id: str, public_key_id: str, ttl_seconds: int | None = None
    ) -> SessionRecord:
        now = self._clock()
        ttl = ttl_seconds if ttl_seconds else DEFAULT_SESSION_TTL_SECONDS
        record = SessionRecord(
            id=generate_id(ID_PREFIX_SESSION),
            user_id=user_id,
            public_key_id=public_key_id,
            created_at=now,
            expires_at=now + ttl * 1000,
        )
        with self._lock:
            self._sessions[record.id] = record
        return record

    def find_by_id(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            return self._sessions.get(session_id)

    def invalidate(self, session_id: str) -> bool:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return False
            self._sessions[session_id] = replace(record, invalidated=True)
            return True

    def invalidate_all_for_user(self, user_id: str) -> int:
        with self._lock:
            targets = [
                s for s in self._sessions.values() if s.user_id == user_id and not s.invalidated
            ]
            for record in targets:
                self._sessions[record.id] = replace(record, invalidated=True)
            return len(targets)

    def is_valid(self, session_id: str) -> bool:
        now = self._clock()
        with self._lock:
            record = self._sessions.get(session_id)
            return record is not None and record.is_valid(now)

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expires_at < now]
            for sid in expired:
                del self._sessions[sid]
            return len(expired)


def _new_key(public_key: str, metadata: KeyMetadata | None, now: int) -> PublicKeyInfo:
    return PublicKeyInfo(
        id=generate_id(ID_PREFIX_KEY),
        public_key=public_key,
        device_name=metadata.device_name if metadata else None,
        added_at=now,
        last_used=now,
    )


def create_memory_stores(clock: Clock = now_ms) -> SeedKeyStores:
    """Build a fresh, empty set of in-memory stores sharing one clock."""
    return SeedKeyStores(
        users=InMemoryUserStore(clock),
        challenges=InMemoryChallengeStore(clock),
        sessions=InMemorySessionStore(clock),
    )
