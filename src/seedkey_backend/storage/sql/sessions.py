"""SQL session store."""

from __future__ import annotations

from sqlalchemy import delete, update

from seedkey_backend.models import AuthSession
from seedkey_backend.storage.protocols import DEFAULT_SESSION_TTL_SECONDS
from seedkey_backend.storage.records import SessionRecord
from seedkey_backend.storage.sql.base import SqlStore
from seedkey_backend.utils.ids import ID_PREFIX_SESSION, generate_id


class SqlSessionStore(SqlStore):
    """Sessions persisted in the ``sessions`` table."""

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
            invalidated=False,
        )
        with self._transaction() as db:
            db.add(
                AuthSession(
                    id=record.id,
                    user_id=record.user_id,
                    public_key_id=record.public_key_id,
                    created_at=record.created_at,
                    expires_at=record.expires_at,
                    invalidated=False,
                )
            )
        return record

    def find_by_id(self, session_id: str) -> SessionRecord | None:
        with self._transaction() as db:
            row = db.get(AuthSession, session_id)
            if row is None:
                return None
            return SessionRecord(
                id=row.id,
                user_id=row.user_id,
                public_key_id=row.public_key_id,
                created_at=row.created_at,
                expires_at=row.expires_at,
                invalidated=row.invalidated,
            )

    def invalidate(self, session_id: str) -> bool:
        """Mark the session invalid. Returns True if the session exists."""
        with self._transaction() as db:
            result = db.execute(
                update(AuthSession).where(AuthSession.id == session_id).values(invalidated=True)
            )
            return (result.rowcount or 0) > 0

    def invalidate_all_for_user(self, user_id: str) -> int:
        with self._transaction() as db:
            result = db.execute(
                update(AuthSession)
                .where(AuthSession.user_id == user_id, AuthSession.invalidated.is_(False))
                .values(invalidated=True)
            )
            return result.rowcount or 0

    def is_valid(self, session_id: str) -> bool:
        record = self.find_by_id(session_id)
        if record is None:
            return False
        return record.is_valid(self._clock())

    def cleanup(self) -> int:
        now = self._clock()
        with self._transaction() as db:
            result = db.execute(delete(AuthSession).where(AuthSession.expires_at < now))
            return result.rowcount or 0
