"""SQL challenge store."""

from __future__ import annotations

import json

from sqlalchemy import delete, select, update

from seedkey_backend.models import Challenge
from seedkey_backend.storage.records import StoredChallenge
from seedkey_backend.storage.sql.base import SqlStore


class SqlChallengeStore(SqlStore):
    """Challenges persisted in the ``challenges`` table."""

    def save(self, challenge: StoredChallenge) -> None:
        """Insert the challenge, or merge its ``used`` flag into an existing row."""
        with self._transaction() as db:
            row = db.get(Challenge, challenge.id)
            if row is None:
                db.add(
                    Challenge(
                        id=challenge.id,
                        challenge=json.dumps(challenge.payload.to_wire(), sort_keys=True),
                        nonce=challenge.nonce,
                        public_key=challenge.public_key,
                        action=challenge.action,
                        domain=challenge.domain,
                        created_at=challenge.created_at,
                        expires_at=challenge.expires_at,
                        used=challenge.used,
                    )
                )
            else:
                # used never goes back to False
                row.used = row.used or challenge.used

    def find_by_id(self, challenge_id: str) -> StoredChallenge | None:
        with self._transaction() as db:
            row = db.get(Challenge, challenge_id)
            if row is None:
                return None
            return _to_record(row)

    def mark_as_used(self, challenge_id: str) -> bool:
        """Claim the challenge with a single conditional update."""
        with self._transaction() as db:
            result = db.execute(
                update(Challenge)
                .where(Challenge.id == challenge_id, Challenge.used.is_(False))
                .values(used=True)
            )
            return (result.rowcount or 0) > 0

    def is_nonce_used(self, nonce: str) -> bool:
        with self._transaction() as db:
            found = db.execute(
                select(Challenge.id).where(Challenge.nonce == nonce, Challenge.used.is_(True))
            ).first()
            return found is not None

    def delete(self, challenge_id: str) -> None:
        with self._transaction() as db:
            db.execute(delete(Challenge).where(Challenge.id == challenge_id))

    def cleanup(self) -> int:
        """Delete challenges whose expiry has passed. Returns the number removed."""
        now = self._clock()
        with self._transaction() as db:
            result = db.execute(delete(Challenge).where(Challenge.expires_at < now))
            return result.rowcount or 0


def _to_record(row: Challenge) -> StoredChallenge:
    try:
        timestamp = int(json.loads(row.challenge)["timestamp"])
    except (ValueError, KeyError, TypeError):
        timestamp = row.created_at
    return StoredChallenge(
        id=row.id,
        nonce=row.nonce,
        timestamp=timestamp,
        domain=row.domain,
        action=row.action,
        expires_at=row.expires_at,
        created_at=row.created_at,
        public_key=row.public_key or None,
        used=row.used,
    )
