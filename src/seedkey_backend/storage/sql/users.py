"""SQL user store: users and their single public key."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seedkey_backend.core.errors import KeyExistsError
from seedkey_backend.models import PublicKey, User
from seedkey_backend.storage.records import KeyMetadata, PublicKeyInfo, UserRecord
from seedkey_backend.storage.sql.base import SqlStore
from seedkey_backend.utils.ids import ID_PREFIX_KEY, ID_PREFIX_USER, generate_id

logger = logging.getLogger(__name__)


class SqlUserStore(SqlStore):
    """Users persisted in ``users`` with their key in ``public_keys``.

    Key uniqueness is enforced by the unique constraint on
    ``public_keys.public_key``; a violated constraint surfaces as
    :class:`KeyExistsError`.
    """

    def find_by_id(self, user_id: str) -> UserRecord | None:
        with self._transaction() as db:
            user = db.get(User, user_id)
            if user is None or user.public_key is None:
                return None
            return _to_record(user, user.public_key)

    def find_by_public_key(self, public_key: str) -> UserRecord | None:
        with self._transaction() as db:
            key = db.execute(
                select(PublicKey).where(PublicKey.public_key == public_key)
            ).scalar_one_or_none()
            if key is None:
                return None
            return _to_record(key.user, key)

    def create(self, public_key: str, metadata: KeyMetadata | None = None) -> UserRecord:
        now = self._clock()
        user = User(id=generate_id(ID_PREFIX_USER), created_at=now, last_login=now)
        key = _new_key(user.id, public_key, metadata, now)
        with self._transaction() as db:
            db.add(user)
            db.add(key)
            _flush_or_conflict(db, public_key)
            return _to_record(user, key)

    def update_last_login(self, user_id: str, public_key: str) -> None:
        """Touch ``last_login`` and the key's ``last_used``; no-op if the key is not the user's."""
        now = self._clock()
        with self._transaction() as db:
            touched = db.execute(
                update(PublicKey)
                .where(PublicKey.user_id == user_id, PublicKey.public_key == public_key)
                .values(last_used=now)
            )
            if not touched.rowcount:
                return
            db.execute(update(User).where(User.id == user_id).values(last_login=now))

    def public_key_exists(self, public_key: str) -> bool:
        with self._transaction() as db:
            found = db.execute(
                select(PublicKey.id).where(PublicKey.public_key == public_key)
            ).first()
            return found is not None

    def replace_public_key(
        self, user_id: str, new_public_key: str, metadata: KeyMetadata | None = None
    ) -> PublicKeyInfo | None:
        """Swap the user's key for ``new_public_key`` in one transaction.

        Returns None for an unknown user. If the new key belongs to someone else
        the transaction rolls back and the old key stays in place.
        """
        now = self._clock()
        with self._transaction() as db:
            if db.get(User, user_id) is None:
                return None
            db.execute(delete(PublicKey).where(PublicKey.user_id == user_id))
            key = _new_key(user_id, new_public_key, metadata, now)
            db.add(key)
            _flush_or_conflict(db, new_public_key)
            logger.info("Replaced public key for user %s (new key id %s)", user_id, key.id)
            return _key_info(key)


def _new_key(
    user_id: str, public_key: str, metadata: KeyMetadata | None, now: int
) -> PublicKey:
    return PublicKey(
        id=generate_id(ID_PREFIX_KEY),
        user_id=user_id,
        public_key=public_key,
        device_name=metadata.device_name if metadata else None,
        added_at=now,
        last_used=now,
    )


def _flush_or_conflict(db: Session, public_key: str) -> None:
    try:
        db.flush()
    except IntegrityError as err:
        logger.info("Rejected duplicate public key insert")
        raise KeyExistsError("Public key is already registered") from err


def _key_info(key: PublicKey) -> PublicKeyInfo:
    return PublicKeyInfo(
        id=key.id,
        public_key=key.public_key,
        device_name=key.device_name or None,
        added_at=key.added_at,
        last_used=key.last_used,
    )


def _to_record(user: User, key: PublicKey) -> UserRecord:
    return UserRecord(
        id=user.id,
        public_key=_key_info(key),
        created_at=user.created_at,
        last_login=user.last_login,
    )
