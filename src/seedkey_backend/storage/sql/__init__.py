"""SQLAlchemy implementations of the store protocols."""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from seedkey_backend.db.time import now_ms
from seedkey_backend.storage.protocols import Clock, SeedKeyStores
from seedkey_backend.storage.sql.base import SqlHealthCheck, SqlStore
from seedkey_backend.storage.sql.challenges import SqlChallengeStore
from seedkey_backend.storage.sql.sessions import SqlSessionStore
from seedkey_backend.storage.sql.users import SqlUserStore


def create_sql_stores(
    session_factory: sessionmaker[Session], clock: Clock = now_ms
) -> SeedKeyStores:
    """Build all stores over one session factory."""
    return SeedKeyStores(
        users=SqlUserStore(session_factory, clock),
        challenges=SqlChallengeStore(session_factory, clock),
        sessions=SqlSessionStore(session_factory, clock),
        health=SqlHealthCheck(session_factory, clock),
    )


__all__ = [
    "SqlChallengeStore",
    "SqlHealthCheck",
    "SqlSessionStore",
    "SqlStore",
    "SqlUserStore",
    "create_sql_stores",
]
