"""Shared plumbing for the SQLAlchemy-backed stores."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from seedkey_backend.core.errors import InternalError, SeedKeyError
from seedkey_backend.db.time import now_ms
from seedkey_backend.storage.protocols import Clock

logger = logging.getLogger(__name__)


class SqlStore:
    """Base class holding the session factory and clock.

    Every public store operation runs in its own short transaction opened via
    :meth:`_transaction`, so a store instance is safe to share across requests.
    """

    def __init__(self, session_factory: sessionmaker[Session], clock: Clock = now_ms) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        """Yield a session inside a transaction, committing on success.

        Domain errors raised inside the block pass through untouched; any other
        SQLAlchemy failure is reported as an ``InternalError``.
        """
        try:
            with self._session_factory.begin() as db:
                yield db
        except SeedKeyError:
            raise
        except SQLAlchemyError as err:
            logger.error("%s operation failed: %s", type(self).__name__, err)
            raise InternalError("Store operation failed") from err


class SqlHealthCheck(SqlStore):
    """Answers readiness probes with a trivial round trip."""

    def ping(self) -> bool:
        try:
            with self._session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as err:
            logger.warning("Database ping failed: %s", err)
            return False
        return True
