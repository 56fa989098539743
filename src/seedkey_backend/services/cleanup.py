"""Background sweep of expired challenges and sessions."""

from __future__ import annotations

import asyncio
import logging

from seedkey_backend.core.errors import SeedKeyError
from seedkey_backend.storage.protocols import ChallengeStore, SessionStore

logger = logging.getLogger(__name__)


class CleanupWorker:
    """Periodically deletes rows whose ``expires_at`` is in the past.

    Deleting an expired row never changes an authorization outcome, so the
    sweep may run concurrently with live traffic and any number of times.
    """

    def __init__(
        self,
        challenges: ChallengeStore,
        sessions: SessionStore,
        interval_seconds: float = 300.0,
    ) -> None:
        self.challenges = challenges
        self.sessions = sessions
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the loop and wait for an in-flight sweep to finish."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def run_once(self) -> tuple[int, int]:
        """Sweep both stores once; returns ``(challenges_removed, sessions_removed)``."""
        challenges_removed = await asyncio.to_thread(self.challenges.cleanup)
        sessions_removed = await asyncio.to_thread(self.sessions.cleanup)
        if challenges_removed or sessions_removed:
            logger.info(
                "Cleanup removed %d challenge(s) and %d session(s)",
                challenges_removed,
                sessions_removed,
            )
        return challenges_removed, sessions_removed

    async def _run(self) -> None:
        interval = max(0.1, float(self.interval_seconds))

        # First sweep happens one interval after start, not during startup.
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            else:
                return

            try:
                await self.run_once()
            except SeedKeyError as e:
                logger.warning("CleanupWorker encountered store error: %s", e)
            except (OSError, ConnectionError, TimeoutError) as e:
                logger.warning("CleanupWorker encountered connection error: %s", e)
