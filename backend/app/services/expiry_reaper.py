"""Expired magic link reaper.

asyncio background task started from the FastAPI lifespan. Periodically
clears token state for users whose link has expired. Verification already
rejects expired tokens on its own; the sweep only keeps dead digests from
lingering in the users table.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from app.repositories.base import RepositoryScope

logger = logging.getLogger(__name__)

# Default interval: hourly
DEFAULT_INTERVAL_SECONDS = 60 * 60


class ExpiryReaper:
    """Background worker that periodically clears expired magic links.

    Lifecycle:
    - start() creates an asyncio task that runs the sweep loop.
    - stop() cancels the task and waits for graceful shutdown.
    - run_once() executes a single sweep (for testing).

    Args:
        repository_scope: Opens a repository for one unit of work.
        interval_seconds: Seconds between sweeps.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        repository_scope: RepositoryScope,
        *,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository_scope = repository_scope
        self._interval_seconds = interval_seconds
        self._clock = clock or (lambda: datetime.now(UTC))
        self._task: asyncio.Task[None] | None = None
        self._last_run_at: datetime | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the background task is currently active."""
        return self._running and self._task is not None and not self._task.done()

    @property
    def last_run_at(self) -> datetime | None:
        """Timestamp of the most recent completed sweep."""
        return self._last_run_at

    def start(self) -> None:
        """Start the background sweep loop.

        No-op if already running. Must be called with a running event loop.
        """
        if self.is_running:
            logger.warning("Expiry reaper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Expiry reaper started (interval=%ds)", self._interval_seconds)

    async def stop(self) -> None:
        """Stop the sweep loop and wait for the task to finish."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Expiry reaper stopped")

    async def run_once(self) -> int:
        """Execute a single sweep.

        Returns:
            Number of users whose expired token was cleared.
        """
        now = self._clock()
        async with self._repository_scope() as repository:
            cleared = await repository.clear_expired_tokens(now=now)
        self._last_run_at = now
        return cleared

    async def _run_loop(self) -> None:
        """Background loop: sweep, sleep, repeat."""
        try:
            while self._running:
                try:
                    cleared = await self.run_once()
                    if cleared > 0:
                        logger.info("Cleaned up %d expired magic links", cleared)
                except Exception:  # noqa: BLE001
                    logger.exception("Error in expired magic link sweep")
                await asyncio.sleep(self._interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Expiry reaper loop cancelled")
            raise
