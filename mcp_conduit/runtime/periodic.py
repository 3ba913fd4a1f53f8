"""Cancellable periodic background tasks.

Every timer in the server (session sweep, rate-limit sweep, metrics
compaction, SSE heartbeats) is a :class:`PeriodicTask` owned by the component
that created it.  The owner starts it and is responsible for stopping it;
stopping is idempotent so a task is never cancelled twice.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Union[None, Awaitable[None]]]


class PeriodicTask:
    """Run *callback* every *interval* seconds until cancelled.

    The first tick happens one full interval after :meth:`start`.  Exceptions
    raised by the callback are logged and do not stop the loop.
    """

    def __init__(self, name: str, interval: float, callback: TickCallback) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task[None]] = None
        self._cancelled = False
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        """Schedule the loop on the running event loop (no-op if already running)."""
        if self._cancelled:
            raise RuntimeError(f"Periodic task '{self.name}' was cancelled and cannot restart")
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.debug("Periodic task '%s' started (interval=%.1fs).", self.name, self.interval)

    def cancel(self) -> bool:
        """Cancel the loop without waiting.

        Returns ``True`` only for the call that actually cancelled the task.
        """
        if self._cancelled:
            return False
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("Periodic task '%s' cancelled after %d tick(s).", self.name, self.ticks)
        return True

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                self.ticks += 1
                try:
                    outcome: Any = self._callback()
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception:
                    logger.exception("Periodic task '%s' tick failed.", self.name)
        except asyncio.CancelledError:
            logger.debug("Periodic task '%s' loop cancelled.", self.name)
            raise
