"""Cancellable delayed callbacks.

The avatar restarts itself a fixed time after entering ERROR. The pending
restart must not fire once the avatar has been detached, so it is held as
an asyncio task that can be cancelled.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from avatar.utils.logging import get_logger

logger = get_logger(__name__)

Callback = Callable[[], Awaitable[Any]]


class RestartTimer:
    """Runs one async callback after a delay.

    Scheduling again replaces the pending callback.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None
        self.logger = logger.bind(component="RestartTimer")

    @property
    def pending(self) -> bool:
        """True while a callback is scheduled and has not started."""
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, callback: Callback) -> None:
        """Schedule ``callback`` to run in ``delay`` seconds.

        Must be called from a running event loop.
        """
        self.cancel()
        self._task = asyncio.create_task(self._run(delay, callback))
        self.logger.debug("restart_scheduled", delay=delay)

    def cancel(self) -> bool:
        """Cancel the pending callback.

        Returns:
            True if a pending callback was cancelled.
        """
        if not self.pending:
            return False
        self._task.cancel()
        self._task = None
        self.logger.debug("restart_cancelled")
        return True

    async def _run(self, delay: float, callback: Callback) -> None:
        await asyncio.sleep(delay)
        # The callback may schedule a new restart; drop our handle first so
        # cancel() does not target the task that is already running.
        self._task = None
        try:
            await callback()
        except Exception as e:
            self.logger.error("scheduled_callback_failed", error=str(e), exc_info=True)
