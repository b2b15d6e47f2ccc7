"""Cancelable one-shot delay on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Literal

logger = logging.getLogger(__name__)

DelayState = Literal["idle", "pending", "fired", "cancelled"]


class CancelableDelay:
    """Run a coroutine callback once after a delay unless cancelled first.

    Cancellation only works while the delay is pending. Once the callback has
    started it runs to completion; cancelling then returns False.

    Parameters
    ----------
    delay : float
        Seconds to wait before firing.
    callback : callable
        Zero-argument coroutine function invoked when the delay elapses.
    name : str, optional
        Name used for the underlying task and in log messages.

    Examples
    --------
    >>> async def main():
    ...     fired = []
    ...     async def cb():
    ...         fired.append(True)
    ...     timer = CancelableDelay(10.0, cb).start()
    ...     timer.cancel()
    ...     await timer.wait()
    ...     return fired, timer.cancelled
    >>> asyncio.run(main())
    ([], True)

    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str | None = None,
    ) -> None:
        self.delay = delay
        self.name = name or "delay"
        self._callback = callback
        self._state: DelayState = "idle"
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._state == "pending"

    @property
    def fired(self) -> bool:
        return self._state == "fired"

    @property
    def cancelled(self) -> bool:
        return self._state == "cancelled"

    def start(self) -> CancelableDelay:
        """Schedule the delay on the running loop. Returns self."""
        if self._state != "idle":
            raise RuntimeError(f"{self.name} was already started")
        loop = asyncio.get_running_loop()
        self._state = "pending"
        self._task = loop.create_task(self._run(), name=self.name)
        self._task.add_done_callback(self._log_failure)
        return self

    def cancel(self) -> bool:
        """Cancel the delay if it has not fired yet.

        Returns
        -------
        bool
            True if the callback is now guaranteed never to run.

        """
        if self._state != "pending":
            return False
        self._state = "cancelled"
        if self._task is not None:
            self._task.cancel()
        logger.debug("%s cancelled before firing", self.name)
        return True

    async def wait(self) -> None:
        """Wait until the delay is cancelled or its callback has finished."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        if self._state != "pending":
            return
        self._state = "fired"
        logger.debug("%s fired after %.3f s", self.name, self.delay)
        await self._callback()

    def _log_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "%s callback failed", self.name, exc_info=(type(exc), exc, exc.__traceback__)
            )
