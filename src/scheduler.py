"""Cancellable delayed callbacks on a single-threaded event loop.

Every scheduled task belongs to a :class:`CancelToken`. Cancelling the token
cancels the pending loop handles and, should a handle slip through, the
firing wrapper re-checks the token so a stale callback never runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class CancelToken:
    """Owner of a group of scheduled tasks, invalidated on teardown."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._cancelled = False
        self._tasks: list[ScheduledTask] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()
        logger.debug("Token %r cancelled", self.name)

    def _track(self, task: "ScheduledTask") -> None:
        self._tasks = [t for t in self._tasks if not t.done]
        self._tasks.append(task)


class ScheduledTask:
    def __init__(self, token: CancelToken, callback: Callable[..., Any], args: tuple) -> None:
        self.token = token
        self._callback = callback
        self._args = args
        self._handle = None
        self.done = False

    def _fire(self) -> None:
        if self.done or self.token.cancelled:
            return
        self.done = True
        self._callback(*self._args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self.done = True


class Scheduler:
    """
    Thin wrapper over ``loop.call_later``.

    ``loop`` is anything with a ``call_later(delay, fn)`` returning a handle
    with ``cancel()``; defaults to the running asyncio loop at call time.
    """

    def __init__(self, loop=None) -> None:
        self._loop = loop

    @property
    def loop(self):
        if self._loop is None:
            return asyncio.get_running_loop()
        return self._loop

    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
        token: CancelToken,
    ) -> ScheduledTask | None:
        if token.cancelled:
            logger.debug("Not scheduling %r on cancelled token %r", callback, token.name)
            return None
        task = ScheduledTask(token, callback, args)
        task._handle = self.loop.call_later(max(0.0, float(delay)), task._fire)
        token._track(task)
        return task
