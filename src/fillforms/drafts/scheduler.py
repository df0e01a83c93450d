"""Cooperative scheduling primitives for autosave and auto-validation."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from fillforms.exceptions import PackageError
from fillforms.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)


class SupersessionGuard:
    """Monotonic tokens per request kind; only the latest token's result may be applied."""

    def __init__(self) -> None:
        """Initialize guard."""
        self._tokens: dict[str, int] = {}

    def issue(self, kind: str) -> int:
        """Issue a new token for a request kind.

        Args:
            kind (str): Request kind, e.g. `save` or `vision`.

        Returns:
            int: New token; every earlier token of the kind becomes stale.
        """
        token = self._tokens.get(kind, 0) + 1
        self._tokens[kind] = token
        return token

    def is_current(self, kind: str, token: int) -> bool:
        """Return whether a token is still the latest of its kind."""
        return self._tokens.get(kind, 0) == token

    def invalidate(self, kind: str) -> None:
        """Make every outstanding token of a kind stale."""
        self.issue(kind)


class DebouncedTask:
    """Run a coroutine once after a quiet period.

    Scheduling again while a run is pending restarts the quiet period instead of stacking a
    second run. A run that already started is left to finish.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[], Awaitable[object]]) -> None:
        """Initialize task.

        Args:
            delay_seconds (float): Quiet period.
            callback (Callable[[], Awaitable[object]]): Coroutine factory to run.
        """
        self._delay = delay_seconds
        self._callback = callback
        self._pending: asyncio.Task[None] | None = None
        self._running: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        """Return whether a run is waiting for its quiet period to end."""
        return self._pending is not None and not self._pending.done()

    def schedule(self) -> None:
        """Schedule a run, restarting the quiet period of a pending one."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._wait_then_run())

    def cancel(self) -> None:
        """Drop the pending run, if any."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def flush(self) -> None:
        """Run a pending call immediately."""
        if not self.pending:
            return
        self.cancel()
        await self._invoke()

    async def wait(self) -> None:
        """Wait until the pending and running calls have finished."""
        while True:
            task = next(
                (task for task in (self._pending, self._running) if task is not None and not task.done()),
                None,
            )
            if task is None:
                return
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _wait_then_run(self) -> None:
        await asyncio.sleep(self._delay)
        self._running = asyncio.current_task()
        self._pending = None
        await self._invoke()

    async def _invoke(self) -> None:
        try:
            await self._callback()
        except PackageError as exc:
            logger.warning("Debounced task failed", extra={"error": str(exc)})


class AutoValidationTimer:
    """Periodic validation trigger.

    A tick is skipped while a run is in flight or while the owner reports it is not
    accepting automatic runs (for example outside edit mode).
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[object]],
        *,
        is_enabled: Callable[[], bool] | None = None,
    ) -> None:
        """Initialize timer.

        Args:
            interval_seconds (float): Interval between ticks.
            callback (Callable[[], Awaitable[object]]): Validation coroutine factory.
            is_enabled (Callable[[], bool] | None): Predicate gating each tick.
        """
        self._interval = interval_seconds
        self._callback = callback
        self._is_enabled = is_enabled or (lambda: True)
        self._loop_task: asyncio.Task[None] | None = None
        self._in_flight = False
        self._deadline = 0.0

    @property
    def running(self) -> bool:
        """Return whether the timer loop is active."""
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        """Return whether a validation run is in progress."""
        return self._in_flight

    def start(self) -> None:
        """Start ticking; no-op when already running."""
        if not self.running:
            loop = asyncio.get_running_loop()
            self._deadline = loop.time() + self._interval
            self._loop_task = loop.create_task(self._loop())

    def stop(self) -> None:
        """Stop ticking."""
        if self._loop_task is not None:
            self._loop_task.cancel()
        self._loop_task = None

    def reset(self) -> None:
        """Restart the interval, typically after a manual validation."""
        if self.running:
            self._deadline = asyncio.get_running_loop().time() + self._interval

    async def run_now(self) -> bool:
        """Run one validation unless one is already in flight.

        Returns:
            bool: True when a run happened.
        """
        if self._in_flight:
            return False
        self._in_flight = True
        try:
            await self._callback()
        except PackageError as exc:
            logger.warning("Auto-validation failed", extra={"error": str(exc)})
        finally:
            self._in_flight = False
        return True

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            remaining = self._deadline - loop.time()
            if remaining > 0:
                await asyncio.sleep(remaining)
                continue
            self._deadline = loop.time() + self._interval
            if self._in_flight or not self._is_enabled():
                continue
            await self.run_now()
