"""Scheduling primitives gateways use for polling."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class TimeProvider(Protocol):
    """Clock and scheduler consumed by gateways."""

    def utc_now(self) -> datetime:
        """Current time in UTC."""
        ...

    def set_interval(self, callback: Callable[[], None], interval: float) -> Callable[[], None]:
        """Invoke ``callback`` every ``interval`` seconds.

        Returns:
            A callable that cancels the schedule
        """
        ...

    def set_immediate(self, callback: Callable[[], None]) -> None:
        """Invoke ``callback`` once, as soon as the loop is free."""
        ...


class AsyncioTimeProvider:
    """TimeProvider backed by the running asyncio event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def utc_now(self) -> datetime:
        return datetime.now(timezone.utc)

    def set_interval(self, callback: Callable[[], None], interval: float) -> Callable[[], None]:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    callback()
                except Exception:
                    logger.exception("interval callback %r failed", callback)

        task = asyncio.get_running_loop().create_task(_loop())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task.cancel

    def set_immediate(self, callback: Callable[[], None]) -> None:
        asyncio.get_running_loop().call_soon(callback)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    @property
    def active_timers(self) -> int:
        return len(self._tasks)


class ManualTimeProvider:
    """TimeProvider that only runs callbacks when told to.

    Used for one-shot commands, where nothing should poll in the background.
    """

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now
        self.intervals: list[tuple[Callable[[], None], float]] = []
        self.immediates: list[Callable[[], None]] = []

    def utc_now(self) -> datetime:
        return self.now or datetime.now(timezone.utc)

    def set_interval(self, callback: Callable[[], None], interval: float) -> Callable[[], None]:
        entry = (callback, interval)
        self.intervals.append(entry)

        def _cancel() -> None:
            if entry in self.intervals:
                self.intervals.remove(entry)

        return _cancel

    def set_immediate(self, callback: Callable[[], None]) -> None:
        self.immediates.append(callback)

    def run_immediates(self) -> None:
        pending, self.immediates = self.immediates, []
        for callback in pending:
            callback()

    def tick(self) -> None:
        """Fire every registered interval callback once."""
        for callback, _ in list(self.intervals):
            callback()
