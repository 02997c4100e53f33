"""Async debouncing for bursts of user input."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Debouncer(Generic[T, R]):
    """Run ``callback`` once for the last value submitted within ``delay_seconds``.

    A newer submission cancels the pending call, including one whose request
    is already in flight.
    """

    delay_seconds: float
    callback: Callable[[T], Awaitable[R]]
    _task: "asyncio.Task[R] | None" = field(default=None, repr=False)

    def submit(self, value: T) -> "asyncio.Task[R]":
        """Schedule ``callback(value)``, superseding any pending call."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(value))
        return self._task

    def cancel(self) -> None:
        """Cancel the pending call, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> R | None:
        """Wait for the pending call and return its result."""
        if self._task is None:
            return None
        return await self._task

    async def _run(self, value: T) -> R:
        await asyncio.sleep(self.delay_seconds)
        return await self.callback(value)
