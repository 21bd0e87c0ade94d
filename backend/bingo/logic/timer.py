"""
One-shot cancellable timer backing a provisional mark's automatic revert.

The timer sleeps for a fixed delay and then awaits its callback. Cancelling is
idempotent: cancelling a timer that already fired or was already cancelled does
nothing. The callback must still re-validate state itself, since cancellation
can race with a callback that has already been scheduled to run.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class RevertTimer:
    def __init__(self, delay: float, on_fire: Callable[[], Awaitable[None]]) -> None:
        self._delay = delay
        self._on_fire = on_fire
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start (or restart) the countdown."""
        self.cancel()
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        """Cancel the pending countdown, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        try:
            await asyncio.sleep(self._delay)
            await self._on_fire()
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("revert timer callback failed")
