"""Manage provisional-mark revert timers keyed by (player_id, cell)."""

import logging
from collections.abc import Awaitable, Callable

from bingo.logic.timer import RevertTimer

logger = logging.getLogger(__name__)

# Callback type: (player_id, cell, generation) -> Awaitable[None]
RevertCallback = Callable[[str, int, int], Awaitable[None]]


class TimerManager:
    """Manage the revert timer lifecycle for every provisional mark.

    This class handles timer creation, restart and cancellation. It does NOT
    inspect events -- the caller (SessionManager) extracts the cell changes
    from events and calls the appropriate methods. At most one timer exists per
    cell; scheduling a cell again replaces its timer.
    """

    def __init__(self, on_revert: RevertCallback, delay: float) -> None:
        self._timers: dict[tuple[str, int], RevertTimer] = {}
        self._on_revert = on_revert
        self._delay = delay

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    def has_timer(self, player_id: str, cell: int) -> bool:
        return (player_id, cell) in self._timers

    def schedule(self, player_id: str, cell: int, generation: int) -> None:
        """Start the revert countdown for a provisional mark, replacing any earlier one."""
        self.cancel(player_id, cell)
        key = (player_id, cell)
        timer: RevertTimer

        async def fire() -> None:
            # drop the entry before the callback runs, so a cancel() issued while
            # handling the revert does not cancel the task that is running it
            if self._timers.get(key) is timer:
                del self._timers[key]
            await self._on_revert(player_id, cell, generation)

        timer = RevertTimer(self._delay, fire)
        self._timers[key] = timer
        timer.start()

    def cancel(self, player_id: str, cell: int) -> None:
        """Cancel the timer for one cell. No-op if none is pending."""
        timer = self._timers.pop((player_id, cell), None)
        if timer is not None:
            timer.cancel()

    def cancel_player(self, player_id: str) -> None:
        """Cancel every pending timer for a player."""
        for key in [k for k in self._timers if k[0] == player_id]:
            self._timers.pop(key).cancel()

    def cancel_all(self) -> None:
        """Cancel every pending timer."""
        if self._timers:
            logger.info("cancelling %d pending revert timers", len(self._timers))
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
