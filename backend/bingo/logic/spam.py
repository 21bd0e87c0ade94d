"""Sliding-window spam detector for per-player mark attempts."""

import time
from collections import deque


class SpamWindow:
    """Count a player's mark attempts over a trailing time window.

    Each record() call adds the current attempt, drops attempts older than the
    window and reports whether the window now holds at least `threshold`
    attempts. Old entries are trimmed lazily on the next attempt.
    """

    def __init__(self, threshold: int, window_seconds: float) -> None:
        self._threshold = threshold
        self._window = window_seconds
        self._attempts: deque[float] = deque()

    def record(self) -> bool:
        """Record one mark attempt. Returns True if the player is spamming."""
        now = time.monotonic()
        self._attempts.append(now)
        while self._attempts and now - self._attempts[0] >= self._window:
            self._attempts.popleft()
        return len(self._attempts) >= self._threshold

    def clear(self) -> None:
        self._attempts.clear()

    def __len__(self) -> int:
        return len(self._attempts)
