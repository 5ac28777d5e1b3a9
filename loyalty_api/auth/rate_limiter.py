"""
Reset Request Rate Limiter
--------------------------
In-memory table of requester -> time of their last successful password reset
request.

The table is owned by one ResetRateLimiter instance created at application
startup (``app.state.reset_rate_limiter``). It is process-local: separate
worker processes keep separate windows and a restart clears it.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResetRateLimiter:
    """Allows one reset request per requester per window."""

    def __init__(
        self,
        window_seconds: int,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.window = timedelta(seconds=window_seconds)
        self._clock = clock
        self._last_request: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def _within_window(self, requester: str, now: datetime) -> bool:
        last = self._last_request.get(requester)
        return last is not None and now - last < self.window

    def is_limited(self, requester: str) -> bool:
        """True if ``requester`` made a recorded request less than one window ago."""
        with self._lock:
            return self._within_window(requester, self._clock())

    def record(self, requester: str) -> bool:
        """
        Record a request by ``requester`` at the current time.

        The window is re-checked under the lock, so of two requests that both
        passed is_limited() only the first to record wins. Returns False,
        leaving the table untouched, for the loser.
        """
        now = self._clock()
        with self._lock:
            if self._within_window(requester, now):
                return False
            self._last_request[requester] = now
        return True

    def purge(self) -> int:
        """Drop entries whose window has elapsed. Returns the number removed."""
        cutoff = self._clock() - self.window
        with self._lock:
            stale = [key for key, last in self._last_request.items() if last <= cutoff]
            for key in stale:
                del self._last_request[key]
        return len(stale)

