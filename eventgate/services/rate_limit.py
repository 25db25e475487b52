"""Fixed-window rate limiting for event ingestion.

Two interchangeable backends implement the ``RateLimiter`` protocol:

* ``InMemoryRateLimiter`` keeps counters in process memory. Best-effort:
  counters are not shared between server instances.
* ``MySQLRateLimiter`` keeps counters in the ``rate_limits`` table and uses
  INSERT ... ON DUPLICATE KEY UPDATE so the reset-or-increment is atomic
  across instances.

Both count first and compare second: the request that pushes the count to
``max_requests + 1`` is the first one denied, and the first request after
the window has elapsed starts a new window with a count of 1.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

import aiomysql

from eventgate.db.pool import get_connection

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    async def allow(self, client_id: str) -> bool: ...

    async def retry_after(self, client_id: str) -> int: ...


def _seconds_left(window_seconds: float, elapsed: float) -> int:
    """Whole seconds until a window *elapsed* seconds old resets (at least 1)."""
    return max(math.ceil(window_seconds - elapsed), 1)


@dataclass
class _Window:
    count: int
    window_start: float


class InMemoryRateLimiter:
    """Per-client fixed-window counter held in a lock-protected dict.

    Counters whose window has elapsed are swept at most once per window, so
    memory stays proportional to the clients seen in roughly the last two
    windows.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: dict[str, _Window] = {}
        self._last_sweep: float | None = None

    def _expired(self, window: _Window, now: float) -> bool:
        return now - window.window_start > self.window_seconds

    def _sweep(self, now: float) -> None:
        # Caller holds the lock.
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep <= self.window_seconds:
            return
        expired = [cid for cid, w in self._counters.items() if self._expired(w, now)]
        for cid in expired:
            del self._counters[cid]
        self._last_sweep = now
        if expired:
            logger.debug("Swept %d expired rate limit counters", len(expired))

    def hit(self, client_id: str) -> bool:
        """Count one request for *client_id* and return whether it is allowed."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            window = self._counters.get(client_id)
            if window is None or self._expired(window, now):
                self._counters[client_id] = _Window(count=1, window_start=now)
                return True
            window.count += 1
            return window.count <= self.max_requests

    async def allow(self, client_id: str) -> bool:
        return self.hit(client_id)

    async def retry_after(self, client_id: str) -> int:
        """Seconds until *client_id*'s current window resets (0 if none is open)."""
        now = self._clock()
        with self._lock:
            window = self._counters.get(client_id)
            if window is None or self._expired(window, now):
                return 0
            return _seconds_left(self.window_seconds, now - window.window_start)

    def count(self, client_id: str) -> int:
        """Current count for *client_id* (0 if never seen)."""
        with self._lock:
            window = self._counters.get(client_id)
            return window.count if window else 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._last_sweep = None


class MySQLRateLimiter:
    """Fixed-window counter stored in the ``rate_limits`` table.

    Each call acquires its own connection from the pool.
    """

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def allow(self, client_id: str) -> bool:
        async with get_connection() as conn:
            return await self.record_and_check(conn, client_id)

    async def retry_after(self, client_id: str) -> int:
        async with get_connection() as conn:
            return await self.seconds_until_reset(conn, client_id)

    async def record_and_check(self, conn, client_id: str) -> bool:
        """Atomically reset-or-increment the counter and check the new value.

        The new count is captured with ``LAST_INSERT_ID(expr)`` so the value
        read back belongs to this statement even when other requests for the
        same client run concurrently.
        """
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        cutoff = now - timedelta(seconds=self.window_seconds)
        async with conn.cursor(aiomysql.DictCursor) as cur:
            await cur.execute(
                """
                INSERT INTO rate_limits (key_value, attempts, window_start)
                VALUES (%s, LAST_INSERT_ID(1), %s)
                ON DUPLICATE KEY UPDATE
                    attempts = LAST_INSERT_ID(IF(window_start < %s, 1, attempts + 1)),
                    window_start = IF(window_start < %s, %s, window_start)
                """,
                (client_id, now, cutoff, cutoff, now),
            )
            await cur.execute("SELECT LAST_INSERT_ID() AS attempts")
            row = await cur.fetchone()
            await conn.commit()

        if row is None:
            return True
        return row["attempts"] <= self.max_requests

    async def seconds_until_reset(self, conn, client_id: str) -> int:
        """Seconds until *client_id*'s stored window resets (0 if none is open)."""
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        async with conn.cursor(aiomysql.DictCursor) as cur:
            await cur.execute(
                "SELECT window_start FROM rate_limits WHERE key_value = %s",
                (client_id,),
            )
            row = await cur.fetchone()

        if row is None:
            return 0
        elapsed = (now - row["window_start"]).total_seconds()
        if elapsed > self.window_seconds:
            return 0
        return _seconds_left(self.window_seconds, elapsed)


def build_rate_limiter(settings) -> RateLimiter:
    """Create the rate limiter selected by ``RATE_LIMIT_BACKEND``."""
    backend = settings.RATE_LIMIT_BACKEND.lower()
    if backend == "memory":
        return InMemoryRateLimiter(
            settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS
        )
    if backend == "mysql":
        return MySQLRateLimiter(
            settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS
        )
    raise ValueError(f"Unsupported rate limit backend: {settings.RATE_LIMIT_BACKEND!r}")
