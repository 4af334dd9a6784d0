"""Client-side rate limiting using a token bucket.

The bucket starts full with ``burst`` tokens and refills continuously at
``rate`` tokens per second, never holding more than ``burst``. Each request
takes one token. When the bucket is empty the token is borrowed against
future refill and the caller sleeps until it is paid back, so a burst of
calls is spread out instead of rejected.

Reservation is synchronous and guarded by a lock, so one bucket can be
shared by concurrent tasks and threads. Only the sleep is awaited.
"""

import asyncio
import math
import threading
import time
from collections.abc import Callable

from glif.errors import RateLimitExceeded


class TokenBucket:
    """Token bucket limiter: ``rate`` permits/second with a ``burst`` capacity."""

    def __init__(self, rate: float, burst: int, *, clock: Callable[[], float] = time.monotonic):
        self.rate = float(rate)
        self.burst = int(burst)
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = float(self.burst)
        self._last = clock()

    @property
    def tokens(self) -> float:
        """Tokens available right now (negative while callers are waiting)."""
        with self._lock:
            self._refill(self._clock())
            return self._tokens

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._last)
        self._last = max(self._last, now)
        if self.rate > 0:
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)

    def reserve(self) -> float:
        """Take one token and return how long to wait before using it.

        Raises:
            RateLimitExceeded: The bucket can never grant the token
                (zero burst, or zero rate with the burst already spent).
        """
        if math.isinf(self.rate):
            return 0.0
        with self._lock:
            if self.burst < 1:
                raise RateLimitExceeded(f"burst {self.burst} cannot grant a permit")
            self._refill(self._clock())
            if self.rate <= 0:
                if self._tokens < 1:
                    raise RateLimitExceeded("rate is zero and the burst is spent")
                self._tokens -= 1
                return 0.0
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.rate

    def release(self) -> None:
        """Return a reserved token that will not be used."""
        if math.isinf(self.rate):
            return
        with self._lock:
            self._tokens = min(float(self.burst), self._tokens + 1)

    async def wait(self, timeout: float | None = None) -> None:
        """Block until a permit is available.

        Args:
            timeout: Longest acceptable wait in seconds; None waits as long as needed.

        Raises:
            RateLimitExceeded: The permit would not be available within ``timeout``.
        """
        delay = self.reserve()
        if timeout is not None and delay > timeout:
            self.release()
            raise RateLimitExceeded(
                f"rate limit exceeded: permit available in {delay:.3f}s, timeout is {timeout:.3f}s"
            )
        if delay <= 0:
            return
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.release()
            raise
