"""
Client-side rate limiting for Dhan API requests.

Token bucket shared by every request issued through one client.
"""

import asyncio
import time
from dataclasses import dataclass, field


@dataclass
class TokenBucket:
    """
    Token bucket.

    Holds up to `burst` tokens, refilling at `rate` tokens per second.
    """

    rate: float  # Tokens per second
    burst: int  # Maximum bucket size
    tokens: float = field(init=False)
    last_update: float = field(init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self) -> None:
        self.tokens = float(self.burst)
        self.last_update = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.burst, self.tokens + (now - self.last_update) * self.rate)
        self.last_update = now

    async def acquire(self) -> float:
        """
        Take one token, waiting for a refill if the bucket is empty.

        Returns:
            Seconds waited (0 if a token was available)
        """
        async with self._lock:
            self._refill()
            if self.tokens >= 1:
                self.tokens -= 1
                return 0.0

            wait_time = (1 - self.tokens) / self.rate
            await asyncio.sleep(wait_time)
            self._refill()
            self.tokens -= 1
            return wait_time


class RateLimiter:
    """Rate limiter with request/wait accounting for the health endpoint."""

    def __init__(self, requests_per_second: float, burst: int) -> None:
        self._bucket = TokenBucket(rate=requests_per_second, burst=burst)
        self._total_requests = 0
        self._total_wait_time = 0.0

    async def acquire(self) -> float:
        """Acquire permission for one request. Returns seconds waited."""
        wait_time = await self._bucket.acquire()
        self._total_requests += 1
        self._total_wait_time += wait_time
        return wait_time

    @property
    def stats(self) -> dict[str, float | int]:
        return {
            "total_requests": self._total_requests,
            "total_wait_time_seconds": round(self._total_wait_time, 3),
            "rate_limit_rps": self._bucket.rate,
            "burst_limit": self._bucket.burst,
        }
