import math
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable

from anki_companion.errors import RateLimitedError


@dataclass
class RateLimitResult:
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int = 0

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if self.retry_after_seconds:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


class SlidingWindowLimiter:
    """Allow at most `limit` hits per `window` seconds for each client key."""

    def __init__(self, limit: int = 20, window: float = 60.0, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep: float | None = None
        self._lock = threading.Lock()

    def hit(self, key: str) -> RateLimitResult:
        """Record one request for `key`; raise RateLimitedError if over the limit."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            hits = self._hits[key]
            while hits and hits[0] <= now - self.window:
                hits.popleft()

            if len(hits) >= self.limit:
                reset_at = hits[0] + self.window
                retry_after = max(1, math.ceil(reset_at - now))
                raise RateLimitedError(retry_after, self.limit, reset_at)

            hits.append(now)
            return RateLimitResult(
                limit=self.limit,
                remaining=self.limit - len(hits),
                reset_at=hits[0] + self.window,
            )

    def _sweep(self, now: float) -> None:
        """Drop clients with no hit inside the window, at most once per window."""
        if self._last_sweep is not None and now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        cutoff = now - self.window
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def client_key(headers, client_host: str | None) -> str:
    """First X-Forwarded-For entry, else X-Real-IP, else the socket address."""
    forwarded = headers.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    real_ip = headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return client_host or "unknown"
