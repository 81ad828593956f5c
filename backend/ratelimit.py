"""In-memory fixed-window rate limiting per client IP.

Counters live in the process and reset whenever it restarts. Expired windows
are pruned lazily on each check.
"""

import time
from typing import Callable

from fastapi import HTTPException, Request, Response


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}  # key -> (count, reset_at)

    def _prune(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items() if now > reset_at]
        for k in expired:
            del self._windows[k]

    def check(self, key: str) -> tuple[bool, int]:
        """Count one request for key. Returns (allowed, remaining)."""
        if self.max_requests <= 0:
            return True, 0
        now = self._clock()
        self._prune(now)
        count, reset_at = self._windows.get(key, (0, now + self.window_seconds))
        if count >= self.max_requests:
            return False, 0
        count += 1
        self._windows[key] = (count, reset_at)
        return True, self.max_requests - count


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency: 429 once the caller exhausts its window."""
    limiter: RateLimiter = request.app.state.rate_limiter
    allowed, remaining = limiter.check(client_ip(request))
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    if not allowed:
        raise HTTPException(
            429,
            "Rate limit exceeded. Try again in a minute.",
            headers={"X-RateLimit-Remaining": "0"},
        )
