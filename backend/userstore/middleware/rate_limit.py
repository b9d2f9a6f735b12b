"""Rate Limiting — fixed-window quota per caller and route.

Invariants:
    - At most `limit` requests per key are admitted within any one window
    - Check-and-increment happens under a single asyncio.Lock: concurrent requests
      for the same key can never jointly exceed the quota
    - Counters only grow within a window; a new window starts from zero once the old one elapses
    - Rejected requests never reach authentication or the routes (unauthenticated
      callers still consume quota)
    - Public paths (health check) are not counted
    - Keys are caller + method + route template ("/users/{user_id}"), never the raw path:
      changing an id does not buy a fresh quota, and the key space per caller is bounded
      by the route table (unmatched paths share one bucket)
    - Expired windows are swept at most once per window length

Design Decisions:
    - Fixed window over sliding log: O(1) memory per key, exact upper bound per window
    - In-process counters: one limiter per app instance (ADR: quota is per process;
      a Redis-backed limiter would be needed for multi-worker deployments)
    - Injectable clock (time.monotonic by default) so window expiry is testable
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.routing import Match

from userstore.core.errors import RateLimitExceededError
from userstore.middleware.pipeline import Continuation, Stage

logger = logging.getLogger(__name__)

# Sweep expired windows once the table grows past this many keys.
_SWEEP_THRESHOLD = 10_000


@dataclass
class _Window:
    started_at: float
    count: int = 0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: float


class FixedWindowRateLimiter:
    """Counts hits per key in fixed windows of window_seconds."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep_at = float("-inf")
        self._lock = asyncio.Lock()

    async def hit(self, key: str) -> RateLimitDecision:
        async with self._lock:
            now = self.clock()
            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                if (
                    len(self._windows) >= _SWEEP_THRESHOLD
                    and now >= self._next_sweep_at
                ):
                    self._sweep(now)
                    self._next_sweep_at = now + self.window_seconds
                window = _Window(started_at=now)
                self._windows[key] = window
            retry_after = window.started_at + self.window_seconds - now
            if window.count >= self.limit:
                return RateLimitDecision(False, 0, retry_after)
            window.count += 1
            return RateLimitDecision(True, self.limit - window.count, retry_after)

    def _sweep(self, now: float) -> None:
        expired = [
            k for k, w in self._windows.items()
            if now - w.started_at >= self.window_seconds
        ]
        for k in expired:
            del self._windows[k]


UNMATCHED_ROUTE = "<unmatched>"


def route_template(request: Request) -> str:
    """Path template of the route the request will hit, or a shared unmatched bucket."""
    app = request.scope.get("app")
    for route in getattr(app, "routes", ()):
        match, _ = route.matches(request.scope)
        if match != Match.NONE:
            return getattr(route, "path", UNMATCHED_ROUTE)
    return UNMATCHED_ROUTE


class RateLimitStage(Stage):

    def __init__(
        self, limiter: FixedWindowRateLimiter, public_paths: Iterable[str] = (),
    ):
        self.limiter = limiter
        self.public_paths = frozenset(public_paths)

    async def intercept(
        self, request: Request, call_next: Continuation,
    ) -> Response:
        if request.url.path in self.public_paths:
            return await call_next(request)
        client = request.client.host if request.client else "unknown"
        key = f"{client}:{request.method}:{route_template(request)}"
        decision = await self.limiter.hit(key)
        if decision.allowed:
            return await call_next(request)

        error = RateLimitExceededError(math.ceil(decision.retry_after_seconds))
        logger.warning(
            f"Rate limit exceeded for {client} on {request.method} {request.url.path}",
            extra={
                "client": client,
                "path": request.url.path,
                "status_code": error.http_status,
                "correlation_id": getattr(request.state, "correlation_id", None),
            },
        )
        return JSONResponse(
            error.to_response(),
            status_code=error.http_status,
            headers={"Retry-After": str(error.retry_after_seconds)},
        )
