import logging
import math
import time
from collections import deque
from typing import Callable

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from lead_relay.core.errors import error_body

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """
    Per-client request log over a sliding time window.

    Not thread-safe; hit() never awaits, so it is safe within one event loop.
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    def hit(self, key: str) -> tuple[bool, int, float]:
        """
        Record a request for key if it fits in the window.

        Args:
            key: Client identity

        Returns:
            tuple[bool, int, float]: (allowed, remaining, seconds until a slot frees up)
        """
        now = self._clock()
        self._sweep(now)

        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

        if len(hits) >= self.max_requests:
            return False, 0, hits[0] + self.window_seconds - now

        hits.append(now)
        reset = hits[0] + self.window_seconds - now
        return True, self.max_requests - len(hits), reset

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        cutoff = now - self.window_seconds
        for key in [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]
        self._last_sweep = now


class RateLimitMiddleware:
    """Caps requests per client IP on paths under path_prefix."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: SlidingWindowLimiter,
        path_prefix: str = "/api/",
        trust_forwarded: bool = False,
    ) -> None:
        self.app = app
        self.limiter = limiter
        self.path_prefix = path_prefix
        self.trust_forwarded = trust_forwarded

    def _client_key(self, scope: Scope) -> str:
        if self.trust_forwarded:
            forwarded = Headers(scope=scope).get("x-forwarded-for")
            if forwarded:
                return forwarded.split(",")[0].strip()
        client = scope.get("client")
        return client[0] if client else "unknown"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        key = self._client_key(scope)
        allowed, remaining, reset = self.limiter.hit(key)
        rate_headers = {
            "RateLimit-Limit": str(self.limiter.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(max(math.ceil(reset), 0)),
        }

        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s", key, scope["path"])
            response = JSONResponse(
                status_code=429,
                content=error_body("Too many requests, please try again later."),
                headers={**rate_headers, "Retry-After": rate_headers["RateLimit-Reset"]},
            )
            await response(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in rate_headers.items():
                    headers[name] = value
            await send(message)

        await self.app(scope, receive, send_wrapper)
