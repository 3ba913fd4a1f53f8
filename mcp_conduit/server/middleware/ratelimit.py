"""Per-client fixed-window rate limiting.

:class:`RateLimiter` keeps one :class:`RateLimitEntry` per client identity.
A window opens on the first request after the previous one expired and lasts
*window* seconds; every request inside it increments the counter, and
requests beyond *max_requests* are refused until the window resets.

:class:`RateLimitMiddleware` applies the limiter to every HTTP request when
guarded mode is on, and is a pass-through otherwise.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcp_conduit.constants import (
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_SWEEP_INTERVAL,
    RATE_LIMIT_WINDOW,
)
from mcp_conduit.errors import RateLimitedError
from mcp_conduit.runtime.periodic import PeriodicTask
from mcp_conduit.server.middleware._asgi import client_identity, send_rpc_error

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of counting one request."""

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: int
    count: int

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(math.ceil(self.reset_time))),
        }


class RateLimiter:
    """Fixed-window request counters keyed by client identity."""

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window: float = RATE_LIMIT_WINDOW,
        sweep_interval: float = RATE_LIMIT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._sweeper = PeriodicTask("ratelimit-sweep", sweep_interval, self.sweep)

    def start(self) -> None:
        self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()
        self._entries.clear()

    def hit(self, client_id: str, now: Optional[float] = None) -> RateLimitDecision:
        """Count one request from *client_id* and decide whether it may pass."""
        if now is None:
            now = self._clock()
        entry = self._entries.get(client_id)
        if entry is None or now > entry.reset_time:
            entry = RateLimitEntry(count=0, reset_time=now + self.window)
            self._entries[client_id] = entry
        entry.count += 1

        allowed = entry.count <= self.max_requests
        seconds_left = max(0.0, entry.reset_time - now)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - entry.count),
            reset_time=entry.reset_time,
            retry_after=int(math.ceil(seconds_left)),
            count=entry.count,
        )

    def get(self, client_id: str) -> Optional[RateLimitEntry]:
        return self._entries.get(client_id)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop entries whose window has already ended.  Returns the count removed."""
        if now is None:
            now = self._clock()
        expired = [cid for cid, e in list(self._entries.items()) if now > e.reset_time]
        for cid in expired:
            del self._entries[cid]
        if expired:
            logger.debug(
                "Rate-limit sweep: removed %d expired entr%s, %d remaining.",
                len(expired),
                "y" if len(expired) == 1 else "ies",
                len(self._entries),
            )
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RateLimitMiddleware:
    """Pure ASGI middleware enforcing :class:`RateLimiter` in guarded mode."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter, enabled: bool = False) -> None:
        self.app = app
        self.limiter = limiter
        self.enabled = enabled
        if enabled:
            logger.info(
                "Rate limiting ENABLED (%d requests per %ss).",
                limiter.max_requests,
                limiter.window,
            )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.enabled:
            await self.app(scope, receive, send)
            return

        client_id = client_identity(scope)
        decision = self.limiter.hit(client_id)
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded for %s (%d/%d), retry in %ds.",
                client_id,
                decision.count,
                decision.limit,
                decision.retry_after,
            )
            error = RateLimitedError(
                "Rate limit exceeded",
                data={"retryAfter": decision.retry_after},
            )
            headers = decision.headers()
            headers["Retry-After"] = str(decision.retry_after)
            await send_rpc_error(error, scope, receive, send, headers=headers)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for key, value in decision.headers().items():
                    headers[key] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)
