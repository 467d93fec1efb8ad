"""
=============================================================================
RATE LIMITING MIDDLEWARE
=============================================================================

Fixed-window request limiting per client, with counters kept in an
injected storage collaborator.

=============================================================================
FIXED WINDOW
=============================================================================

Each client gets ``limit`` requests per ``window`` seconds. The window
starts at the client's first request and is not sliding:

    limit=3, window=60

    t=0    ─── req ✓ (1/3)   window expires at t=60
    t=10   ─── req ✓ (2/3)
    t=20   ─── req ✓ (3/3)
    t=30   ─── req ✗ 429     Retry-After: 30
    t=61   ─── req ✓ (1/3)   window expired → counter reset, expires t=121

=============================================================================
STORAGE CONTRACT
=============================================================================

    storage("get", key)                 → {"requests": n, "expires": ts} or None
    storage("set", key, value, ttl)     → stores value for ttl seconds

Any callable with this shape works (see ``httpkit.storage.MemoryStorage``).

The read happens before ``next`` and the write after it, so two
concurrent requests from one client can both read the same count. A
backend that needs an exact count under concurrency must make the
update atomic itself.

=============================================================================
RESPONSE HEADERS
=============================================================================

    Allowed (when ``headers=True``):
        X-RateLimit-Limit: 60
        X-RateLimit-Remaining: 59
        X-RateLimit-Reset: 1767225660        (window expiry, epoch seconds)

    Rejected (429, raised as HTTPException):
        Retry-After: 30
        X-RateLimit-Limit: 60
        X-RateLimit-Remaining: 0
        X-RateLimit-Reset: 1767225660

=============================================================================
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from .base import Middleware, NextHandler
from ..http.exceptions import HTTPException
from ..http.request import Request
from ..http.response import Response
from ..storage import StorageHandler


logger = logging.getLogger(__name__)


IdentifierResolver = Callable[[Request], str]


def default_identifier(request: Request) -> str:
    """
    Client identity for rate limiting.

    The first address in X-Forwarded-For, else the peer address, else
    "unknown" (all anonymous callers then share one window).
    """
    forwarded = request.header("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.server_params.get("REMOTE_ADDR") or "unknown"


class RateLimitMiddleware(Middleware):
    """
    Fixed-window rate limiting.

    Usage:
        storage = MemoryStorage()

        # 60 requests per minute per client IP
        server.add_middleware(RateLimitMiddleware(storage))

        # 1000 per hour per API key, no headers on success
        server.add_middleware(RateLimitMiddleware(
            storage,
            limit=1000,
            window=3600,
            identifier_resolver=lambda req: req.header("X-API-Key", "anonymous"),
            headers=False,
        ))
    """

    def __init__(
        self,
        storage: StorageHandler,
        limit: int = 60,
        window: int = 60,
        identifier_resolver: Optional[IdentifierResolver] = None,
        headers: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            storage: Key/value storage callable (see module docs)
            limit: Requests allowed per window
            window: Window length in seconds
            identifier_resolver: Maps a request to a client key
            headers: Add X-RateLimit-* headers to allowed responses
            clock: Time source (seconds); injectable for tests
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if window < 1:
            raise ValueError(f"window must be at least 1 second, got {window}")

        self.storage = storage
        self.limit = limit
        self.window = window
        self.identifier_resolver = identifier_resolver or default_identifier
        self.headers = headers
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def process(self, request: Request, next: NextHandler) -> Response:
        identifier = self.identifier_resolver(request)
        state = self._get_state(identifier)

        # ═══════════════════════════════════════════════════════════════════
        # REJECT - limit reached inside the current window
        # ═══════════════════════════════════════════════════════════════════
        if state["requests"] >= self.limit:
            retry_after = max(0, state["expires"] - self._now())
            logger.info(f"Rate limit exceeded for {identifier} (retry in {retry_after}s)")
            raise HTTPException(
                "Rate limit exceeded. Try again later.",
                status_code=429,
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(state["expires"]),
                },
            )

        # ═══════════════════════════════════════════════════════════════════
        # ALLOW - count the request once it has been handled
        # ═══════════════════════════════════════════════════════════════════
        response = next(request)

        state = self._increment(identifier, state)

        if self.headers:
            response = response.with_headers({
                "X-RateLimit-Limit": str(self.limit),
                "X-RateLimit-Remaining": str(max(0, self.limit - state["requests"])),
                "X-RateLimit-Reset": str(state["expires"]),
            })

        return response

    def _new_window(self) -> Dict[str, int]:
        return {"requests": 0, "expires": self._now() + self.window}

    def _get_state(self, identifier: str) -> Dict[str, int]:
        data: Any = self.storage("get", identifier)

        if not data:
            return self._new_window()

        if self._now() > data["expires"]:
            logger.debug(f"Rate limit window expired for {identifier}, resetting")
            return self._new_window()

        return {"requests": int(data["requests"]), "expires": int(data["expires"])}

    def _increment(self, identifier: str, state: Dict[str, int]) -> Dict[str, int]:
        state = {"requests": state["requests"] + 1, "expires": state["expires"]}
        self.storage("set", identifier, state, self.window)
        return state
