"""
=============================================================================
RESPONSE CACHE MIDDLEWARE
=============================================================================

Serves repeated requests from storage without running the rest of the
pipeline.

    GET /products  ──►  key = md5("GET|http://shop.test/products")
                           │
                 ┌─────────┴──────────┐
                 │ storage("get", key) │
                 └─────────┬──────────┘
              hit ◄────────┴────────► miss
               │                        │
      return stored response       response = next(request)
      (next is NOT called)              │
                                 cacheable? ──► storage("set", key, snapshot, ttl)
                                        │
                                  return response

=============================================================================
WHAT GETS CACHED
=============================================================================

    ✓ request method in ``methods``            (default: GET only)
    ✓ response status in ``status_codes``
    ✓ none of ``header_blacklist`` present on the response
    ✓ Cache-Control has no no-store / no-cache / private
      (when ``respect_cache_control`` is on)
    ✗ streaming bodies, never: snapshotting one would consume it

TTL: the response's ``max-age`` when it is > 0, else ``ttl``.

=============================================================================
SNAPSHOT FORMAT
=============================================================================

Stored values are plain JSON-compatible dicts, so any storage backend
that can hold JSON can hold them:

    {
        "status": 200,
        "version": "1.1",
        "headers": [["Content-Type", "application/json"], ...],
        "cookies": [{"name": "theme", "value": "dark", "path": "/", ...}],
        "body": "eyJpZCI6IDF9"        ← base64
    }

=============================================================================
"""

import base64
import hashlib
import logging
from dataclasses import asdict
from typing import Any, Callable, Dict, Iterable, Optional

from .base import Middleware, NextHandler
from ..http.cookies import Cookie, CookieJar
from ..http.headers import Headers
from ..http.request import Request
from ..http.response import Response
from ..http.stream import Stream
from ..storage import StorageHandler


logger = logging.getLogger(__name__)


CacheKeyResolver = Callable[[Request], str]

DEFAULT_CACHEABLE_STATUS_CODES = (200, 203, 204, 300, 301, 302, 304, 404, 410)

_UNCACHEABLE_DIRECTIVES = {"no-store", "no-cache", "private"}


def default_cache_key(request: Request) -> str:
    return hashlib.md5(f"{request.method}|{request.uri}".encode("utf-8")).hexdigest()


def _cache_directives(response: Response) -> Iterable[str]:
    line = response.header_line("Cache-Control").lower()
    return (directive.strip() for directive in line.split(",") if directive.strip())


def max_age_of(response: Response) -> Optional[int]:
    """The Cache-Control max-age in seconds, or None when absent or not positive."""
    for directive in _cache_directives(response):
        if directive.startswith("max-age="):
            try:
                max_age = int(directive[len("max-age="):])
            except ValueError:
                return None
            return max_age if max_age > 0 else None
    return None


# =============================================================================
# SNAPSHOTS
# =============================================================================

def snapshot_response(response: Response) -> Dict[str, Any]:
    headers = [[name, value] for name, values in response.headers for value in values]
    return {
        "status": response.status,
        "version": response.version,
        "headers": headers,
        "cookies": [asdict(cookie) for cookie in response.cookies],
        "body": base64.b64encode(response.content).decode("ascii"),
    }


def restore_response(data: Dict[str, Any]) -> Response:
    return Response(
        status=data["status"],
        headers=Headers([tuple(pair) for pair in data["headers"]]),
        body=Stream.from_bytes(base64.b64decode(data["body"])),
        cookies=CookieJar(Cookie(**fields) for fields in data.get("cookies", [])),
        version=data.get("version", "1.1"),
    )


class CacheMiddleware(Middleware):
    """
    Caches whole responses in an injected storage callable.

    Usage:
        server.add_middleware(CacheMiddleware(MemoryStorage(), ttl=300))

        # Vary the cache by an API key as well
        server.add_middleware(CacheMiddleware(
            storage,
            cache_key_resolver=lambda req: f"{req.header('X-API-Key')}|{req.uri}",
        ))
    """

    def __init__(
        self,
        storage: StorageHandler,
        ttl: int = 3600,
        methods: Iterable[str] = ("GET",),
        status_codes: Iterable[int] = DEFAULT_CACHEABLE_STATUS_CODES,
        respect_cache_control: bool = True,
        header_blacklist: Iterable[str] = (),
        cache_key_resolver: Optional[CacheKeyResolver] = None,
    ):
        self.storage = storage
        self.ttl = ttl
        self.methods = {method.upper() for method in methods}
        self.status_codes = set(status_codes)
        self.respect_cache_control = respect_cache_control
        self.header_blacklist = list(header_blacklist)
        self.cache_key_resolver = cache_key_resolver or default_cache_key

    def process(self, request: Request, next: NextHandler) -> Response:
        if request.method not in self.methods:
            return next(request)

        key = self.cache_key_resolver(request)

        # ═══════════════════════════════════════════════════════════════════
        # HIT - short-circuit
        # ═══════════════════════════════════════════════════════════════════
        cached = self.storage("get", key)
        if cached:
            logger.debug(f"Cache hit for {request.method} {request.path}")
            return restore_response(cached)

        # ═══════════════════════════════════════════════════════════════════
        # MISS - run the pipeline, store if allowed
        # ═══════════════════════════════════════════════════════════════════
        response = next(request)

        if self.should_cache(response):
            ttl = max_age_of(response) or self.ttl
            self.storage("set", key, snapshot_response(response), ttl)
            logger.debug(f"Cached {request.method} {request.path} for {ttl}s")

        return response

    def should_cache(self, response: Response) -> bool:
        if response.is_streaming:
            return False

        if response.status not in self.status_codes:
            return False

        if any(response.has_header(name) for name in self.header_blacklist):
            return False

        if self.respect_cache_control:
            if any(d in _UNCACHEABLE_DIRECTIVES for d in _cache_directives(response)):
                return False

        return True
