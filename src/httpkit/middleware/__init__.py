"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting behaviour wrapped around a terminal handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    MIDDLEWARE PIPELINE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────────────────┐                                              │
    │   │ LoggingMiddleware │ ──► request id, timing                      │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │ CORSMiddleware    │ ──► may answer OPTIONS itself               │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │ RateLimitMiddlew. │ ──► may raise 429                           │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │ CacheMiddleware   │ ──► may return a stored response            │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │   Your Handler    │                                             │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   Response flows back UP through the same layers                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
AVAILABLE MIDDLEWARE
=============================================================================

LoggingMiddleware:          access log line per request, X-Request-ID
CORSMiddleware:             preflight answers, Access-Control-* headers
RateLimitMiddleware:        fixed-window limit per client, 429 + headers
CacheMiddleware:            whole-response cache in injected storage
SessionMiddleware:          attaches a started Session to the request
SecurityHeadersMiddleware:  X-Frame-Options, CSP, HSTS, ...
ContentTypeMiddleware:      forces one Content-Type on every response
FunctionMiddleware:         any ``(request, next)`` function

=============================================================================
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    FunctionMiddleware,
    function_middleware,
    Handler,
    NextHandler,
)
from .cache import CacheMiddleware
from .content_type import ContentTypeMiddleware
from .cors import CORSConfig, CORSMiddleware
from .logging import LoggingMiddleware, RequestLog
from .rate_limit import RateLimitMiddleware
from .security_headers import SecurityHeadersMiddleware
from .session import SessionMiddleware

__all__ = [
    # Contract and composition
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "function_middleware",
    "Handler",
    "NextHandler",

    # Built-in middleware
    "CacheMiddleware",
    "ContentTypeMiddleware",
    "CORSConfig",
    "CORSMiddleware",
    "LoggingMiddleware",
    "RequestLog",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
    "SessionMiddleware",
]
