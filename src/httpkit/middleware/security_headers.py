"""
Security headers middleware.

Overlays a conservative set of browser security headers on every
response:

    ┌───────────────────────────┬──────────────────────────────────────────┐
    │ X-Content-Type-Options    │ nosniff                                  │
    │ X-Frame-Options           │ SAMEORIGIN                               │
    │ X-XSS-Protection          │ 1; mode=block                            │
    │ Referrer-Policy           │ strict-origin-when-cross-origin          │
    │ Content-Security-Policy   │ default-src 'self'                       │
    │ Strict-Transport-Security │ max-age=31536000; includeSubDomains      │
    │ Permissions-Policy        │ camera=(), microphone=(), geolocation=() │
    └───────────────────────────┴──────────────────────────────────────────┘

Overrides are merged over the defaults. An empty string or None turns a
header off:

    SecurityHeadersMiddleware({
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": None,   # plain-HTTP dev server
    })
"""

from typing import Dict, Mapping, Optional

from .base import Middleware, NextHandler
from ..http.request import Request
from ..http.response import Response


DEFAULT_SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


class SecurityHeadersMiddleware(Middleware):

    def __init__(self, headers: Optional[Mapping[str, Optional[str]]] = None):
        merged = dict(DEFAULT_SECURITY_HEADERS)
        merged.update(headers or {})
        self.headers = {name: value for name, value in merged.items() if value}

    def process(self, request: Request, next: NextHandler) -> Response:
        return next(request).with_headers(self.headers)
