"""
=============================================================================
CORS (Cross-Origin Resource Sharing) MIDDLEWARE
=============================================================================

Lets browsers call the API from pages served by another origin.

    Origin = scheme + domain + port

=============================================================================
CORS REQUEST FLOW
=============================================================================

    PREFLIGHT (browser asks first):

    ┌─────────┐                                          ┌─────────┐
    │ Browser │─────────── OPTIONS /api ────────────────▶│ Server  │
    │         │           Origin: https://app.com        │         │
    │         │◀──────────────────────────────────────────│         │
    │         │    204 No Content                        │         │
    │         │    Access-Control-Allow-Origin: https://app.com   │
    │         │    Access-Control-Allow-Methods: GET, POST, ...   │
    │         │    Access-Control-Allow-Headers: Content-Type, ...│
    └─────────┘                                          └─────────┘

    ACTUAL REQUEST:

    ┌─────────┐                                          ┌─────────┐
    │ Browser │─────────── DELETE /api/users/1 ─────────▶│ Server  │
    │         │           Origin: https://app.com        │         │
    │         │◀──────────────────────────────────────────│         │
    │         │    Access-Control-Allow-Origin: https://app.com   │
    └─────────┘    200 OK                                └─────────┘

=============================================================================
BEHAVIOUR
=============================================================================

    OPTIONS            → empty 204, ``next`` is NOT called
    anything else      → ``next(request)``
    then, on either:
        no Origin header     → response returned unchanged
        origin not allowed   → response returned unchanged
        origin allowed       → Allow-Origin echoes the request's origin,
                               (+ Allow-Credentials, Expose-Headers)
        preflight + allowed  → also Allow-Methods, Allow-Headers,
                               Max-Age (only when > 0)

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .base import Middleware, NextHandler
from ..http.request import Request
from ..http.response import Response, no_content


@dataclass
class CORSConfig:
    """
    CORS configuration options.

    DEVELOPMENT (permissive):
        CORSConfig()  # any origin

    PRODUCTION (restrictive):
        CORSConfig(
            allow_origins=["https://myapp.com"],
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            max_age=3600,
        )
    """

    # ─────────────────────────────────────────────────────────────────────
    # Origins allowed to make requests; "*" allows any
    # ─────────────────────────────────────────────────────────────────────
    allow_origins: List[str] = field(default_factory=lambda: ["*"])

    allow_methods: List[str] = field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"]
    )

    allow_headers: List[str] = field(
        default_factory=lambda: ["Content-Type", "Authorization", "X-Requested-With", "Accept"]
    )

    # ─────────────────────────────────────────────────────────────────────
    # Response headers the browser may read (it hides most by default)
    # ─────────────────────────────────────────────────────────────────────
    expose_headers: List[str] = field(default_factory=list)

    allow_credentials: bool = False

    # ─────────────────────────────────────────────────────────────────────
    # Seconds the browser may cache a preflight answer; 0 = don't send
    # ─────────────────────────────────────────────────────────────────────
    max_age: int = 0

    def is_origin_allowed(self, origin: str) -> bool:
        return "*" in self.allow_origins or origin in self.allow_origins


class CORSMiddleware(Middleware):
    """
    Answers preflight requests and marks allowed cross-origin responses.

    Register it early, before authentication, so preflight requests
    succeed without credentials:

        server.add_middleware(CORSMiddleware(
            CORSConfig(allow_origins=["https://myapp.com"])
        ))
    """

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def process(self, request: Request, next: NextHandler) -> Response:
        preflight = request.is_method("OPTIONS")

        # ═══════════════════════════════════════════════════════════════════
        # PREFLIGHT SHORT-CIRCUIT
        # ═══════════════════════════════════════════════════════════════════
        if preflight:
            response = no_content()
        else:
            response = next(request)

        origin = request.header("Origin")
        if not origin or not self.config.is_origin_allowed(origin):
            return response

        return self._add_cors_headers(response, origin, preflight)

    def _add_cors_headers(self, response: Response, origin: str, preflight: bool) -> Response:
        config = self.config

        # The request's own origin is echoed back, even for "*", so the
        # header stays valid when credentials are allowed.
        response = response.with_header("Access-Control-Allow-Origin", origin)

        if config.allow_credentials:
            response = response.with_header("Access-Control-Allow-Credentials", "true")

        if preflight:
            response = response.with_header(
                "Access-Control-Allow-Methods", ", ".join(config.allow_methods)
            )
            response = response.with_header(
                "Access-Control-Allow-Headers", ", ".join(config.allow_headers)
            )
            if config.max_age > 0:
                response = response.with_header("Access-Control-Max-Age", str(config.max_age))

        if config.expose_headers:
            response = response.with_header(
                "Access-Control-Expose-Headers", ", ".join(config.expose_headers)
            )

        return response
