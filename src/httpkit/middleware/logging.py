"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request, with timing and a request id.

    192.0.2.7 - - [15/Jan/2026:12:30:45 +0000] "GET /api/users" 200 512 3.41ms

or, with ``log_format="json"``:

    {"request_id": "a1b2c3d4", "method": "GET", "path": "/api/users", ...}

=============================================================================
REQUEST IDS
=============================================================================

    incoming X-Request-ID? ── yes ──► reuse it (the proxy's id wins)
              │
              no
              ▼
    uuid4()[:8]

The id is placed on the request as the ``request_id`` attribute for
downstream layers, and echoed on the response as X-Request-ID. Tagged
failures (HTTPException) carry it too, on the response the Server
builds from them. Untagged failures end in a plain 500 without it; the
id is still in the error log line.

Register this middleware FIRST so its timing covers every other layer
and it logs requests that later layers reject.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Iterable, Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.exceptions import HTTPException
from ..http.request import Request
from ..http.response import Response


logger = logging.getLogger("httpkit.access")


REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_ATTRIBUTE = "request_id"


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache-style access line."""
        length = "-" if self.content_length is None else self.content_length
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Usage:
        server.add_middleware(LoggingMiddleware())                    # text
        server.add_middleware(LoggingMiddleware(log_format="json"))   # for log shippers
        server.add_middleware(LoggingMiddleware(skip_paths=["/health"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            log_format: "text" (Apache-style) or "json"
            include_request_id: Echo X-Request-ID on the response
            log_level: Level for access lines
            skip_paths: Paths never logged (health probes are noisy)
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")

        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def process(self, request: Request, next: NextHandler) -> Response:
        request_id = request.header(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            response = next(request.with_attribute(REQUEST_ID_ATTRIBUTE, request_id))
        except Exception as e:
            # Logged here with timing; the Server still turns it into a response
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            if self.include_request_id and isinstance(e, HTTPException):
                e.with_headers({REQUEST_ID_HEADER: request_id})
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if request.path not in self.skip_paths:
            self._emit(self._build_entry(request, response, request_id, duration_ms))

        if self.include_request_id:
            response = response.with_header(REQUEST_ID_HEADER, request_id)

        return response

    def _build_entry(
        self,
        request: Request,
        response: Response,
        request_id: str,
        duration_ms: float,
    ) -> RequestLog:
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=request.uri.query,
            client_ip=request.client_ip,
            user_agent=request.header("User-Agent", "-"),
            status_code=response.status,
            content_length=response.body.size,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def _emit(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
