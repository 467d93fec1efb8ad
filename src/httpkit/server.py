"""
=============================================================================
SERVER (DISPATCHER)
=============================================================================

Owns the middleware pipeline, runs one request through it, and writes
the result to an output transport.

=============================================================================
REQUEST FLOW
=============================================================================

    server.handle(request, handler)
        │
        ▼
    ┌─────────────────────────────────────────────────────────────────┐
    │  try:                                                           │
    │      pipeline.wrap(checked(handler))(request)                   │
    │          mw0 ─► mw1 ─► ... ─► mwN ─► handler                    │
    │          mw0 ◄─ mw1 ◄─ ... ◄─ mwN ◄─ Response                   │
    │                                                                 │
    │  except HTTPException  → Response(e.status_code, e.headers,     │
    │                                   body=e.message)               │
    │  except Exception      → 500 "Internal Server Error"            │
    │                          + X-Error: <message> (configurable)    │
    └─────────────────────────────────────────────────────────────────┘
        │
        ▼
    Response (always; handle() never raises for an Exception)

``checked(handler)`` raises TypeError when the handler returns anything
other than a Response, so a broken handler is a 500, never a
pass-through of whatever it returned.

=============================================================================
STATE OF ONE handle() CALL
=============================================================================

    Idle → Composing → Executing(0..N) → Returning(N..0) → Completed
                            │
                            └─ raise at frame k → Propagating(k..0)
                                  → Translated → Completed

There is no retry: one handle() call is one attempt.

=============================================================================
SENDING
=============================================================================

    server.send(response, transport)

    1. status line + headers (+ one Set-Cookie per cookie), unless the
       transport already committed its headers
    2. body in ``config.chunk_size`` chunks, flushing after each
       - finite body: rewound first, read to the end
       - streaming body: pulled until it yields an empty chunk
    3. a body that fails to read is logged; if nothing has been written
       yet, the fully materialized body is written instead

=============================================================================
"""

import logging
import sys
from typing import Any, Callable, Iterator, List, Optional, Tuple, Union
from wsgiref.util import is_hop_by_hop

from .config import ServerConfig
from .http.exceptions import HTTPException
from .http.request import Request
from .http.response import Response, bad_request
from .http.stream import Body
from .middleware.base import FunctionMiddleware, Handler, Middleware, MiddlewarePipeline
from .transport import OutputTransport, StreamTransport


logger = logging.getLogger(__name__)


MiddlewareLike = Union[Middleware, Callable[[Request, Handler], Response]]


class Server:
    """
    Request dispatcher.

    =========================================================================
    USAGE
    =========================================================================

        server = Server()
        server.add_middleware(SecurityHeadersMiddleware()) \\
              .add_middleware(CORSMiddleware()) \\
              .add_middleware(RateLimitMiddleware(MemoryStorage()))

        def handler(request: Request) -> Response:
            return json_response({"hello": request.query("name", "world")})

        response = server.handle(Request.from_environ(environ), handler)
        server.send(response, StreamTransport(wfile))

        # Or mount it under any WSGI server
        app = server.wsgi_app(handler)

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        transport: Optional[OutputTransport] = None,
    ):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.
            transport: Default sink for send(). Standard output if not
                       provided (CGI style).
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._middleware = MiddlewarePipeline()
        self._transport = transport

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def add_middleware(self, middleware: MiddlewareLike) -> "Server":
        """
        Append a middleware unit. Returns self for chaining.

        Plain ``(request, next)`` functions are accepted and wrapped in a
        FunctionMiddleware.

        Raises:
            TypeError: If ``middleware`` is neither a Middleware nor callable.
        """
        if not isinstance(middleware, Middleware):
            if not callable(middleware):
                raise TypeError(
                    f"Middleware must be a Middleware or a callable, got {type(middleware).__name__}"
                )
            middleware = FunctionMiddleware(middleware)

        self._middleware.add(middleware)
        return self

    def use(self, *middleware: MiddlewareLike) -> "Server":
        """Append several middleware units, in order."""
        for mw in middleware:
            self.add_middleware(mw)
        return self

    @property
    def middleware(self) -> MiddlewarePipeline:
        return self._middleware

    @property
    def transport(self) -> OutputTransport:
        if self._transport is None:
            self._transport = StreamTransport(sys.stdout.buffer)
        return self._transport

    def configure_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("httpkit").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle(self, request: Request, handler: Handler) -> Response:
        """
        Run ``request`` through every middleware and ``handler``.

        This is the single place failures are caught. Always returns a
        Response for any ``Exception`` raised below it.
        """
        try:
            return self._process(request, handler)
        except HTTPException as e:
            logger.log(
                logging.INFO if e.status_code >= 500 else logging.DEBUG,
                f"{request.method} {request.path} ended with {e.status_code}: {e.message}",
            )
            try:
                return self._create_exception_response(e)
            except ValueError as invalid:
                # e.g. a status outside 100-599 or a header with CR/LF
                return self._create_error_response(invalid)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method} {request.path}: {e}")
            return self._create_error_response(e)

    def _process(self, request: Request, handler: Handler) -> Response:
        def checked_handler(req: Request) -> Response:
            response = handler(req)
            if not isinstance(response, Response):
                raise TypeError(
                    f"Handler must return a Response, got {type(response).__name__}"
                )
            return response

        response = self._middleware.process(request, checked_handler)

        if not isinstance(response, Response):
            raise TypeError(
                f"Middleware must return a Response, got {type(response).__name__}"
            )
        return response

    def _create_exception_response(self, exc: HTTPException) -> Response:
        return Response(
            status=exc.status_code,
            headers=exc.headers,
            body=exc.message,
        )

    def _create_error_response(self, exc: Exception) -> Response:
        headers = {}
        if self.config.expose_error_details:
            # Header values can't span lines
            detail = " ".join(str(exc).split()) or type(exc).__name__
            headers[self.config.error_header] = detail

        return Response(
            status=500,
            headers=headers,
            body=self.config.error_body,
        )

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def send(self, response: Response, transport: Optional[OutputTransport] = None) -> None:
        """Write ``response`` to ``transport`` (or the server's default one)."""
        transport = transport or self.transport

        if transport.headers_sent:
            logger.debug("Headers already sent, writing body only")
        else:
            transport.send_status(response.version, response.status, response.reason)
            for name, value in self._header_lines(response):
                transport.send_header(name, value)
            transport.end_headers()

        self._send_body(response, transport)
        transport.finish()

    def _header_lines(self, response: Response) -> List[Tuple[str, str]]:
        headers = response.outbound_headers()
        if self.config.server_name and "Server" not in headers:
            headers = headers.with_header("Server", self.config.server_name)
        return [(name, value) for name, values in headers for value in values]

    def _send_body(self, response: Response, transport: OutputTransport) -> None:
        chunks = self._iter_body(response.body)
        written = 0

        while True:
            try:
                chunk = next(chunks, b"")
            except Exception as e:
                # Reading failed; the transport itself is fine
                logger.error(f"Error reading response body: {e}")
                self._send_remainder(response, transport, written)
                return

            if not chunk:
                return

            transport.write(chunk)
            transport.flush()
            written += len(chunk)

    def _send_remainder(self, response: Response, transport: OutputTransport, written: int) -> None:
        """Finish a failed body from its materialized copy, skipping what already went out."""
        try:
            content = response.content
        except Exception as e:
            logger.error(f"Response body could not be materialized: {e}")
            return

        remainder = content[written:]
        if remainder:
            transport.write(remainder)
            transport.flush()

    def _iter_body(self, body: Body) -> Iterator[bytes]:
        if body.is_seekable():
            body.rewind()
        while True:
            chunk = body.read(self.config.chunk_size)
            if not chunk:
                break
            yield chunk

    # =========================================================================
    # WSGI
    # =========================================================================

    def wsgi_app(self, handler: Handler) -> Callable[..., Any]:
        """
        A WSGI application that dispatches every request to ``handler``.

            from wsgiref.simple_server import make_server
            make_server("127.0.0.1", 8080, server.wsgi_app(handler)).serve_forever()

        Hop-by-hop headers (Transfer-Encoding, Connection, ...) are left
        to the WSGI server.
        """
        def app(environ, start_response):
            try:
                request = Request.from_environ(environ)
            except HTTPException as e:
                response = self._create_exception_response(e)
            except ValueError as e:
                response = bad_request(f"Malformed request: {e}")
            else:
                response = self.handle(request, handler)

            headers = [
                (name, value)
                for name, value in self._header_lines(response)
                if not is_hop_by_hop(name)
            ]
            start_response(f"{response.status} {response.reason}", headers)
            return self._iter_body(response.body)

        return app


def create_server(config: Optional[ServerConfig] = None, *middleware: MiddlewareLike) -> Server:
    """
    Factory for a Server with middleware already registered.

        server = create_server(ServerConfig.from_env(), LoggingMiddleware(), CORSMiddleware())
    """
    return Server(config).use(*middleware)
