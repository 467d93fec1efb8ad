"""
=============================================================================
HTTPKIT - Immutable HTTP Messages and a Middleware Pipeline
=============================================================================

Request/response values, response constructors, and a dispatcher that
runs a request through ordered middleware around a terminal handler.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpkit/
    ├── __init__.py          # This file - package exports
    ├── server.py            # Server: handle(), send(), wsgi_app()
    ├── config.py            # ServerConfig dataclass
    ├── controller.py        # Controller base class
    ├── session.py           # Session, SessionStore, MemorySessionStore
    ├── storage.py           # MemoryStorage (cache / rate-limit backend)
    ├── transport.py         # OutputTransport, StreamTransport
    ├── http/                # Message values
    │   ├── request.py       # Request, UploadedFile
    │   ├── response.py      # Response, constructors, ResponseBuilder
    │   ├── headers.py       # Headers multimap
    │   ├── uri.py           # Uri
    │   ├── stream.py        # Stream, CallbackStream
    │   ├── cookies.py       # Cookie, CookieJar
    │   ├── exceptions.py    # HTTPException family
    │   ├── status_codes.py  # HTTPStatus enum
    │   ├── mime_types.py    # MIME type detection
    │   └── dates.py         # HTTP-date formatting
    └── middleware/
        ├── base.py          # Middleware, MiddlewarePipeline
        ├── cors.py
        ├── rate_limit.py
        ├── cache.py
        ├── session.py
        ├── security_headers.py
        ├── content_type.py
        └── logging.py

=============================================================================
QUICK START
=============================================================================

    from httpkit import Server, Request, json_response
    from httpkit.middleware import CORSMiddleware, SecurityHeadersMiddleware

    server = Server()
    server.add_middleware(SecurityHeadersMiddleware())
    server.add_middleware(CORSMiddleware())

    def hello(request: Request):
        return json_response({"hello": request.query("name", "world")})

    response = server.handle(Request.create("GET", "/?name=Ada"), hello)
    response.status              # 200
    response.text                # '{"hello":"Ada"}'

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .controller import Controller
from .http import (
    Request,
    Response,
    ResponseBuilder,
    Headers,
    Cookie,
    CookieJar,
    HTTPException,
    BadRequestException,
    UnauthorizedException,
    NotFoundException,
    json_response,
    html_response,
    text_response,
    redirect,
    no_content,
)
from .server import Server, create_server
from .session import Session, SessionOptions, SessionStore, MemorySessionStore
from .storage import MemoryStorage
from .transport import OutputTransport, StreamTransport

__all__ = [
    "Server",
    "create_server",
    "ServerConfig",
    "Controller",
    "Request",
    "Response",
    "ResponseBuilder",
    "Headers",
    "Cookie",
    "CookieJar",
    "HTTPException",
    "BadRequestException",
    "UnauthorizedException",
    "NotFoundException",
    "json_response",
    "html_response",
    "text_response",
    "redirect",
    "no_content",
    "Session",
    "SessionOptions",
    "SessionStore",
    "MemorySessionStore",
    "MemoryStorage",
    "OutputTransport",
    "StreamTransport",
    "__version__",
]
