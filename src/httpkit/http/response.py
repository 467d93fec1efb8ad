"""
=============================================================================
HTTP RESPONSE
=============================================================================

The outbound response as an immutable value, plus the constructors
application code uses to build one.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK                     ← version, status, reason    │
    │    Content-Type: application/json      ← Headers multimap           │
    │    Set-Cookie: theme=dark; Path=/      ← one line per Cookie        │
    │                                                                      │
    │    {"message": "Hello"}                ← Stream / CallbackStream    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Cookies are kept apart from the headers (in a CookieJar) and only turned
into ``Set-Cookie`` lines by ``outbound_headers()``, when the response
crosses to the transport.

=============================================================================
IMMUTABILITY
=============================================================================

Every ``with_*`` method returns a NEW Response:

    base = ok("hi")
    a = base.with_header("X-A", "1")
    b = base.with_header("X-B", "2")

    "X-A" in b.headers  → False
    "X-B" in a.headers  → False

Middleware depends on this: each layer overlays headers on the value it
was handed, and no other layer's copy changes underneath it.

=============================================================================
CONSTRUCTORS
=============================================================================

    ┌──────────────────────┬────────┬──────────────────────────────────────┐
    │ Function             │ Status │ Notes                                │
    ├──────────────────────┼────────┼──────────────────────────────────────┤
    │ json_response        │ 200    │ application/json                     │
    │ html_response        │ 200    │ text/html; charset=UTF-8             │
    │ text_response        │ 200    │ text/plain; charset=UTF-8            │
    │ xml_response         │ 200    │ application/xml; charset=UTF-8       │
    │ file_response        │ 200    │ type from extension                  │
    │ download / inline    │ 200    │ Content-Disposition attachment/inline│
    │ stream               │ 200    │ lazily produced body                 │
    │ redirect             │ 302    │ Location                             │
    │ permanent_redirect   │ 301    │                                      │
    │ found / see_other    │ 302/303│                                      │
    │ temporary_redirect   │ 307    │                                      │
    │ ok / created         │ 200/201│ created sets Location                │
    │ accepted / no_content│ 202/204│                                      │
    │ bad_request ...      │ 4xx    │ plain text default body              │
    │ method_not_allowed   │ 405    │ Allow                                │
    │ too_many_requests    │ 429    │ Retry-After when given               │
    │ internal_error       │ 500    │                                      │
    └──────────────────────┴────────┴──────────────────────────────────────┘

=============================================================================
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .cookies import Cookie, CookieJar
from .headers import Headers, HeaderValue
from .mime_types import get_content_type, get_mime_type
from .status_codes import HTTPStatus, reason_phrase
from .stream import Body, CallbackStream, ChunkProducer, Stream, stream_for


logger = logging.getLogger(__name__)


HeadersArg = Optional[Mapping[str, HeaderValue]]

# __str__ shows at most this much of the body
_DEBUG_BODY_LIMIT = 1024


@dataclass(frozen=True)
class Response:
    """
    An immutable HTTP response.

    Attributes:
        status:  Status code, 100-599
        headers: Headers multimap
        body:    Stream (finite) or CallbackStream (lazily produced)
        cookies: Cookies to send as Set-Cookie lines
        version: Protocol version for the status line
    """

    status: int = 200
    headers: Headers = field(default_factory=Headers)
    body: Body = field(default_factory=Stream, compare=False, repr=False)
    cookies: CookieJar = field(default_factory=CookieJar)
    version: str = "1.1"

    def __post_init__(self):
        status = int(self.status)
        if not 100 <= status <= 599:
            raise ValueError(f"Invalid status code: {status}. Must be 100-599.")
        object.__setattr__(self, "status", status)

        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))
        object.__setattr__(self, "body", stream_for(self.body))
        # Private copy; the caller's jar can't leak changes into us
        object.__setattr__(self, "cookies", CookieJar(self.cookies or ()))

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def reason(self) -> str:
        return reason_phrase(self.status)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.first(name, default)

    def header_line(self, name: str) -> str:
        return self.headers.get_line(name)

    def has_header(self, name: str) -> bool:
        return name in self.headers

    @property
    def content(self) -> bytes:
        """
        The full body as bytes.

        Empty for streaming bodies; reading one would consume it.
        """
        return self.body.getvalue()

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def is_streaming(self) -> bool:
        return isinstance(self.body, CallbackStream)

    def get_cookie(self, name: str) -> Optional[Cookie]:
        return self.cookies.get(name)

    def has_cookie(self, name: str) -> bool:
        return self.cookies.has(name)

    def outbound_headers(self, now: Optional[float] = None) -> Headers:
        """Headers as they go on the wire: ours plus one Set-Cookie per cookie."""
        headers = self.headers
        for line in self.cookies.to_response_headers(now):
            headers = headers.with_added_header("Set-Cookie", line)
        return headers

    # =========================================================================
    # COPY-ON-WRITE MUTATORS
    # =========================================================================

    def with_status(self, status: int) -> "Response":
        return replace(self, status=status)

    def with_header(self, name: str, value: HeaderValue) -> "Response":
        return replace(self, headers=self.headers.with_header(name, value))

    def with_added_header(self, name: str, value: HeaderValue) -> "Response":
        return replace(self, headers=self.headers.with_added_header(name, value))

    def without_header(self, name: str) -> "Response":
        return replace(self, headers=self.headers.without_header(name))

    def with_headers(self, headers: Mapping[str, HeaderValue]) -> "Response":
        """Replace every header named in ``headers``."""
        return replace(self, headers=self.headers.merged(headers))

    def with_body(self, body: Union[bytes, str, Body]) -> "Response":
        return replace(self, body=stream_for(body))

    def with_cookie(self, cookie: Cookie) -> "Response":
        jar = self.cookies.copy()
        jar.set(cookie)
        return replace(self, cookies=jar)

    def without_cookie(self, name: str) -> "Response":
        jar = self.cookies.copy()
        jar.remove(name)
        return replace(self, cookies=jar)

    def with_simple_cookie(
        self,
        name: str,
        value: str,
        max_age: int = 0,
        path: Optional[str] = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        http_only: bool = True,
        same_site: Optional[str] = "Lax",
    ) -> "Response":
        return self.with_cookie(
            Cookie(name, value, max_age, path, domain, secure, http_only, same_site)
        )

    def with_expired_cookie(
        self,
        name: str,
        path: Optional[str] = "/",
        domain: Optional[str] = None,
    ) -> "Response":
        """Tell the browser to delete a cookie."""
        return self.with_cookie(Cookie.expired(name, path, domain))

    def __str__(self) -> str:
        """Debug rendering: status line, headers, and (truncated) body."""
        lines = [f"HTTP/{self.version} {self.status} {self.reason}"]
        for name, values in self.outbound_headers():
            lines.append(f"{name}: {', '.join(values)}")

        body = self.content
        text = body[:_DEBUG_BODY_LIMIT].decode("utf-8", errors="replace")
        if len(body) > _DEBUG_BODY_LIMIT:
            text += "... (truncated)"

        return "\r\n".join(lines) + "\r\n\r\n" + text


# =============================================================================
# RESPONSE BUILDER
# =============================================================================

class ResponseBuilder:
    """
    Fluent builder for a Response.

    Each method returns ``self``, so calls chain; ``build()`` produces the
    immutable value:

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json({"id": 42})
            .header("Location", "/users/42")
            .cookie(Cookie("seen", "1"))
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, HeaderValue] = {}
        self._body: Union[bytes, Body] = b""
        self._cookies: List[Cookie] = []

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: HeaderValue) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Mapping[str, HeaderValue]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes, Body]) -> "ResponseBuilder":
        """Raw body. For structured data prefer json(), html() or text()."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=UTF-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        return self.content_type(content_type)

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        return self.content_type("text/html; charset=UTF-8")

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        self._body = _encode_json(data, pretty)
        return self.content_type("application/json")

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """Body from bytes, Content-Type guessed from ``filename``."""
        self._body = content
        return self.content_type(get_content_type(filename))

    def redirect(self, location: str, status: int = HTTPStatus.FOUND) -> "ResponseBuilder":
        self._status = status
        return self.header("Location", location)

    def cookie(self, cookie: Cookie) -> "ResponseBuilder":
        self._cookies.append(cookie)
        return self

    def no_cache(self) -> "ResponseBuilder":
        self._headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        self._headers["Pragma"] = "no-cache"
        self._headers["Expires"] = "0"
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def build(self) -> Response:
        return Response(
            status=self._status,
            headers=Headers(self._headers),
            body=stream_for(self._body),
            cookies=CookieJar(self._cookies),
        )


# =============================================================================
# CONSTRUCTORS
# =============================================================================
#
# Examples:
#     return json_response({"message": "Success"})
#     return not_found("User not found")
#     return redirect("/login")
#
# Extra ``headers`` always win over the defaults a constructor sets.
#
# =============================================================================

def _encode_json(data: Any, pretty: bool = False) -> bytes:
    if pretty:
        text = json.dumps(data, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def _build(
    body: Union[bytes, str, Body],
    status: int,
    defaults: Mapping[str, HeaderValue],
    headers: HeadersArg,
) -> Response:
    return Response(
        status=status,
        headers=Headers(defaults).merged(headers or {}),
        body=stream_for(body),
    )


def json_response(data: Any, status: int = 200, headers: HeadersArg = None, pretty: bool = False) -> Response:
    """
    A JSON response.

    Raises:
        TypeError: If ``data`` isn't JSON-serializable.
    """
    return _build(_encode_json(data, pretty), status, {"Content-Type": "application/json"}, headers)


def html_response(html: str, status: int = 200, headers: HeadersArg = None) -> Response:
    return _build(html, status, {"Content-Type": "text/html; charset=UTF-8"}, headers)


def text_response(text: str, status: int = 200, headers: HeadersArg = None) -> Response:
    return _build(text, status, {"Content-Type": "text/plain; charset=UTF-8"}, headers)


def xml_response(xml: str, status: int = 200, headers: HeadersArg = None) -> Response:
    return _build(xml, status, {"Content-Type": "application/xml; charset=UTF-8"}, headers)


def _open_readable(path: Union[str, Path]) -> Path:
    path = Path(path)
    if not path.is_file() or not os.access(path, os.R_OK):
        raise FileNotFoundError(f"File {path} does not exist or is not readable")
    return path


def file_response(path: Union[str, Path], headers: HeadersArg = None) -> Response:
    """
    The contents of a file, typed by its extension.

    Raises:
        FileNotFoundError: If the file is missing or unreadable.
    """
    path = _open_readable(path)
    return _build(Stream.from_file(path), 200, {"Content-Type": get_mime_type(path)}, headers)


def _disposition_response(
    disposition: str,
    cache_control: str,
    path: Union[str, Path],
    filename: Optional[str],
    headers: HeadersArg,
) -> Response:
    path = _open_readable(path)
    filename = filename or path.name
    defaults = {
        "Content-Type": get_mime_type(path),
        "Content-Disposition": f'{disposition}; filename="{filename}"',
        "Content-Length": str(path.stat().st_size),
        "Cache-Control": cache_control,
    }
    return _build(Stream.from_file(path), 200, defaults, headers)


def download(path: Union[str, Path], filename: Optional[str] = None, headers: HeadersArg = None) -> Response:
    """
    A file the browser should save rather than display.

    Args:
        path:     File on disk
        filename: Name offered to the user (defaults to the file's name)

    Raises:
        FileNotFoundError: If the file is missing or unreadable.
    """
    return _disposition_response("attachment", "no-cache, private", path, filename, headers)


def inline(path: Union[str, Path], filename: Optional[str] = None, headers: HeadersArg = None) -> Response:
    """A file the browser should display in place (images, PDFs)."""
    return _disposition_response("inline", "public, max-age=86400", path, filename, headers)


def stream(
    producer: Union[ChunkProducer, Iterable[Union[bytes, str]]],
    status: int = 200,
    headers: HeadersArg = None,
) -> Response:
    """
    A lazily produced body.

    ``producer`` is called with a chunk size until it returns an empty
    value, or is iterated until exhausted. Streaming responses are never
    cached and have no Content-Length.
    """
    defaults = {
        "Cache-Control": "no-cache, private",
        "Transfer-Encoding": "chunked",
        "Content-Type": "text/plain",
    }
    return _build(CallbackStream(producer), status, defaults, headers)


def redirect(url: str, status: int = HTTPStatus.FOUND, headers: HeadersArg = None) -> Response:
    return _build(b"", status, {"Location": url}, headers)


def permanent_redirect(url: str, headers: HeadersArg = None) -> Response:
    return redirect(url, HTTPStatus.MOVED_PERMANENTLY, headers)


def found(url: str, headers: HeadersArg = None) -> Response:
    return redirect(url, HTTPStatus.FOUND, headers)


def see_other(url: str, headers: HeadersArg = None) -> Response:
    """303: go GET ``url`` (the usual answer to a form POST)."""
    return redirect(url, HTTPStatus.SEE_OTHER, headers)


def temporary_redirect(url: str, headers: HeadersArg = None) -> Response:
    """307: like 302, but the client must keep the method and body."""
    return redirect(url, HTTPStatus.TEMPORARY_REDIRECT, headers)


def ok(content: Union[str, bytes] = "", headers: HeadersArg = None) -> Response:
    return _build(content, HTTPStatus.OK, {}, headers)


def created(location: str = "", content: Union[str, bytes] = "", headers: HeadersArg = None) -> Response:
    """201, with a Location header pointing at the new resource when given."""
    defaults = {"Location": location} if location else {}
    return _build(content, HTTPStatus.CREATED, defaults, headers)


def accepted(content: Union[str, bytes] = "", headers: HeadersArg = None) -> Response:
    return _build(content, HTTPStatus.ACCEPTED, {}, headers)


def no_content(headers: HeadersArg = None) -> Response:
    return _build(b"", HTTPStatus.NO_CONTENT, {}, headers)


def bad_request(content: str = "Bad Request", headers: HeadersArg = None) -> Response:
    return _build(content, HTTPStatus.BAD_REQUEST, {}, headers)


def unauthorized(content: str = "Unauthorized", headers: HeadersArg = None) -> Response:
    """
    401: not authenticated (identity unknown).

    For "authenticated but not permitted", use forbidden().
    """
    return _build(content, HTTPStatus.UNAUTHORIZED, {}, headers)


def forbidden(content: str = "Forbidden", headers: HeadersArg = None) -> Response:
    return _build(content, HTTPStatus.FORBIDDEN, {}, headers)


def not_found(content: str = "Not Found", headers: HeadersArg = None) -> Response:
    return _build(content, HTTPStatus.NOT_FOUND, {}, headers)


def method_not_allowed(
    allowed_methods: Iterable[str] = (),
    content: str = "Method Not Allowed",
    headers: HeadersArg = None,
) -> Response:
    """405, listing the valid methods in an Allow header (RFC 7231)."""
    allowed = list(allowed_methods)
    defaults = {"Allow": ", ".join(allowed)} if allowed else {}
    return _build(content, HTTPStatus.METHOD_NOT_ALLOWED, defaults, headers)


def too_many_requests(
    content: str = "Too Many Requests",
    retry_after: Optional[int] = None,
    headers: HeadersArg = None,
) -> Response:
    defaults = {"Retry-After": str(retry_after)} if retry_after is not None else {}
    return _build(content, HTTPStatus.TOO_MANY_REQUESTS, defaults, headers)


def internal_error(content: str = "Internal Server Error", headers: HeadersArg = None) -> Response:
    """500. Keep ``content`` generic in production."""
    return _build(content, HTTPStatus.INTERNAL_SERVER_ERROR, {}, headers)
