"""
=============================================================================
HTTP MESSAGE VALUES
=============================================================================

The request and response values that flow through the middleware
pipeline, and the small value types they are built from.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request.py       Request (frozen), UploadedFile, body parsing      │
    │   response.py      Response (frozen), constructors, ResponseBuilder  │
    │   headers.py       Headers: immutable case-insensitive multimap      │
    │   uri.py           Uri: parsed request target                        │
    │   stream.py        Stream (finite) and CallbackStream (lazy) bodies  │
    │   cookies.py       Cookie, CookieJar, Set-Cookie format              │
    │   exceptions.py    HTTPException and friends (tagged failures)       │
    │   status_codes.py  HTTPStatus enum and reason phrases                │
    │   mime_types.py    Content-Type by file extension                    │
    │   dates.py         HTTP-date formatting                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

All message values are immutable. "Changing" one means asking for a copy:

    response = json_response({"ok": True})
    response = response.with_header("X-Request-ID", "a1b2c3d4")

=============================================================================
"""

from .cookies import Cookie, CookieJar
from .dates import format_http_date, format_timestamp
from .exceptions import (
    HTTPException,
    BadRequestException,
    UnauthorizedException,
    NotFoundException,
)
from .headers import Headers
from .mime_types import get_mime_type, get_content_type
from .request import Request, UploadedFile
from .response import (
    Response,
    ResponseBuilder,
    # Content
    json_response,
    html_response,
    text_response,
    xml_response,
    # Files and streams
    file_response,
    download,
    inline,
    stream,
    # Redirects
    redirect,
    permanent_redirect,
    found,
    see_other,
    temporary_redirect,
    # Status shortcuts
    ok,
    created,
    accepted,
    no_content,
    bad_request,
    unauthorized,
    forbidden,
    not_found,
    method_not_allowed,
    too_many_requests,
    internal_error,
)
from .status_codes import HTTPStatus, reason_phrase
from .stream import Stream, CallbackStream
from .uri import Uri


__all__ = [
    # Messages
    "Request",
    "UploadedFile",
    "Response",
    "ResponseBuilder",
    # Value types
    "Headers",
    "Uri",
    "Stream",
    "CallbackStream",
    "Cookie",
    "CookieJar",
    # Failures
    "HTTPException",
    "BadRequestException",
    "UnauthorizedException",
    "NotFoundException",
    # Response constructors
    "json_response",
    "html_response",
    "text_response",
    "xml_response",
    "file_response",
    "download",
    "inline",
    "stream",
    "redirect",
    "permanent_redirect",
    "found",
    "see_other",
    "temporary_redirect",
    "ok",
    "created",
    "accepted",
    "no_content",
    "bad_request",
    "unauthorized",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "too_many_requests",
    "internal_error",
    # Helpers
    "HTTPStatus",
    "reason_phrase",
    "get_mime_type",
    "get_content_type",
    "format_http_date",
    "format_timestamp",
]
