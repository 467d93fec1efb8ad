"""
=============================================================================
HTTP EXCEPTIONS
=============================================================================

Tagged failures that application code and middleware raise to end a
request with a specific client-facing outcome.

    raise NotFoundException("No such user")
        │
        ▼  unwinds through every middleware frame on the stack
        │
    Server.handle() catches it
        │
        ▼
    Response(status=404, body="No such user", headers=exc.headers)

Anything that is NOT an HTTPException is an unclassified failure and
becomes a 500 at the same catch point.

=============================================================================
"""

from typing import Dict, Optional


class HTTPException(Exception):
    """
    An exception that carries an HTTP status code and response headers.

    The dispatcher turns it into a response with exactly this status,
    these headers, and ``str(exc)`` as the body.

    Example:
        raise HTTPException(
            "Rate limit exceeded. Try again later.",
            status_code=429,
            headers={"Retry-After": "30"},
        )
    """

    def __init__(
        self,
        message: str = "",
        status_code: int = 500,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.headers: Dict[str, str] = dict(headers or {})

    def with_headers(self, headers: Dict[str, str]) -> "HTTPException":
        """Merge extra headers into this exception. Returns self for chaining."""
        self.headers.update(headers)
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, message={self.message!r})"


class BadRequestException(HTTPException):
    """400 Bad Request - the client sent something we cannot use."""

    def __init__(self, message: str = "Bad Request", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, 400, headers)


class UnauthorizedException(HTTPException):
    """401 Unauthorized - we don't know who the caller is."""

    def __init__(self, message: str = "Unauthorized", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, 401, headers)


class NotFoundException(HTTPException):
    """404 Not Found."""

    def __init__(self, message: str = "Not Found", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, 404, headers)
