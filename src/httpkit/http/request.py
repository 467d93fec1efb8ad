"""
=============================================================================
HTTP REQUEST
=============================================================================

The inbound request as an immutable value.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    WSGI environ / test code         Request                 Middleware
    ───────────────────────  ──►  frozen dataclass  ──►  may derive a NEW
    Request.from_environ()          (never mutated)        Request and pass
    Request.create()                                        that one on

        request = Request.create("GET", "/users?page=2")
        tagged  = request.with_attribute("session", session)

        request is tagged          → False
        request.attribute("session") → None  (the original is untouched)

Earlier layers keep whatever reference they captured, and it stays valid.
Per-request state (a session handle, an authenticated user) travels in
the attribute map instead of widening the type.

=============================================================================
FIELDS
=============================================================================

    method          "GET", "POST", ... (always upper-case)
    uri             Uri value (scheme, host, path, query, ...)
    headers         Headers multimap (case-insensitive)
    query_params    {"page": "2", "tag": ["a", "b"]}
    parsed_body     form fields / decoded JSON, or None
    uploaded_files  {"avatar": UploadedFile(...)}
    attributes      open-ended key → value map for cross-cutting state
    server_params   transport details (REMOTE_ADDR, SERVER_NAME, ...)
    body            raw body Stream
    cookies         CookieJar, derived lazily from the Cookie header

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, field, replace
from email.parser import BytesParser
from email import policy
from functools import cached_property
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl

from .cookies import CookieJar
from .exceptions import BadRequestException
from .headers import Headers, HeaderValue
from .stream import Stream
from .uri import Uri


logger = logging.getLogger(__name__)


SESSION_ATTRIBUTE = "session"


@dataclass
class UploadedFile:
    """
    A file received in a multipart/form-data body.

    Attributes:
        filename:     Client-supplied file name (untrusted!)
        content_type: Client-supplied MIME type
        stream:       File contents
        size:         Size in bytes
        error:        0 when the upload is complete
    """

    filename: str
    content_type: str
    stream: Stream = field(repr=False)
    size: int = 0
    error: int = 0
    moved: bool = field(default=False, repr=False)

    def move_to(self, target: Union[str, Path]) -> Path:
        """
        Write the upload to ``target``. A file can only be moved once.

        Raises:
            RuntimeError: If the upload failed or was already moved.
        """
        if self.error:
            raise RuntimeError(f"Cannot move failed upload (error {self.error})")
        if self.moved:
            raise RuntimeError(f"Upload {self.filename!r} was already moved")

        target = Path(target)
        target.write_bytes(self.stream.getvalue())
        self.stream.close()
        self.moved = True
        logger.debug(f"Moved upload {self.filename!r} to {target}")
        return target


# =============================================================================
# BODY PARSING HELPERS
# =============================================================================

def _collapse(pairs: List[Tuple[str, str]]) -> Dict[str, Union[str, List[str]]]:
    """
    Turn query pairs into a map. Repeated keys become lists:

        "a=1&b=2&b=3" → {"a": "1", "b": ["2", "3"]}
    """
    params: Dict[str, Union[str, List[str]]] = {}
    for key, value in pairs:
        if key in params:
            existing = params[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                params[key] = [existing, value]
        else:
            params[key] = value
    return params


def parse_query(query: str) -> Dict[str, Union[str, List[str]]]:
    return _collapse(parse_qsl(query, keep_blank_values=True))


def _parse_multipart(
    content_type: str,
    body: bytes,
) -> Tuple[Dict[str, Union[str, List[str]]], Dict[str, UploadedFile]]:
    # The email package understands MIME multipart; feed it the body
    # behind a synthetic Content-Type header.
    raw = b"Content-Type: " + content_type.encode("latin-1") + b"\r\n\r\n" + body
    message = BytesParser(policy=policy.HTTP).parsebytes(raw)

    if not message.is_multipart():
        raise BadRequestException("Malformed multipart body")

    fields: List[Tuple[str, str]] = []
    files: Dict[str, UploadedFile] = {}

    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if not name:
            continue

        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()

        if filename is not None:
            files[name] = UploadedFile(
                filename=filename,
                content_type=part.get_content_type(),
                stream=Stream.from_bytes(payload),
                size=len(payload),
            )
        else:
            charset = part.get_content_charset() or "utf-8"
            fields.append((name, payload.decode(charset, errors="replace")))

    return _collapse(fields), files


def is_json_media_type(media_type: str) -> bool:
    return media_type == "application/json" or media_type.endswith("+json")


def parse_body(
    content_type: str,
    body: bytes,
) -> Tuple[Optional[Any], Dict[str, UploadedFile]]:
    """
    Parse a request body according to its Content-Type.

    Returns:
        (parsed_body, uploaded_files). ``parsed_body`` is None for types
        we don't understand.

    Raises:
        BadRequestException: Malformed JSON or multipart data.
    """
    media_type = content_type.split(";")[0].strip().lower()

    if not body:
        return None, {}

    if media_type == "application/x-www-form-urlencoded":
        return parse_query(body.decode("utf-8", errors="replace")), {}

    if is_json_media_type(media_type):
        try:
            return json.loads(body.decode("utf-8")), {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BadRequestException(f"Invalid JSON body: {e}")

    if media_type == "multipart/form-data":
        return _parse_multipart(content_type, body)

    return None, {}


def _frozen_map(value: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class Request:
    """
    An immutable HTTP request.

    Build one with ``Request.create()`` (tests, internal calls) or
    ``Request.from_environ()`` (a WSGI-style environment). Every
    ``with_*`` method returns a new Request.
    """

    method: str
    uri: Uri = field(default_factory=Uri)
    headers: Headers = field(default_factory=Headers)
    query_params: Mapping[str, Any] = field(default_factory=dict)
    parsed_body: Optional[Any] = None
    uploaded_files: Mapping[str, UploadedFile] = field(default_factory=dict)
    attributes: Mapping[str, Any] = field(default_factory=dict)
    server_params: Mapping[str, Any] = field(default_factory=dict)
    body: Stream = field(default_factory=Stream, compare=False, repr=False)
    version: str = "1.1"

    def __post_init__(self):
        # frozen=True forbids normal assignment, so normalize via object.__setattr__
        object.__setattr__(self, "method", self.method.upper())
        if isinstance(self.uri, str):
            object.__setattr__(self, "uri", Uri.parse(self.uri))
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))
        object.__setattr__(self, "query_params", _frozen_map(self.query_params))
        object.__setattr__(self, "uploaded_files", _frozen_map(self.uploaded_files))
        object.__setattr__(self, "attributes", _frozen_map(self.attributes))
        object.__setattr__(self, "server_params", _frozen_map(self.server_params))

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def create(
        cls,
        method: str,
        uri: Union[str, Uri],
        headers: Optional[Mapping[str, HeaderValue]] = None,
        body: Union[None, bytes, str, Stream] = None,
        version: str = "1.1",
        server_params: Optional[Mapping[str, Any]] = None,
    ) -> "Request":
        """
        Build a request from its parts.

        Query parameters come from the URI. The body is parsed when its
        Content-Type is form, JSON, or multipart.

        Example:
            Request.create(
                "POST", "https://api.example.com/users",
                headers={"Content-Type": "application/json"},
                body='{"name": "Ada"}',
            )
        """
        uri = Uri.parse(uri) if isinstance(uri, str) else uri
        headers = Headers(headers)

        if isinstance(body, Stream):
            stream = body
        else:
            stream = Stream.from_bytes(body or b"")

        parsed_body, files = parse_body(headers.first("Content-Type", ""), stream.getvalue())

        return cls(
            method=method,
            uri=uri,
            headers=headers,
            query_params=parse_query(uri.query),
            parsed_body=parsed_body,
            uploaded_files=files,
            server_params=server_params or {},
            body=stream,
            version=version,
        )

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "Request":
        """
        Adapt a WSGI-style environment into a Request.

        =====================================================================
        ENVIRONMENT MAPPING
        =====================================================================

            REQUEST_METHOD      → method
            wsgi.url_scheme     → uri.scheme
            HTTP_HOST           → uri.host / uri.port
            SCRIPT_NAME +
            PATH_INFO           → uri.path
            QUERY_STRING        → uri.query, query_params
            HTTP_X_API_KEY      → headers["X-Api-Key"]
            CONTENT_TYPE,
            CONTENT_LENGTH      → headers (they have no HTTP_ prefix)
            wsgi.input          → body, parsed_body, uploaded_files
            everything else     → server_params (REMOTE_ADDR, ...)

        =====================================================================
        """
        headers: List[Tuple[str, str]] = []
        server_params: Dict[str, Any] = {}

        for key, value in environ.items():
            if key.startswith("HTTP_"):
                name = key[5:].replace("_", "-").title()
                headers.append((name, value))
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                if value:
                    headers.append((key.replace("_", "-").title(), value))
            elif not key.startswith("wsgi.") and isinstance(value, str):
                server_params[key] = value

        header_map = Headers(headers)

        scheme = environ.get("wsgi.url_scheme", "http")
        host = header_map.first("Host")
        if not host:
            # No Host header: SERVER_NAME plus the port, as in PEP 3333
            host = environ.get("SERVER_NAME", "")
            if environ.get("SERVER_PORT"):
                host = f"{host}:{environ['SERVER_PORT']}"

        path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "") or "/"
        query = environ.get("QUERY_STRING", "")
        target = f"{scheme}://{host}{path}" + (f"?{query}" if query else "")

        body = b""
        stream_in = environ.get("wsgi.input")
        if stream_in is not None:
            try:
                length = int(environ.get("CONTENT_LENGTH") or 0)
            except ValueError:
                raise BadRequestException("Invalid Content-Length header")
            if length > 0:
                body = stream_in.read(length)

        protocol = environ.get("SERVER_PROTOCOL", "HTTP/1.1")
        version = protocol.split("/", 1)[1] if "/" in protocol else "1.1"

        return cls.create(
            method=environ.get("REQUEST_METHOD", "GET"),
            uri=target,
            headers=header_map.to_dict(),
            body=body,
            version=version,
            server_params=server_params,
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def is_method(self, method: str) -> bool:
        return self.method == method.upper()

    @property
    def path(self) -> str:
        return self.uri.path or "/"

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a header (case-insensitive), or ``default``."""
        return self.headers.first(name, default)

    def query(self, name: str, default: Any = None) -> Any:
        return self.query_params.get(name, default)

    def query_list(self, name: str) -> List[str]:
        """All values of a query parameter, always as a list."""
        value = self.query_params.get(name)
        if value is None:
            return []
        return list(value) if isinstance(value, list) else [value]

    def post(self, name: str, default: Any = None) -> Any:
        """A field from the parsed body (form or JSON object)."""
        if isinstance(self.parsed_body, Mapping):
            return self.parsed_body.get(name, default)
        return default

    @property
    def post_params(self) -> Mapping[str, Any]:
        if isinstance(self.parsed_body, Mapping):
            return self.parsed_body
        return {}

    def file(self, name: str) -> Optional[UploadedFile]:
        return self.uploaded_files.get(name)

    @property
    def content_type(self) -> Optional[str]:
        """Media type without parameters ("application/json")."""
        value = self.header("Content-Type", "")
        return value.split(";")[0].strip().lower() or None

    @property
    def is_json(self) -> bool:
        """True for application/json and any +json media type."""
        return is_json_media_type(self.content_type or "")

    @property
    def json(self) -> Any:
        """The decoded JSON body, or None if the body isn't JSON."""
        return self.parsed_body if self.is_json else None

    @cached_property
    def cookies(self) -> CookieJar:
        """Request cookies, parsed from the Cookie header on first access."""
        return CookieJar.from_request_headers(self.headers.get("Cookie"))

    def cookie(self, name: str, default: Optional[str] = None) -> Optional[str]:
        cookie = self.cookies.get(name)
        return cookie.value if cookie else default

    def has_cookie(self, name: str) -> bool:
        return self.cookies.has(name)

    def attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    @property
    def session(self):
        """The Session attached by SessionMiddleware, if any."""
        return self.attribute(SESSION_ATTRIBUTE)

    @property
    def client_ip(self) -> str:
        return self.server_params.get("REMOTE_ADDR", "")

    # =========================================================================
    # COPY-ON-WRITE MUTATORS
    # =========================================================================

    def with_attribute(self, name: str, value: Any) -> "Request":
        attributes = dict(self.attributes)
        attributes[name] = value
        return replace(self, attributes=attributes)

    def without_attribute(self, name: str) -> "Request":
        attributes = dict(self.attributes)
        attributes.pop(name, None)
        return replace(self, attributes=attributes)

    def with_header(self, name: str, value: HeaderValue) -> "Request":
        return replace(self, headers=self.headers.with_header(name, value))

    def with_added_header(self, name: str, value: HeaderValue) -> "Request":
        return replace(self, headers=self.headers.with_added_header(name, value))

    def without_header(self, name: str) -> "Request":
        return replace(self, headers=self.headers.without_header(name))

    def with_parsed_body(self, parsed_body: Any) -> "Request":
        return replace(self, parsed_body=parsed_body)

    def with_query_params(self, query_params: Mapping[str, Any]) -> "Request":
        return replace(self, query_params=query_params)

    def with_uri(self, uri: Union[str, Uri]) -> "Request":
        uri = Uri.parse(uri) if isinstance(uri, str) else uri
        return replace(self, uri=uri)

    def with_method(self, method: str) -> "Request":
        return replace(self, method=method)
