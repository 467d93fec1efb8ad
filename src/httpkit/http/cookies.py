"""
=============================================================================
COOKIES
=============================================================================

Cookies travel in two directions with two different formats:

    Browser → Server (request):
        Cookie: theme=dark; lang=en

    Server → Browser (response), one header line per cookie:
        Set-Cookie: theme=dark; Max-Age=2592000; Expires=Sat, 14 Feb 2026 12:00:00 GMT; Path=/; HttpOnly; SameSite=Lax

=============================================================================
SET-COOKIE ATTRIBUTES
=============================================================================

    ┌────────────┬──────────────────────────────────────────────────────┐
    │ Max-Age    │ 0 → session cookie (no Max-Age, no Expires)          │
    │            │ >0 → lifetime in seconds, plus matching Expires      │
    │            │ <0 → delete: Expires lands in the past               │
    │ Domain     │ only when set                                        │
    │ Path       │ default "/"                                          │
    │ Secure     │ only send over HTTPS                                 │
    │ HttpOnly   │ hide from JavaScript (default on)                    │
    │ SameSite   │ Lax (default), Strict, or None                       │
    └────────────┴──────────────────────────────────────────────────────┘

Attribute order is fixed so the header is byte-for-byte predictable.

=============================================================================
"""

import time
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional
from urllib.parse import quote_plus, unquote_plus

from .dates import format_timestamp


def _encode_value(value: str) -> str:
    # Form-style encoding: spaces as "+", everything but [A-Za-z0-9_.-] escaped.
    return quote_plus(value, safe="").replace("~", "%7E")


@dataclass(frozen=True)
class Cookie:
    """
    A single cookie as set by the server.

    Example:
        Cookie("theme", "dark", max_age=30 * 24 * 3600)
        Cookie.expired("theme")   # tells the browser to drop it
    """

    name: str
    value: str = ""
    max_age: int = 0
    path: Optional[str] = "/"
    domain: Optional[str] = None
    secure: bool = False
    http_only: bool = True
    same_site: Optional[str] = "Lax"

    def __post_init__(self):
        if not self.name or any(c in self.name for c in "=;, \t\r\n"):
            raise ValueError(f"Invalid cookie name: {self.name!r}")

    @property
    def is_session(self) -> bool:
        return self.max_age == 0

    @property
    def is_expired(self) -> bool:
        return self.max_age < 0

    def to_header_string(self, now: Optional[float] = None) -> str:
        """
        Render the value of a ``Set-Cookie`` header.

        Args:
            now: Unix time used for Expires. Defaults to the current time.
        """
        parts = [f"{self.name}={_encode_value(self.value)}"]

        if self.max_age != 0:
            now = time.time() if now is None else now
            parts.append(f"Max-Age={self.max_age}")
            parts.append(f"Expires={format_timestamp(now + self.max_age)}")

        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.secure:
            parts.append("Secure")
        if self.http_only:
            parts.append("HttpOnly")
        if self.same_site:
            parts.append(f"SameSite={self.same_site}")

        return "; ".join(parts)

    @classmethod
    def from_string(cls, header: str) -> "Cookie":
        """
        Parse a ``Set-Cookie`` header value back into a Cookie.

        Expires is ignored (Max-Age is the authoritative lifetime) and
        unknown attributes are skipped.
        """
        parts = header.split(";")
        name, _, raw_value = parts[0].strip().partition("=")

        attributes = {
            "max_age": 0,
            "path": "/",
            "domain": None,
            "secure": False,
            "http_only": False,
            "same_site": "Lax",
        }

        for part in parts[1:]:
            part = part.strip()
            if not part:
                continue
            key, has_value, val = part.partition("=")
            key = key.strip().lower()
            val = val.strip()

            if has_value:
                if key == "max-age":
                    try:
                        attributes["max_age"] = int(val)
                    except ValueError:
                        pass
                elif key == "path":
                    attributes["path"] = val
                elif key == "domain":
                    attributes["domain"] = val
                elif key == "samesite":
                    attributes["same_site"] = val
            elif key == "secure":
                attributes["secure"] = True
            elif key == "httponly":
                attributes["http_only"] = True

        return cls(name.strip(), unquote_plus(raw_value.strip()), **attributes)

    @classmethod
    def expired(cls, name: str, path: Optional[str] = "/", domain: Optional[str] = None) -> "Cookie":
        """A cookie that instructs the browser to delete ``name``."""
        return cls(name, "", max_age=-1, path=path, domain=domain)


class CookieJar:
    """
    A set of cookies keyed by name.

    Setting a cookie with a name that is already present replaces it.
    """

    def __init__(self, cookies: Iterable[Cookie] = ()):
        self._cookies: Dict[str, Cookie] = {}
        for cookie in cookies:
            self.set(cookie)

    def set(self, cookie: Cookie) -> "CookieJar":
        self._cookies[cookie.name] = cookie
        return self

    def get(self, name: str) -> Optional[Cookie]:
        return self._cookies.get(name)

    def has(self, name: str) -> bool:
        return name in self._cookies

    def remove(self, name: str) -> "CookieJar":
        self._cookies.pop(name, None)
        return self

    def all(self) -> Dict[str, Cookie]:
        return dict(self._cookies)

    def clear(self) -> "CookieJar":
        self._cookies.clear()
        return self

    def copy(self) -> "CookieJar":
        return CookieJar(self._cookies.values())

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __len__(self) -> int:
        return len(self._cookies)

    def __iter__(self) -> Iterator[Cookie]:
        return iter(list(self._cookies.values()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CookieJar):
            return NotImplemented
        return self._cookies == other._cookies

    def __repr__(self) -> str:
        return f"CookieJar({list(self._cookies)!r})"

    @classmethod
    def from_request_headers(cls, headers: Iterable[str]) -> "CookieJar":
        """
        Parse request ``Cookie`` header values (``a=1; b=2``).

        Pairs without "=" are ignored. Values are URL-decoded.
        """
        jar = cls()
        for header in headers:
            for pair in header.split(";"):
                name, has_value, value = pair.partition("=")
                name = name.strip()
                if not has_value or not name:
                    continue
                try:
                    jar.set(Cookie(name, unquote_plus(value.strip())))
                except ValueError:
                    continue
        return jar

    def to_response_headers(self, now: Optional[float] = None) -> List[str]:
        """One ``Set-Cookie`` value per cookie, in insertion order."""
        return [cookie.to_header_string(now) for cookie in self._cookies.values()]
