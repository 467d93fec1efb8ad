"""
Request target URI as an immutable value.

    https://user@example.com:8443/api/users?page=2#top
    └─┬─┘   └┬─┘ └────┬────┘ └┬─┘└───┬───┘ └──┬─┘ └┬┘
    scheme  user     host    port  path    query  fragment

Default ports (80 for http, 443 for https) are dropped so that
``Uri.parse("http://a.com:80/")`` and ``Uri.parse("http://a.com/")``
render and compare the same. That matters for the cache key, which is
built from ``str(request.uri)``.
"""

from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import urlsplit


_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Uri:
    scheme: str = ""
    user_info: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""

    def __post_init__(self):
        object.__setattr__(self, "scheme", self.scheme.lower())
        object.__setattr__(self, "host", self.host.lower())
        if self.port is not None:
            if not 0 < self.port < 65536:
                raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")
            if _DEFAULT_PORTS.get(self.scheme) == self.port:
                object.__setattr__(self, "port", None)

    @classmethod
    def parse(cls, uri: str) -> "Uri":
        """Parse a URI string (absolute, or just a path with query)."""
        parts = urlsplit(uri)
        user_info = ""
        if "@" in parts.netloc:
            user_info = parts.netloc.rsplit("@", 1)[0]

        try:
            port = parts.port
        except ValueError as e:
            raise ValueError(f"Invalid URI {uri!r}: {e}") from e

        return cls(
            scheme=parts.scheme,
            user_info=user_info,
            host=parts.hostname or "",
            port=port,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
        )

    @property
    def authority(self) -> str:
        """``[user_info@]host[:port]``, or an empty string without a host."""
        if not self.host:
            return ""
        authority = self.host
        if self.user_info:
            authority = f"{self.user_info}@{authority}"
        if self.port is not None:
            authority = f"{authority}:{self.port}"
        return authority

    def with_scheme(self, scheme: str) -> "Uri":
        return replace(self, scheme=scheme)

    def with_host(self, host: str) -> "Uri":
        return replace(self, host=host)

    def with_port(self, port: Optional[int]) -> "Uri":
        return replace(self, port=port)

    def with_path(self, path: str) -> "Uri":
        return replace(self, path=path)

    def with_query(self, query: str) -> "Uri":
        return replace(self, query=query.lstrip("?"))

    def with_fragment(self, fragment: str) -> "Uri":
        return replace(self, fragment=fragment.lstrip("#"))

    def __str__(self) -> str:
        uri = ""
        if self.scheme:
            uri += f"{self.scheme}:"

        authority = self.authority
        if authority or self.scheme == "file":
            uri += f"//{authority}"

        path = self.path
        if authority and path and not path.startswith("/"):
            path = "/" + path
        uri += path

        if self.query:
            uri += f"?{self.query}"
        if self.fragment:
            uri += f"#{self.fragment}"
        return uri
