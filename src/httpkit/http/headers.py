"""
=============================================================================
HEADER MULTIMAP
=============================================================================

HTTP headers are:
- case-insensitive by name ("Content-Type" == "content-type")
- multi-valued (a response may carry several Set-Cookie lines)
- ordered (we emit them in the order they were added)

``Headers`` stores every name once, keyed by its lowercase form, and
remembers the spelling it was first given so output looks the way the
caller wrote it.

    Headers({"Content-Type": "text/plain"})
        │
        ├── .with_header("X-A", "1")         → new Headers, X-A replaced
        ├── .with_added_header("X-A", "2")   → new Headers, X-A appended
        └── .without_header("X-A")           → new Headers, X-A removed

The original value is never modified. Middleware relies on this: each
layer overlays headers on its own copy of a response without affecting
the copy any other layer captured.

=============================================================================
"""

import re
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union


HeaderValue = Union[str, Iterable[str]]

# RFC 7230 token characters
_HEADER_NAME_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def _normalize_values(value: HeaderValue) -> List[str]:
    if isinstance(value, (str, bytes)):
        values = [value]
    else:
        values = list(value)

    normalized = []
    for item in values:
        if isinstance(item, bytes):
            item = item.decode("latin-1")
        item = str(item)
        if "\r" in item or "\n" in item:
            raise ValueError(f"Header values must not contain CR or LF: {item!r}")
        normalized.append(item.strip())
    return normalized


def _validate_name(name: str) -> str:
    if not isinstance(name, str) or not _HEADER_NAME_PATTERN.match(name):
        raise ValueError(f"Invalid header name: {name!r}")
    return name


class Headers:
    """
    Immutable, ordered, case-insensitive header multimap.

    Construct from a mapping of name → value (or list of values), or from
    an iterable of ``(name, value)`` pairs:

        Headers({"Accept": "text/html"})
        Headers([("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")])
    """

    __slots__ = ("_names", "_values")

    def __init__(
        self,
        headers: Union[None, "Headers", Mapping[str, HeaderValue], Iterable[Tuple[str, str]]] = None,
    ):
        self._names: Dict[str, str] = {}
        self._values: Dict[str, List[str]] = {}

        if headers is None:
            return

        if isinstance(headers, Headers):
            self._names = dict(headers._names)
            self._values = {key: list(values) for key, values in headers._values.items()}
            return

        pairs = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in pairs:
            self._append(name, value)

    # =========================================================================
    # INTERNAL MUTATION (only used while building a fresh instance)
    # =========================================================================

    def _append(self, name: str, value: HeaderValue) -> None:
        key = _validate_name(name).lower()
        self._names.setdefault(key, name)
        self._values.setdefault(key, []).extend(_normalize_values(value))

    def _copy(self) -> "Headers":
        return Headers(self)

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    def get(self, name: str) -> List[str]:
        """All values for a header (empty list if absent)."""
        return list(self._values.get(name.lower(), []))

    def first(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """The first value for a header, or ``default``."""
        values = self._values.get(name.lower())
        return values[0] if values else default

    def get_line(self, name: str) -> str:
        """All values joined with ", " (the single-line form of a header)."""
        return ", ".join(self._values.get(name.lower(), []))

    def names(self) -> List[str]:
        """Header names in insertion order, as originally spelled."""
        return list(self._names.values())

    def to_dict(self) -> Dict[str, List[str]]:
        return {self._names[key]: list(values) for key, values in self._values.items()}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._values

    def __iter__(self) -> Iterator[Tuple[str, List[str]]]:
        for key, values in self._values.items():
            yield self._names[key], list(values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Headers({self.to_dict()!r})"

    # =========================================================================
    # COPY-ON-WRITE MUTATORS
    # =========================================================================

    def with_header(self, name: str, value: HeaderValue) -> "Headers":
        """Return a copy with ``name`` replaced by ``value``."""
        new = self._copy()
        key = _validate_name(name).lower()
        new._names[key] = name
        new._values[key] = _normalize_values(value)
        return new

    def with_added_header(self, name: str, value: HeaderValue) -> "Headers":
        """Return a copy with ``value`` appended to ``name``."""
        new = self._copy()
        new._append(name, value)
        return new

    def without_header(self, name: str) -> "Headers":
        """Return a copy without ``name``."""
        new = self._copy()
        key = name.lower()
        new._names.pop(key, None)
        new._values.pop(key, None)
        return new

    def merged(self, headers: Mapping[str, HeaderValue]) -> "Headers":
        """Return a copy with every header in ``headers`` replacing ours."""
        new = self._copy()
        for name, value in headers.items():
            key = _validate_name(name).lower()
            new._names[key] = name
            new._values[key] = _normalize_values(value)
        return new
