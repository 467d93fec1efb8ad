"""
=============================================================================
SESSIONS
=============================================================================

Server-side per-visitor state, identified by a cookie.

    Browser                         Server
    ───────                         ──────
    Cookie: HTTPKITSESSID=abc  ──►  store.read("abc") → {"user_id": 7}
                                        │
                                    handler reads/writes session
                                        │
                               ◄──  store.write("abc", {...}, ttl)

=============================================================================
STORAGE
=============================================================================

A Session never touches global state. It is handed a ``SessionStore``:

    ┌────────────────────┬──────────────────────────────────────────────┐
    │ SessionStore (ABC) │ read(id) / write(id, data, ttl) / delete(id) │
    │ MemorySessionStore │ in-process, thread-safe, expiring            │
    └────────────────────┴──────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    Session(store, options, session_id=<cookie value or None>)
        │
        ├── start()        idempotent; loads data for a known id, otherwise
        │                  issues a fresh id (an unknown id from the client
        │                  is never adopted)
        ├── get/set/...    start() implicitly
        ├── regenerate()   new id, same data (call after login)
        ├── destroy()      drop data and id; cookie() then expires the cookie
        └── save()         persist to the store (SessionMiddleware does this)

=============================================================================
"""

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .http.cookies import Cookie
from .storage import MemoryStorage


logger = logging.getLogger(__name__)


FLASH_KEY = "_flash"


class SessionStore(ABC):
    """Where session data lives between requests."""

    @abstractmethod
    def read(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Data for ``session_id``, or None if unknown or expired."""

    @abstractmethod
    def write(self, session_id: str, data: Dict[str, Any], ttl: int) -> None:
        """Persist ``data`` for ``ttl`` seconds."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Forget ``session_id``."""


class MemorySessionStore(SessionStore):
    """
    Process-local session store.

    Data is lost on restart and not shared between processes; use it for
    development, tests, and single-process deployments.
    """

    def __init__(self, storage: Optional[MemoryStorage] = None):
        self._storage = storage or MemoryStorage()

    def read(self, session_id: str) -> Optional[Dict[str, Any]]:
        data = self._storage.get(session_id)
        return dict(data) if data is not None else None

    def write(self, session_id: str, data: Dict[str, Any], ttl: int) -> None:
        self._storage.set(session_id, dict(data), ttl)

    def delete(self, session_id: str) -> None:
        self._storage.delete(session_id)


@dataclass
class SessionOptions:
    """
    Session cookie and lifetime settings.

    Attributes:
        name: Cookie name carrying the session id
        cookie_lifetime: Cookie Max-Age; 0 = until the browser closes
        cookie_path / cookie_domain / cookie_secure /
        cookie_httponly / cookie_samesite: Set-Cookie attributes
        lifetime: Seconds the store keeps idle session data
    """

    name: str = "HTTPKITSESSID"
    cookie_lifetime: int = 0
    cookie_path: str = "/"
    cookie_domain: Optional[str] = None
    cookie_secure: bool = False
    cookie_httponly: bool = True
    cookie_samesite: Optional[str] = "Lax"
    lifetime: int = 1440


def generate_session_id() -> str:
    return secrets.token_hex(20)


class Session:
    """
    One visitor's session for the duration of one request.

    Usage (inside a handler, behind SessionMiddleware):
        session = request.session
        session.set("user_id", 7)
        session.flash("notice", "Saved!")
    """

    def __init__(
        self,
        store: SessionStore,
        options: Optional[SessionOptions] = None,
        session_id: Optional[str] = None,
    ):
        self._store = store
        self.options = options or SessionOptions()
        self._requested_id = session_id
        self._id: Optional[str] = session_id
        self._data: Dict[str, Any] = {}
        self._started = False
        self._destroyed = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> bool:
        if self._started:
            return True

        data = self._store.read(self._id) if self._id else None
        if data is None:
            # Unknown or missing id: issue our own rather than adopt the client's
            self._id = generate_session_id()
            self._data = {}
            logger.debug("Started new session")
        else:
            self._data = data

        self._started = True
        self._destroyed = False
        return True

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def save(self) -> None:
        """Write the session to the store. No-op unless started."""
        if self._started and self._id:
            self._store.write(self._id, self._data, self.options.lifetime)

    def destroy(self) -> bool:
        if not self._started:
            return True

        self._data = {}
        if self._id:
            self._store.delete(self._id)
        self._id = None
        self._started = False
        self._destroyed = True
        return True

    def regenerate(self, delete_old_session: bool = True) -> bool:
        """Move the data to a new id (prevents session fixation)."""
        self.start()
        old_id = self._id
        self._id = generate_session_id()
        if delete_old_session and old_id:
            self._store.delete(old_id)
        return True

    @property
    def id(self) -> str:
        self.start()
        return self._id

    def set_id(self, session_id: str) -> "Session":
        """Choose the id to load. Ignored once the session has started."""
        if not self._started:
            self._id = session_id
        return self

    @property
    def name(self) -> str:
        return self.options.name

    # =========================================================================
    # DATA
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        self.start()
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> "Session":
        self.start()
        self._data[key] = value
        return self

    def has(self, key: str) -> bool:
        self.start()
        return self._data.get(key) is not None

    def remove(self, key: str) -> "Session":
        self.start()
        self._data.pop(key, None)
        return self

    def all(self) -> Dict[str, Any]:
        self.start()
        return dict(self._data)

    def clear(self) -> "Session":
        self.start()
        self._data = {}
        return self

    # ─────────────────────────────────────────────────────────────────────
    # Flash data: read once, then gone
    # ─────────────────────────────────────────────────────────────────────

    def flash(self, key: str, value: Any) -> "Session":
        flashes = dict(self.get(FLASH_KEY, {}))
        flashes[key] = value
        return self.set(FLASH_KEY, flashes)

    def get_flash(self, key: str, default: Any = None) -> Any:
        flashes = dict(self.get(FLASH_KEY, {}))
        value = flashes.pop(key, default)
        self.set(FLASH_KEY, flashes)
        return value

    def has_flash(self, key: str) -> bool:
        return self.get(FLASH_KEY, {}).get(key) is not None

    # =========================================================================
    # COOKIE
    # =========================================================================

    def cookie(self) -> Optional[Cookie]:
        """
        The Set-Cookie the response needs, if any.

        - destroyed session         → an expired cookie
        - id differs from the one   → a cookie carrying the new id
          the client sent
        - otherwise                 → None (the browser already has it)
        """
        opts = self.options

        if self._destroyed:
            return Cookie.expired(opts.name, opts.cookie_path, opts.cookie_domain)

        if not self._started or self._id == self._requested_id:
            return None

        return Cookie(
            opts.name,
            self._id,
            max_age=opts.cookie_lifetime,
            path=opts.cookie_path,
            domain=opts.cookie_domain,
            secure=opts.cookie_secure,
            http_only=opts.cookie_httponly,
            same_site=opts.cookie_samesite,
        )

    def __repr__(self) -> str:
        return f"Session(name={self.name!r}, started={self._started})"
