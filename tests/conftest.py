"""
pytest configuration and fixtures.
"""

import io
from typing import Any, Dict, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpkit import Server, ServerConfig
from httpkit.http import Request, Response, text_response
from httpkit.transport import StreamTransport


class FakeClock:
    """Settable time source for rate limits and storage expiry."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DictStorage:
    """
    Storage callable backed by a plain dict.

    Records every call so tests can assert on what middleware stored.
    TTLs are recorded but not enforced.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(initial or {})
        self.calls: List[Tuple] = []

    def __call__(self, operation: str, key: str, value: Any = None, ttl: Optional[int] = None) -> Any:
        self.calls.append((operation, key, value, ttl))
        if operation == "get":
            return self.data.get(key)
        if operation == "set":
            self.data[key] = value
        return None

    def sets(self) -> List[Tuple]:
        return [call for call in self.calls if call[0] == "set"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> DictStorage:
    return DictStorage()


@pytest.fixture
def sample_get_request() -> Request:
    """Sample GET request with query and common headers."""
    return Request.create(
        "GET",
        "http://localhost:8080/api/users?page=1&limit=10",
        headers={
            "Host": "localhost:8080",
            "User-Agent": "pytest",
            "Accept": "application/json",
        },
        server_params={"REMOTE_ADDR": "192.0.2.10"},
    )


@pytest.fixture
def sample_post_request() -> Request:
    """Sample POST request with a JSON body."""
    return Request.create(
        "POST",
        "http://localhost:8080/api/users",
        headers={"Content-Type": "application/json"},
        body=b'{"name": "John", "email": "john@example.com"}',
    )


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(log_level="WARNING")


@pytest.fixture
def server(config: ServerConfig) -> Server:
    return Server(config)


@pytest.fixture
def ok_handler():
    """Terminal handler that always answers 200 "handled"."""
    def handler(request: Request) -> Response:
        return text_response("handled")
    return handler


@pytest.fixture
def output() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def transport(output: io.BytesIO) -> StreamTransport:
    return StreamTransport(output)
