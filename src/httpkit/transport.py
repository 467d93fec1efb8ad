"""
=============================================================================
OUTPUT TRANSPORTS
=============================================================================

Where ``Server.send()`` writes a response.

    Server.send(response)
        │
        ├── headers_sent?  yes → skip straight to the body
        │                  no  → send_status, send_header × N, end_headers
        │
        ├── write(chunk) + flush()   per body chunk
        │
        └── finish()

``StreamTransport`` renders HTTP/1.1 onto any writable binary file
object (a socket's ``makefile("wb")``, ``sys.stdout.buffer``, a BytesIO
in tests):

    HTTP/1.1 200 OK\\r\\n
    Content-Type: text/plain; charset=UTF-8\\r\\n
    \\r\\n
    hello

When the headers announce ``Transfer-Encoding: chunked`` the body is
framed accordingly:

    5\\r\\nhello\\r\\n
    0\\r\\n\\r\\n

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import BinaryIO


class OutputTransport(ABC):
    """The sink a response is written to."""

    @property
    @abstractmethod
    def headers_sent(self) -> bool:
        """True once the status line and headers are committed."""

    @abstractmethod
    def send_status(self, version: str, status: int, reason: str) -> None:
        pass

    @abstractmethod
    def send_header(self, name: str, value: str) -> None:
        pass

    @abstractmethod
    def end_headers(self) -> None:
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        pass

    def flush(self) -> None:
        pass

    def finish(self) -> None:
        """Called once after the last body chunk."""


class StreamTransport(OutputTransport):
    """
    Writes HTTP/1.1 wire format to a binary file object.

    Usage:
        with sock.makefile("wb") as wfile:
            server.send(response, StreamTransport(wfile))
    """

    def __init__(self, wfile: BinaryIO):
        self._wfile = wfile
        self._headers_sent = False
        self._chunked = False
        self._finished = False

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    def send_status(self, version: str, status: int, reason: str) -> None:
        self._wfile.write(f"HTTP/{version} {status} {reason}\r\n".encode("latin-1"))

    def send_header(self, name: str, value: str) -> None:
        if name.lower() == "transfer-encoding" and "chunked" in value.lower():
            self._chunked = True
        self._wfile.write(f"{name}: {value}\r\n".encode("latin-1"))

    def end_headers(self) -> None:
        self._wfile.write(b"\r\n")
        self._headers_sent = True

    def write(self, data: bytes) -> None:
        if not data:
            return
        if self._chunked:
            self._wfile.write(f"{len(data):x}\r\n".encode("ascii") + data + b"\r\n")
        else:
            self._wfile.write(data)

    def flush(self) -> None:
        self._wfile.flush()

    def finish(self) -> None:
        if self._chunked and not self._finished:
            self._wfile.write(b"0\r\n\r\n")
            self._wfile.flush()
        self._finished = True
