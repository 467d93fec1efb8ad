"""
=============================================================================
BODY STREAMS
=============================================================================

A response body is one of two things:

    ┌──────────────────────────┬───────────────────────────────────────────┐
    │ Stream                   │ CallbackStream                            │
    ├──────────────────────────┼───────────────────────────────────────────┤
    │ finite buffer / file     │ lazily produced bytes                     │
    │ seekable, known size     │ not seekable, size unknown                │
    │ getvalue() = full body   │ getvalue() = b"" (never consumes)         │
    │ can be cached, replayed  │ read once, chunk by chunk                 │
    └──────────────────────────┴───────────────────────────────────────────┘

Server.send() reads both the same way: ``read(chunk_size)`` until the
stream reports EOF or hands back an empty chunk.

=============================================================================
"""

import io
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, Optional, Union


Chunk = Union[bytes, str]
ChunkProducer = Callable[[int], Optional[Chunk]]


def _to_bytes(chunk: Optional[Chunk]) -> bytes:
    if chunk is None:
        return b""
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


class Stream:
    """
    A finite, seekable body backed by a binary file object.

    Usage:
        Stream.from_bytes(b"hello")
        Stream.from_file("/srv/report.pdf")
        Stream(io.BytesIO(data))
    """

    def __init__(self, fileobj: Optional[BinaryIO] = None):
        self._file = fileobj if fileobj is not None else io.BytesIO()
        self._closed = False

    @classmethod
    def from_bytes(cls, data: Chunk = b"") -> "Stream":
        return cls(io.BytesIO(_to_bytes(data)))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Stream":
        """Open ``path`` for binary reading. Raises OSError if it can't be read."""
        return cls(open(path, "rb"))

    # =========================================================================
    # STREAM INTERFACE
    # =========================================================================

    def is_seekable(self) -> bool:
        return not self._closed and self._file.seekable()

    def rewind(self) -> None:
        self._file.seek(0)

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            raise ValueError("Stream is closed")
        return self._file.read(size)

    def eof(self) -> bool:
        if self._closed:
            return True
        position = self._file.tell()
        if self._file.read(1) == b"":
            return True
        self._file.seek(position)
        return False

    @property
    def size(self) -> Optional[int]:
        if self._closed or not self._file.seekable():
            return None
        position = self._file.tell()
        end = self._file.seek(0, io.SEEK_END)
        self._file.seek(position)
        return end

    def getvalue(self) -> bytes:
        """The complete body, regardless of the current read position."""
        if self._closed:
            return b""
        position = self._file.tell()
        self._file.seek(0)
        data = self._file.read()
        self._file.seek(position)
        return data

    def close(self) -> None:
        if not self._closed:
            self._file.close()
            self._closed = True

    def __iter__(self) -> Iterator[bytes]:
        self.rewind()
        while True:
            chunk = self.read(8192)
            if not chunk:
                break
            yield chunk

    def __repr__(self) -> str:
        return f"Stream(size={self.size})"


class CallbackStream:
    """
    A lazily produced, read-once body.

    The producer is either a callable ``(size) -> bytes | str`` that
    returns an empty value when it is done, or any iterable of chunks:

        def ticker(size):
            ...
            return b"tick\\n"

        CallbackStream(ticker)
        CallbackStream(["first\\n", "second\\n"])
    """

    def __init__(self, producer: Union[ChunkProducer, Iterable[Chunk]]):
        if callable(producer):
            self._producer: ChunkProducer = producer
        else:
            iterator = iter(producer)
            self._producer = lambda size: next(iterator, b"")
        self._finished = False

    def is_seekable(self) -> bool:
        return False

    def rewind(self) -> None:
        raise io.UnsupportedOperation("Streaming body cannot be rewound")

    def read(self, size: int = 8192) -> bytes:
        if self._finished:
            return b""
        chunk = _to_bytes(self._producer(size))
        if not chunk:
            self._finished = True
        return chunk

    def eof(self) -> bool:
        return self._finished

    @property
    def size(self) -> Optional[int]:
        return None

    def getvalue(self) -> bytes:
        # Materializing would consume the producer.
        return b""

    def close(self) -> None:
        self._finished = True

    def __repr__(self) -> str:
        return f"CallbackStream(finished={self._finished})"


Body = Union[Stream, CallbackStream]


def stream_for(body: Union[None, Chunk, Body, BinaryIO]) -> Body:
    """Coerce bytes, str, a file object, or an existing stream into a body."""
    if isinstance(body, (Stream, CallbackStream)):
        return body
    if body is None:
        return Stream.from_bytes(b"")
    if isinstance(body, (bytes, bytearray, str)):
        return Stream.from_bytes(body)
    if hasattr(body, "read"):
        return Stream(body)
    raise TypeError(f"Cannot use {type(body).__name__} as a response body")
