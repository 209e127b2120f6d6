"""Lazy newline splitting over a raw byte stream."""

from __future__ import annotations

from typing import BinaryIO, Final, Iterator, Protocol

DEFAULT_CHUNK_SIZE: Final[int] = 4096


class ByteSource(Protocol):
    """Anything exposing a blocking ``read(size)`` that returns b"" at EOF."""

    def read(self, size: int = -1, /) -> bytes | None: ...


class LineReader:
    """Iterator producing text lines from a byte source.

    Line terminators (``\\n`` or ``\\r\\n``) are stripped. A trailing fragment
    without a terminator is flushed as a final line when the source is
    exhausted, so no output is silently lost. Each line is decoded on its own;
    invalid bytes are replaced rather than raising.

    The reader is single-pass: once the source is exhausted, iterating again
    yields nothing.
    """

    def __init__(
        self,
        source: ByteSource | BinaryIO,
        *,
        encoding: str = "utf-8",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive.")
        self._source = source
        self._encoding = encoding
        self._chunk_size = chunk_size
        self._pending = bytearray()
        self._exhausted = False

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        while True:
            newline = self._pending.find(b"\n")
            if newline >= 0:
                raw = bytes(self._pending[:newline])
                del self._pending[: newline + 1]
                return self._decode(raw)
            if self._exhausted:
                if self._pending:
                    raw = bytes(self._pending)
                    self._pending.clear()
                    return self._decode(raw)
                raise StopIteration
            chunk = self._source.read(self._chunk_size)
            if not chunk:
                self._exhausted = True
                continue
            self._pending.extend(chunk)

    def _decode(self, raw: bytes) -> str:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        return raw.decode(self._encoding, errors="replace")
