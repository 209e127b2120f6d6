"""Reader that mirrors everything it reads into a second sink."""

from __future__ import annotations

from typing import BinaryIO, Protocol


class ByteSink(Protocol):
    def write(self, data: bytes, /) -> int: ...


class TeeReader:
    """Readable stream yielding the source's bytes while copying them to a sink.

    Every chunk is written to the sink before it is returned to the caller, so
    the sink never lags behind the downstream reader. The sink is written to
    synchronously; pair it with a sink that cannot block, such as
    :class:`~safe_local_exec.output.buffer.BoundedBuffer`.
    """

    def __init__(self, source: BinaryIO, sink: ByteSink) -> None:
        self._source = source
        self._sink = sink

    def read(self, size: int = -1) -> bytes:
        data = self._source.read(size)
        if not data:
            return b""
        self._sink.write(data)
        return data

    def close(self) -> None:
        self._source.close()

    @property
    def closed(self) -> bool:
        return bool(getattr(self._source, "closed", False))

    def __enter__(self) -> TeeReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
