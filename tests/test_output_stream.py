from __future__ import annotations

import io
import logging

import pytest

from safe_local_exec.output.buffer import BoundedBuffer
from safe_local_exec.output.lines import LineReader
from safe_local_exec.output.sinks import CallbackSink, CollectingSink, LoggerSink
from safe_local_exec.output.tee import TeeReader


def test_line_reader_splits_across_chunk_boundaries() -> None:
    source = io.BytesIO(b"first line\nsecond\r\nthird\n")

    lines = list(LineReader(source, chunk_size=3))

    assert lines == ["first line", "second", "third"]


def test_line_reader_flushes_unterminated_tail() -> None:
    lines = list(LineReader(io.BytesIO(b"a\nb")))

    assert lines == ["a", "b"]


def test_line_reader_keeps_blank_lines() -> None:
    lines = list(LineReader(io.BytesIO(b"\n\nx\n")))

    assert lines == ["", "", "x"]


def test_line_reader_replaces_invalid_utf8() -> None:
    lines = list(LineReader(io.BytesIO("café\n".encode() + b"\xff\n")))

    assert lines == ["café", "�"]


def test_line_reader_is_single_pass() -> None:
    reader = LineReader(io.BytesIO(b"one\ntwo\n"))

    assert list(reader) == ["one", "two"]
    assert list(reader) == []


def test_line_reader_rejects_bad_chunk_size() -> None:
    with pytest.raises(ValueError):
        LineReader(io.BytesIO(b""), chunk_size=0)


def test_tee_reader_forwards_bytes_before_returning_them() -> None:
    buffer = BoundedBuffer(64)
    observed: list[bytes] = []

    class RecordingSink:
        def write(self, data: bytes) -> int:
            observed.append(data)
            return buffer.write(data)

    tee = TeeReader(io.BytesIO(b"abcdefgh"), RecordingSink())

    first = tee.read(3)
    assert first == b"abc"
    assert observed == [b"abc"]
    assert tee.read(100) == b"defgh"
    assert tee.read(100) == b""
    assert buffer.contents() == b"abcdefgh"


def test_tee_reader_feeds_line_reader_and_buffer() -> None:
    buffer = BoundedBuffer(8)
    payload = b"".join(f"line-{index}\n".encode() for index in range(20))

    with TeeReader(io.BytesIO(payload), buffer) as tee:
        lines = list(LineReader(tee, chunk_size=5))
        assert not tee.closed

    assert tee.closed
    assert lines == [f"line-{index}" for index in range(20)]
    assert buffer.contents() == payload[-8:]


def test_sinks_deliver_lines(caplog: pytest.LogCaptureFixture) -> None:

    collected = CollectingSink()
    captured: list[str] = []
    logger = logging.getLogger("test.sink")
    caplog.set_level(logging.INFO, logger="test.sink")

    for sink in (collected, CallbackSink(captured.append), LoggerSink(logger)):
        sink.emit("hello")
        sink.emit("world")

    assert collected.lines == ["hello", "world"]
    assert collected.text() == "hello\nworld"
    assert captured == ["hello", "world"]
    assert [record.getMessage() for record in caplog.records] == ["hello", "world"]
