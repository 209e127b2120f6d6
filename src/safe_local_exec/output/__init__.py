"""Output capture stages: bounded buffer, fan-out, line splitting, sinks."""

from safe_local_exec.output.buffer import MAX_OUTPUT_BYTES, BoundedBuffer
from safe_local_exec.output.lines import LineReader
from safe_local_exec.output.sinks import (
    CallbackSink,
    CollectingSink,
    LoggerSink,
    OutputSink,
)
from safe_local_exec.output.tee import TeeReader

__all__ = [
    "MAX_OUTPUT_BYTES",
    "BoundedBuffer",
    "CallbackSink",
    "CollectingSink",
    "LineReader",
    "LoggerSink",
    "OutputSink",
    "TeeReader",
]
