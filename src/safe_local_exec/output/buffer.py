"""Fixed-capacity byte sink that keeps only the most recent output."""

from __future__ import annotations

import threading
from typing import Final

# Caps memory growth from a runaway or very chatty command.
MAX_OUTPUT_BYTES: Final[int] = 8 * 1024


class BoundedBuffer:
    """Byte sink retaining at most ``capacity`` of the most recently written bytes.

    Writes never fail because of capacity; the oldest bytes are discarded
    first. ``contents()`` may be called at any time, including while another
    thread is still writing.
    """

    def __init__(self, capacity: int = MAX_OUTPUT_BYTES) -> None:
        """Initialize the buffer.

        Args:
            capacity: Maximum number of bytes retained.

        Raises:
            ValueError: If capacity is not positive.
        """

        if capacity <= 0:
            raise ValueError("Buffer capacity must be a positive number of bytes.")
        self._capacity = capacity
        self._data = bytearray()
        self._total_written = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Return the maximum number of retained bytes."""

        return self._capacity

    @property
    def total_written(self) -> int:
        """Return the number of bytes ever written, retained or not."""

        with self._lock:
            return self._total_written

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Append bytes, discarding the oldest ones beyond capacity.

        Returns:
            The number of bytes accepted, which is always ``len(data)``.
        """

        size = len(data)
        if not size:
            return 0
        with self._lock:
            self._total_written += size
            if size >= self._capacity:
                self._data[:] = bytes(data[size - self._capacity :])
                return size
            self._data.extend(data)
            excess = len(self._data) - self._capacity
            if excess > 0:
                del self._data[:excess]
        return size

    def contents(self) -> bytes:
        """Return a copy of the currently retained bytes."""

        with self._lock:
            return bytes(self._data)

    def reset(self) -> None:
        with self._lock:
            self._data.clear()
            self._total_written = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
