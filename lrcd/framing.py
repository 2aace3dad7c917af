"""Reassembly of a TCP byte stream into newline-terminated protocol lines."""

from __future__ import annotations

from .constants import LINE_DELIMITER


class LineTooLong(ValueError):
    """Raised when a client sends more than the allowed bytes without a newline."""


class LineFramer:
    """
    Per-connection accumulator for inbound bytes.

    ``feed()`` appends raw bytes; ``next_line()`` pops one complete line at a
    time. Consumed bytes are dropped from the front of the buffer once they
    make up more than half of it, so long-lived connections do not grow the
    buffer and the delimiter scan never revisits bytes it has already seen.
    """

    def __init__(self, max_line_bytes: int = 4096) -> None:
        self.max_line_bytes = int(max_line_bytes)
        self._buf = bytearray()
        self._start = 0  # offset of the first unconsumed byte
        self._scan = 0  # offset where the next delimiter search begins

    def __len__(self) -> int:
        return len(self._buf) - self._start

    def feed(self, data: bytes) -> None:
        if data:
            self._buf.extend(data)

    def next_line(self) -> bytes | None:
        """Return the next complete line without its terminator, or None."""
        idx = self._buf.find(LINE_DELIMITER, max(self._scan, self._start))
        if idx < 0:
            self._scan = len(self._buf)
            return None

        line = bytes(self._buf[self._start : idx])
        if line.endswith(b"\r"):
            line = line[:-1]

        self._start = idx + 1
        self._scan = self._start
        self._compact()
        return line

    def lines(self):
        while True:
            line = self.next_line()
            if line is None:
                return
            yield line

    def ensure_within_limit(self) -> None:
        pending = len(self)
        if pending > self.max_line_bytes:
            raise LineTooLong(
                f"{pending} bytes without a line delimiter (limit {self.max_line_bytes})"
            )

    def _compact(self) -> None:
        if self._start == len(self._buf):
            self._buf.clear()
            self._start = 0
            self._scan = 0
        elif self._start > len(self._buf) // 2:
            del self._buf[: self._start]
            self._scan -= self._start
            self._start = 0
