"""Newline-delimited record framing.

Framing is purely delimiter based: a record ends at the next ``\\n`` byte,
whatever the payload looks like. Reads may carry several records, part of
one, or a record split anywhere, including inside a multi-byte UTF-8
sequence or a JSON string value. Bytes are only decoded once a whole record
has arrived.
"""

from __future__ import annotations

from playwright_repl.transport.messages import DELIMITER


class LineFramer:
    """Incremental splitter for newline-terminated records.

    Usage:
        framer = LineFramer()
        for record in framer.feed(chunk):
            handle(record)
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        """Add a chunk and return every record it completes.

        Blank records (empty lines) are skipped. Trailing bytes without a
        delimiter stay buffered until a later chunk completes them.
        """
        self._buffer.extend(data)

        records: list[bytes] = []
        start = 0
        while True:
            end = self._buffer.find(DELIMITER, start)
            if end == -1:
                break
            record = bytes(self._buffer[start:end])
            if record.strip():
                records.append(record)
            start = end + 1

        if start:
            del self._buffer[:start]
        return records

    @property
    def buffered(self) -> int:
        """Number of bytes waiting for a delimiter."""
        return len(self._buffer)

    def reset(self) -> None:
        """Drop any partial record."""
        self._buffer.clear()
