"""Splitting of newline-delimited response bodies into lines."""


class LineBuffer:
    """Accumulates byte chunks and hands back complete ``\\n``-terminated lines.

    Only the newest chunk is scanned for newlines; pieces of an unfinished
    line are kept in a list and joined once the line completes.
    """

    def __init__(self):
        self._parts: list[bytes] = []

    @property
    def pending(self) -> bytes:
        """Bytes received after the last newline."""
        return b"".join(self._parts)

    def feed(self, chunk: bytes) -> list[bytes]:
        lines = []
        start = 0
        end = chunk.find(b"\n")
        while end >= 0:
            self._parts.append(chunk[start:end + 1])
            lines.append(b"".join(self._parts))
            self._parts = []
            start = end + 1
            end = chunk.find(b"\n", start)
        if start < len(chunk):
            self._parts.append(chunk[start:])
        return lines
