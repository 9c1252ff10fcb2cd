"""Split an arbitrary serial byte stream into complete text lines."""

from __future__ import annotations

import logging
from collections.abc import Iterator

logger = logging.getLogger(__name__)

DEFAULT_DISCARD_LINES = 3


class LineFramer:
    """
    Accumulate decoded serial bytes and hand out complete lines.

    Bytes are decoded as UTF-8 with invalid sequences replaced, so a device
    that boots up emitting garbage never raises here. Text after the last
    ``\\n`` stays buffered until a later :meth:`feed` completes it.

    The first ``discard_lines`` complete lines are dropped unconditionally;
    most boards print a banner or half a line while the port settles.
    """

    def __init__(self, discard_lines: int = DEFAULT_DISCARD_LINES) -> None:
        if discard_lines < 0:
            raise ValueError("discard_lines must be >= 0")
        self.discard_lines = discard_lines
        self.discarded = 0
        self._pending = ""

    @property
    def pending(self) -> str:
        """Partial text waiting for its newline."""
        return self._pending

    def feed(self, data: bytes) -> Iterator[str]:
        """
        Append ``data`` and return an iterator over the newly completed lines.

        Lines keep their trailing newline. The accumulator is updated right
        away; lines are only cut out of it as the iterator is consumed, so
        anything left unconsumed is returned by the next call instead.
        """
        if data:
            self._pending += data.decode("utf-8", errors="replace")
        return self._drain()

    def _drain(self) -> Iterator[str]:
        while True:
            line_end = self._pending.find("\n")
            if line_end < 0:
                return
            line = self._pending[: line_end + 1]
            self._pending = self._pending[line_end + 1 :]

            if self.discarded < self.discard_lines:
                self.discarded += 1
                logger.debug("Discarding start-up line %d: %r", self.discarded, line)
                continue
            yield line

    def reset(self) -> None:
        self._pending = ""
        self.discarded = 0
