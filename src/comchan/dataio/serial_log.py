"""Append-only text log of serial traffic (RX/TX/ERROR lines)."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, TextIO


def format_timestamp(now_ns: Optional[int] = None) -> str:
    """Wall-clock time as ``<seconds>.<millis>`` since the Unix epoch."""
    millis = (time.time_ns() if now_ns is None else now_ns) // 1_000_000
    return f"{millis // 1000}.{millis % 1000:03d}"


class SerialLog:
    """
    Write one line per serial event and flush immediately.

    Entries look like ``RX [1700000000.123]: T:25.3`` so the log can be tailed
    while a session is running.
    """

    def __init__(self, stream: TextIO, path: Optional[Path] = None) -> None:
        self._stream = stream
        self.path = path

    @classmethod
    def open(cls, path: str | Path) -> "SerialLog":
        log_path = Path(path).expanduser()
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        return cls(log_path.open("a", encoding="utf-8"), log_path)

    def _write(self, tag: str, text: str) -> None:
        self._stream.write(f"{tag} [{format_timestamp()}]: {text}\n")
        self._stream.flush()

    def rx(self, line: str) -> None:
        self._write("RX", line)

    def tx(self, line: str) -> None:
        self._write("TX", line)

    def error(self, message: str) -> None:
        self._write("ERROR", message)

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> "SerialLog":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_log(path: str | Path | None) -> Optional[SerialLog]:
    """Open the configured log file, or return ``None`` when logging is off."""
    if not path:
        return None
    return SerialLog.open(path)
