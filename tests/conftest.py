from __future__ import annotations

import io
from typing import List, Optional, Union

import pytest
import serial

from comchan.dataio.serial_log import SerialLog

Chunk = Union[bytes, Exception]


class FakePort:
    """In-memory stand-in for :class:`serial.Serial`; replays scripted reads."""

    def __init__(self, chunks: Optional[List[Chunk]] = None) -> None:
        self.chunks: List[Chunk] = list(chunks or [])
        self.written: List[bytes] = []
        self.write_error: Optional[Exception] = None
        self.flush_error: Optional[Exception] = None
        self.in_waiting_error: Optional[Exception] = None
        self.flushes = 0
        self.closed = False

    @property
    def in_waiting(self) -> int:
        if self.in_waiting_error is not None:
            raise self.in_waiting_error
        if self.chunks and isinstance(self.chunks[0], bytes):
            return len(self.chunks[0])
        return 0

    def read(self, size: int = 1) -> bytes:
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if isinstance(chunk, Exception):
            raise chunk
        return chunk

    def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        self.written.append(data)
        return len(data)

    def flush(self) -> None:
        if self.flush_error is not None:
            raise self.flush_error
        self.flushes += 1

    def close(self) -> None:
        self.closed = True


class FakeRenderer:
    """Records frames; asks to exit after ``iterations`` polls."""

    def __init__(self, iterations: int) -> None:
        self.iterations = iterations
        self.polls = 0
        self.frames = []

    def poll_exit(self, timeout: float) -> bool:
        self.polls += 1
        return self.polls > self.iterations

    def draw(self, frame) -> None:
        self.frames.append(frame)


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def serial_log(log_stream: io.StringIO) -> SerialLog:
    return SerialLog(log_stream)


@pytest.fixture
def serial_error() -> serial.SerialException:
    return serial.SerialException("device reports readiness to read but returned no data")
