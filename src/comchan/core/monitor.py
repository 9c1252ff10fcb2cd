"""
Interactive serial monitor: echo device output, forward console input.

Two threads are involved. :class:`ConsoleReader` blocks on console
``readline()`` and pushes every line into an unbounded queue; the main thread
runs :class:`MonitorSession`, which owns the port and is the only writer to
it. The console thread has no cancellation path: it is a daemon and simply
dies with the process.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

import serial

from ..dataio.serial_log import SerialLog, format_timestamp
from ..transport.ports import Transport, flush_output, read_available, write_data
from .framing import LineFramer

logger = logging.getLogger(__name__)

WRITE_SETTLE_S = 0.1
IDLE_SLEEP_S = 0.01


class ConsoleReader:
    """Forward lines typed on ``source`` into ``outbox`` from a daemon thread."""

    def __init__(self, source: TextIO, outbox: "queue.Queue[str]") -> None:
        self.source = source
        self.outbox = outbox
        self.thread: Optional[threading.Thread] = None

    def _run(self) -> None:
        while True:
            try:
                line = self.source.readline()
            except (OSError, ValueError) as exc:
                logger.debug("Console input closed: %s", exc)
                return
            if not line:
                return
            self.outbox.put(line)

    def start(self, thread_name: str = "ComChanConsole") -> threading.Thread:
        self.thread = threading.Thread(target=self._run, name=thread_name, daemon=True)
        self.thread.start()
        return self.thread


@dataclass
class MonitorSession:
    """
    Main-thread loop of the plain serial monitor.

    Each :meth:`step` reads from the port, echoes completed lines to ``out``,
    then sends at most one queued console line to the device followed by a
    short pause so the device can react before the next read.
    """

    transport: Transport
    inbox: "queue.Queue[str]" = field(default_factory=queue.Queue)
    log: Optional[SerialLog] = None
    verbose: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout)
    stop_event: threading.Event = field(default_factory=threading.Event)
    write_settle: float = WRITE_SETTLE_S
    idle_sleep: float = IDLE_SLEEP_S
    sleep: Callable[[float], None] = time.sleep

    framer: LineFramer = field(init=False)

    def __post_init__(self) -> None:
        self.framer = LineFramer(discard_lines=0)

    def _report(self, message: str) -> None:
        logger.error(message)
        if self.log is not None:
            self.log.error(message)

    def _receive(self) -> None:
        try:
            data = read_available(self.transport)
        except serial.SerialException as exc:
            self._report(f"Serial read error: {exc}")
            return

        for line in self.framer.feed(data):
            if self.verbose:
                self.out.write(f" [{format_timestamp()}] {line}")
            else:
                self.out.write(f" {line}")
            self.out.flush()
            if self.log is not None:
                self.log.rx(line.rstrip())

    def _send_pending(self) -> bool:
        """Write one queued console line; False if the write failed."""
        try:
            pending = self.inbox.get_nowait()
        except queue.Empty:
            return True

        clean = pending.rstrip()
        if not clean:
            return True

        try:
            write_data(self.transport, f"{clean}\n".encode("utf-8"))
        except serial.SerialException as exc:
            self._report(f"Write error: {exc}")
            return False
        try:
            flush_output(self.transport)
        except serial.SerialException as exc:
            self._report(f"Flush error: {exc}")
            return False

        if self.verbose:
            self.out.write(f" [{format_timestamp()}] Sent: {clean}\n")
            self.out.flush()
        if self.log is not None:
            self.log.tx(clean)
        self.sleep(self.write_settle)
        return True

    def step(self) -> bool:
        """Run one iteration; returns False once shutdown was requested."""
        if self.stop_event.is_set():
            return False
        self._receive()
        if self._send_pending():
            self.sleep(self.idle_sleep)
        return True

    def run(self) -> None:
        while self.step():
            pass
