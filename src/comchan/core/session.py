"""Single-threaded plotting loop: read, frame, classify, buffer, redraw."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

import serial

from ..dataio.serial_log import SerialLog
from ..transport.ports import Transport, read_available
from .channels import DEFAULT_MAX_POINTS, AxisBounds, ChannelRegistry, Point
from .classifier import classify_line
from .framing import DEFAULT_DISCARD_LINES, LineFramer
from .models import Reading
from .spikes import SpikeDetector

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 0.01


@dataclass(frozen=True)
class SeriesFrame:
    name: str
    color_id: int
    color: str
    points: List[Point]


@dataclass(frozen=True)
class ChartFrame:
    """Everything a renderer needs for one redraw."""

    series: List[SeriesFrame]
    bounds: AxisBounds

    @property
    def by_name(self) -> Dict[str, SeriesFrame]:
        return {s.name: s for s in self.series}


class Renderer(Protocol):
    def poll_exit(self, timeout: float) -> bool:  # pragma: no cover - protocol
        """Pump input events for up to ``timeout`` seconds; True means quit."""
        ...

    def draw(self, frame: ChartFrame) -> None:  # pragma: no cover - protocol
        ...


def build_frame(registry: ChannelRegistry) -> ChartFrame:
    series = [
        SeriesFrame(
            name=c.name, color_id=c.color_id, color=registry.color_of(c), points=c.points
        )
        for c in registry
    ]
    return ChartFrame(series=series, bounds=registry.axis_bounds())


@dataclass
class PlotSession:
    """
    Drive the live chart from a serial transport.

    Every :meth:`step` polls the renderer for an exit request, performs one
    bounded read, routes completed lines into the channel registry (and the
    spike detector when one is attached) and asks for a redraw, whether or
    not new data arrived.

    The x coordinate is a sample index shared by all channels and advanced
    once per line that produced readings.
    """

    transport: Transport
    renderer: Renderer
    max_points: int = DEFAULT_MAX_POINTS
    discard_lines: int = DEFAULT_DISCARD_LINES
    detector: Optional[SpikeDetector] = None
    log: Optional[SerialLog] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL_S
    stop_event: threading.Event = field(default_factory=threading.Event)

    registry: ChannelRegistry = field(init=False)
    framer: LineFramer = field(init=False)
    sample_index: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        self.registry = ChannelRegistry(self.max_points)
        self.framer = LineFramer(self.discard_lines)

    def process_line(self, line: str) -> List[Reading]:
        clean = line.strip()
        readings = classify_line(clean)
        x = self.sample_index
        for reading in readings:
            self.registry.ensure_channel(reading.channel)
            self.registry.add_point(reading.channel, x, reading.value, self.max_points)
            if self.detector is not None:
                self.detector.add_point(reading.channel, x, reading.value)
        if readings:
            self.sample_index += 1.0
        if self.log is not None:
            self.log.rx(clean)
        return readings

    def process_bytes(self, data: bytes) -> int:
        """Feed raw bytes through framing/classification; returns lines handled."""
        count = 0
        for line in self.framer.feed(data):
            self.process_line(line)
            count += 1
        return count

    def _read(self) -> bytes:
        try:
            return read_available(self.transport)
        except serial.SerialException as exc:
            logger.warning("Serial read error: %s", exc)
            if self.log is not None:
                self.log.error(f"Serial read error: {exc}")
            return b""

    def step(self) -> bool:
        """Run one loop iteration; returns False once an exit was requested."""
        if self.stop_event.is_set() or self.renderer.poll_exit(self.poll_interval):
            self.stop_event.set()
            return False

        data = self._read()
        if data:
            self.process_bytes(data)

        self.renderer.draw(build_frame(self.registry))
        return True

    def run(self) -> ChannelRegistry:
        while self.step():
            pass
        logger.debug(
            "Plot session finished: %d channels, %d samples",
            len(self.registry),
            int(self.sample_index),
        )
        return self.registry
