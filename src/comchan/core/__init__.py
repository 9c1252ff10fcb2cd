"""Core ingestion pipeline: framing, classification, buffers and sessions.

Bytes from the serial port are cut into lines (:mod:`framing`), lines into
readings (:mod:`classifier`), and readings land in per-channel rolling
buffers (:mod:`channels`) and, optionally, the spike detector
(:mod:`spikes`). :mod:`session` and :mod:`monitor` hold the two run loops.
"""

from .channels import AxisBounds, Channel, ChannelRegistry
from .classifier import RULES, classify_line
from .framing import LineFramer
from .models import Reading, Spike
from .monitor import ConsoleReader, MonitorSession
from .ringbuffer import RingBuffer
from .session import ChartFrame, PlotSession, Renderer, SeriesFrame, build_frame
from .spikes import SpikeDetector

__all__ = [
    "AxisBounds",
    "Channel",
    "ChannelRegistry",
    "ChartFrame",
    "ConsoleReader",
    "LineFramer",
    "MonitorSession",
    "PlotSession",
    "RULES",
    "Reading",
    "Renderer",
    "RingBuffer",
    "SeriesFrame",
    "Spike",
    "SpikeDetector",
    "build_frame",
    "classify_line",
]
