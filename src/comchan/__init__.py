"""ComChan: serial monitor and live plotter for loosely formatted device output."""

from .core import (
    ChannelRegistry,
    LineFramer,
    PlotSession,
    Reading,
    Spike,
    SpikeDetector,
    classify_line,
)

__all__ = [
    "ChannelRegistry",
    "LineFramer",
    "PlotSession",
    "Reading",
    "Spike",
    "SpikeDetector",
    "classify_line",
]
