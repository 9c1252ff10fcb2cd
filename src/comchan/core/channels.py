"""
Per-channel rolling point buffers for the live chart.

Channels are discovered at runtime: the first reading carrying a new name
creates its buffer and assigns the next palette color. Each channel keeps only
its newest ``max_points`` samples, while its running ``min_y``/``max_y`` cover
everything it has ever seen (eviction never narrows the y-range).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .ringbuffer import RingBuffer

logger = logging.getLogger(__name__)

DEFAULT_MAX_POINTS = 100
DEFAULT_X_BOUNDS = (0.0, 10.0)
DEFAULT_Y_BOUNDS = (-1.0, 1.0)
Y_PADDING_FRACTION = 0.1

# Matplotlib's categorical palette; index = channel creation order mod size.
DEFAULT_PALETTE: Tuple[str, ...] = (
    "tab:cyan",
    "tab:pink",
    "tab:olive",
    "tab:green",
    "tab:red",
    "tab:blue",
    "tab:orange",
    "tab:purple",
    "tab:brown",
    "tab:gray",
)

Point = Tuple[float, float]


@dataclass
class Channel:
    """One named series: rolling ``(x, y)`` buffer plus running y-extent."""

    name: str
    color_id: int
    max_points: int = DEFAULT_MAX_POINTS
    min_y: float = math.inf
    max_y: float = -math.inf
    _points: RingBuffer[Point] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._points = RingBuffer(self.max_points)

    def add_point(self, x: float, y: float, max_points: Optional[int] = None) -> None:
        if max_points is not None and max_points != self.max_points:
            self._points.resize(max_points)
            self.max_points = max_points
        self._points.append((float(x), float(y)))
        self.min_y = min(self.min_y, y)
        self.max_y = max(self.max_y, y)

    @property
    def points(self) -> List[Point]:
        """Buffered points, oldest first."""
        return self._points.to_list()

    def x_span(self) -> Optional[Tuple[float, float]]:
        if len(self._points) == 0:
            return None
        return self._points[0][0], self._points[-1][0]

    def __len__(self) -> int:
        return len(self._points)


@dataclass(frozen=True)
class AxisBounds:
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def x_labels(self) -> List[str]:
        return _tick_labels(self.x_min, self.x_max, decimals=0)

    def y_labels(self) -> List[str]:
        return _tick_labels(self.y_min, self.y_max, decimals=2)


def _tick_labels(low: float, high: float, *, decimals: int) -> List[str]:
    return [f"{value:.{decimals}f}" for value in (low, (low + high) / 2.0, high)]


class ChannelRegistry:
    """Mapping of channel name -> :class:`Channel`, in discovery order."""

    def __init__(
        self,
        max_points: int = DEFAULT_MAX_POINTS,
        palette: Sequence[str] = DEFAULT_PALETTE,
    ) -> None:
        if max_points <= 0:
            raise ValueError("max_points must be positive")
        if not palette:
            raise ValueError("palette must not be empty")
        self.max_points = max_points
        self.palette = tuple(palette)
        self._channels: Dict[str, Channel] = {}

    def ensure_channel(self, name: str) -> Channel:
        channel = self._channels.get(name)
        if channel is None:
            color_id = len(self._channels) % len(self.palette)
            channel = Channel(name=name, color_id=color_id, max_points=self.max_points)
            self._channels[name] = channel
            logger.debug("New channel %r (color %d)", name, color_id)
        return channel

    def add_point(
        self, name: str, x: float, y: float, max_points: Optional[int] = None
    ) -> Channel:
        channel = self.ensure_channel(name)
        channel.add_point(x, y, self.max_points if max_points is None else max_points)
        return channel

    def color_of(self, channel: Channel) -> str:
        return self.palette[channel.color_id]

    def get(self, name: str) -> Optional[Channel]:
        return self._channels.get(name)

    def names(self) -> List[str]:
        return list(self._channels)

    def axis_bounds(self) -> AxisBounds:
        x_min, x_max = math.inf, -math.inf
        for channel in self._channels.values():
            span = channel.x_span()
            if span is None:
                continue
            x_min = min(x_min, span[0])
            x_max = max(x_max, span[1])
        if not (math.isfinite(x_min) and math.isfinite(x_max)):
            x_min, x_max = DEFAULT_X_BOUNDS

        y_low = min((c.min_y for c in self._channels.values()), default=math.inf)
        y_high = max((c.max_y for c in self._channels.values()), default=-math.inf)
        if math.isfinite(y_low) and math.isfinite(y_high):
            if y_low != y_high:
                pad = (y_high - y_low) * Y_PADDING_FRACTION
            else:
                pad = 1.0
            y_low, y_high = y_low - pad, y_high + pad
        else:
            y_low, y_high = DEFAULT_Y_BOUNDS

        return AxisBounds(x_min=x_min, x_max=x_max, y_min=y_low, y_max=y_high)

    def summary_lines(self) -> List[str]:
        return [
            f"   {c.name}: {len(c)} data points (min: {c.min_y:.2f}, max: {c.max_y:.2f})"
            for c in self._channels.values()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._channels

    def __iter__(self) -> Iterator[Channel]:
        return iter(list(self._channels.values()))

    def __len__(self) -> int:
        return len(self._channels)
