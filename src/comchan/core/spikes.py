"""
Rolling Z-score spike detection per channel.

The detector keeps its own ``(timestamp, value)`` window per channel, apart
from the chart buffers, and records every reading whose Z-score against that
window exceeds ``z_threshold``. The window includes the reading under test,
so a large outlier inflates the mean and standard deviation it is judged by
and can mask another outlier right behind it. With population statistics the
Z-score of any point in an ``n``-point window is at most ``sqrt(n - 1)``.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .channels import DEFAULT_MAX_POINTS
from .models import Spike

logger = logging.getLogger(__name__)

DEFAULT_Z_THRESHOLD = 2.0
MIN_SAMPLES = 5
DEFAULT_RECENT_POINTS = 50

TimedValue = Tuple[float, float]


def compute_stats(values: Iterable[float]) -> Tuple[float, float]:
    """Return population mean and standard deviation (divisor ``n``)."""
    arr = np.fromiter(values, dtype=np.float64)
    mean = float(arr.mean())
    std_dev = float(np.sqrt(np.mean((arr - mean) ** 2)))
    return mean, std_dev


class SpikeDetector:
    """Per-channel rolling buffers plus the session log of detected spikes."""

    def __init__(
        self,
        max_points: int = DEFAULT_MAX_POINTS,
        z_threshold: float = DEFAULT_Z_THRESHOLD,
    ) -> None:
        if max_points <= 0:
            raise ValueError("max_points must be positive")
        self.max_points = max_points
        self.z_threshold = z_threshold
        self.spikes: List[Spike] = []
        self._buffers: Dict[str, Deque[TimedValue]] = {}

    def add_point(self, name: str, timestamp: float, value: float) -> Optional[Spike]:
        """Buffer a reading and return the :class:`Spike` it triggered, if any."""
        buffer = self._buffers.setdefault(name, deque())
        buffer.append((float(timestamp), float(value)))

        spike = None
        if len(buffer) >= MIN_SAMPLES:
            mean, std_dev = compute_stats(v for _, v in buffer)
            if std_dev > 0.0 and abs(value - mean) / std_dev > self.z_threshold:
                spike = Spike(
                    channel=name,
                    timestamp=float(timestamp),
                    value=float(value),
                    mean=mean,
                    std_dev=std_dev,
                )
                self.spikes.append(spike)
                logger.info(
                    "Spike on %r at t=%.1f: %.4f (z=%.2f)",
                    name,
                    spike.timestamp,
                    spike.value,
                    spike.z_score,
                )

        if len(buffer) > self.max_points:
            buffer.popleft()
        return spike

    def has_spikes(self) -> bool:
        return bool(self.spikes)

    def buffer(self, name: str) -> List[TimedValue]:
        return list(self._buffers.get(name, ()))

    def channel_names(self) -> List[str]:
        return list(self._buffers)

    def summarize_buffers(self, max_recent_per_channel: int = DEFAULT_RECENT_POINTS) -> str:
        """List each channel's newest points, for the explanation prompt."""
        chunks: List[str] = []
        for name, buffer in self._buffers.items():
            chunks.append(f"\n--- {name} ({len(buffer)} points) ---\n")
            recent = list(buffer)[-max_recent_per_channel:] if max_recent_per_channel > 0 else []
            for timestamp, value in recent:
                chunks.append(f"  t={timestamp:.1f}: {value:.4f}\n")
        return "".join(chunks)

    def summarize_spikes(self) -> str:
        return "".join(
            f"- Sensor '{s.channel}' spiked at t={s.timestamp:.1f} with value {s.value:.4f} "
            f"(mean={s.mean:.4f}, std_dev={s.std_dev:.4f}, z-score={s.z_score:.2f})\n"
            for s in self.spikes
        )
