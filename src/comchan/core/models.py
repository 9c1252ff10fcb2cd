"""Shared records for classified readings and detected spikes."""

from dataclasses import dataclass
from typing import NamedTuple


class Reading(NamedTuple):
    """One ``(channel, value)`` pair extracted from a device line."""

    channel: str
    value: float


@dataclass(frozen=True)
class Spike:
    """Snapshot of a reading that failed the rolling Z-score test."""

    channel: str
    timestamp: float
    value: float
    mean: float
    std_dev: float

    @property
    def z_score(self) -> float:
        return (self.value - self.mean) / self.std_dev
