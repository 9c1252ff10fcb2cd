"""Opt-in debug switches controlled by ``COMCHAN_DEBUG``."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator

_TRUTHY = {"1", "true", "yes", "on"}

logger = logging.getLogger(__name__)


def debug_enabled() -> bool:
    """Return True when ``COMCHAN_DEBUG`` asks for verbose diagnostics."""
    return os.getenv("COMCHAN_DEBUG", "").lower() in _TRUTHY


@contextmanager
def time_block(label: str) -> Iterator[None]:
    """Log the elapsed time of the block at DEBUG level when debugging is on."""
    if not debug_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("%s took %.3f ms", label, elapsed_ms)
