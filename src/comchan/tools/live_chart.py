"""Matplotlib renderer for :class:`~comchan.core.session.PlotSession`."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np

from ..core.session import ChartFrame
from .debug import time_block

logger = logging.getLogger(__name__)

EXIT_KEYS = {"q", "escape"}

_MPL_CONFIGURED = False


def configure_matplotlib_for_realtime() -> None:
    """Global Matplotlib tweaks for a chart redrawn every few milliseconds."""
    global _MPL_CONFIGURED
    if _MPL_CONFIGURED:
        return

    try:
        mpl.style.use("fast")
    except OSError as exc:
        logger.debug("matplotlib 'fast' style unavailable: %s", exc)

    rc = mpl.rcParams
    rc["path.simplify"] = True
    rc["path.simplify_threshold"] = 0.2
    rc["axes.grid"] = True
    # 'q' is matplotlib's default quit key; exit is handled by the chart.
    rc["keymap.quit"] = []

    _MPL_CONFIGURED = True


class LiveChart:
    """
    One axes, one line per channel, legend in the top-right corner.

    Artists are created the first time a channel shows up and reused after
    that. Pressing ``q``/``Esc`` or closing the window requests exit, which
    :meth:`poll_exit` reports back to the session.
    """

    def __init__(
        self,
        title: str = "Live Serial Plotter",
        fig: Optional[plt.Figure] = None,
        ax: Optional[plt.Axes] = None,
    ) -> None:
        configure_matplotlib_for_realtime()
        if fig is None or ax is None:
            fig, ax = plt.subplots()
        self.fig = fig
        self.ax = ax
        self.title = title
        self._lines: Dict[str, Any] = {}
        self._exit_requested = False

        self.ax.set_xlabel("Sample")
        self.ax.set_ylabel("Value")
        self.fig.canvas.mpl_connect("key_press_event", self._on_key)
        self.fig.canvas.mpl_connect("close_event", self._on_close)

    # ---------------------------------------------------------------- events
    def _on_key(self, event: Any) -> None:
        if event.key in EXIT_KEYS:
            self._exit_requested = True

    def _on_close(self, _event: Any) -> None:
        self._exit_requested = True

    def poll_exit(self, timeout: float) -> bool:
        if not self._exit_requested:
            plt.pause(timeout)
        return self._exit_requested

    # ---------------------------------------------------------------- redraw
    def _line_for(self, name: str, color: str) -> Any:
        line = self._lines.get(name)
        if line is None:
            (line,) = self.ax.plot([], [], label=name, color=color)
            self._lines[name] = line
            self.ax.legend(loc="upper right")
        return line

    def draw(self, frame: ChartFrame) -> None:
        with time_block("LiveChart.draw"):
            for series in frame.series:
                line = self._line_for(series.name, series.color)
                if series.points:
                    xs, ys = np.asarray(series.points, dtype=np.float64).T
                else:
                    xs = ys = np.empty(0, dtype=np.float64)
                line.set_data(xs, ys)

            bounds = frame.bounds
            x_min, x_max = bounds.x_min, bounds.x_max
            if x_max <= x_min:
                # Matplotlib refuses identical limits.
                x_max = x_min + 1.0
            self.ax.set_xlim(x_min, x_max)
            self.ax.set_ylim(bounds.y_min, bounds.y_max)
            self.ax.set_xticks(
                [bounds.x_min, (bounds.x_min + bounds.x_max) / 2.0, bounds.x_max],
                labels=bounds.x_labels(),
            )
            self.ax.set_yticks(
                [bounds.y_min, (bounds.y_min + bounds.y_max) / 2.0, bounds.y_max],
                labels=bounds.y_labels(),
            )

            suffix = f" | {len(frame.series)} sensors" if len(frame.series) > 1 else ""
            self.ax.set_title(f"{self.title}{suffix} (press 'q' or Esc to exit)")
            self.fig.canvas.draw_idle()

    def close(self) -> None:
        plt.close(self.fig)
