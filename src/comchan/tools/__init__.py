"""Developer-facing helpers: debug switches and the matplotlib live chart.

:mod:`live_chart` is imported lazily by the CLI so that monitor mode never
pulls in a GUI backend.
"""

from .debug import debug_enabled, time_block

__all__ = ["debug_enabled", "time_block"]
