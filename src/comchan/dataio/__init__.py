"""Disk-level helpers for serial sessions.

- :mod:`serial_log` appends timestamped RX/TX/ERROR lines to an optional log
  file so a session can be reviewed (or tailed) after the fact.
"""

from .serial_log import SerialLog, format_timestamp, open_log

__all__ = ["SerialLog", "format_timestamp", "open_log"]
