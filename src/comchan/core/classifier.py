"""
Heuristic decomposition of free-form device lines into channel readings.

Serial devices print whatever their firmware author felt like, so there is no
schema to parse against. Instead each line is offered to an ordered chain of
matchers; the first one that produces readings wins:

  ``T:25.3``              -> [("T", 25.3)]
  ``T=25.3``              -> [("T", 25.3)]
  ``1,2,3``               -> [("Channel 0", 1.0), ("Channel 1", 2.0), ...]
  ``1 2 3``               -> same as above
  ``25.3``                -> [("Value", 25.3)]
  ``Temp reading 25.3 C`` -> [("Temperature", 25.3)]

Lines no matcher understands yield an empty list.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from .models import Reading

Matcher = Callable[[str], Optional[List[Reading]]]

_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE | re.ASCII,
)
_NON_NUMERIC_EDGES = re.compile(r"^[^0-9.\-]+|[^0-9.\-]+$")

# Checked in order against the lower-cased line; first hit names the reading.
KEYWORD_NAMES: Tuple[Tuple[str, str], ...] = (
    ("temp", "Temperature"),
    ("humid", "Humidity"),
    ("pressure", "Pressure"),
    ("mag", "Magnetometer"),
    ("gyro", "Gyroscope"),
    ("accel", "Accelerometer"),
)
FALLBACK_NAME = "Sensor"
SINGLE_VALUE_NAME = "Value"


def parse_float(text: str) -> Optional[float]:
    """
    Parse ``text`` as a float using a strict decimal grammar.

    Unlike :func:`float`, only ASCII digits are accepted, and surrounding
    whitespace or ``_`` digit separators are rejected; callers trim explicitly
    where the format allows padding.
    """
    if not _FLOAT_RE.fullmatch(text):
        return None
    return float(text)


def channel_name(index: int) -> str:
    return f"Channel {index}"


def _match_pair(line: str, separator: str) -> Optional[List[Reading]]:
    parts = line.split(separator)
    if len(parts) != 2:
        return None
    value = parse_float(parts[1].strip())
    if value is None:
        return None
    return [Reading(parts[0].strip(), value)]


def match_colon_pair(line: str) -> Optional[List[Reading]]:
    return _match_pair(line, ":")


def match_equals_pair(line: str) -> Optional[List[Reading]]:
    return _match_pair(line, "=")


def match_comma_list(line: str) -> Optional[List[Reading]]:
    """Numeric comma tokens keep their position in the split as channel index."""
    if "," not in line:
        return None
    readings = []
    for index, token in enumerate(line.split(",")):
        value = parse_float(token.strip())
        if value is not None:
            readings.append(Reading(channel_name(index), value))
    return readings or None


def match_whitespace_values(line: str) -> Optional[List[Reading]]:
    tokens = line.split()
    if len(tokens) < 2:
        return None
    values = [parse_float(token) for token in tokens]
    if any(value is None for value in values):
        return None
    return [Reading(channel_name(i), value) for i, value in enumerate(values)]


def match_single_value(line: str) -> Optional[List[Reading]]:
    value = parse_float(line)
    if value is None:
        return None
    return [Reading(SINGLE_VALUE_NAME, value)]


def keyword_name(line: str) -> str:
    lowered = line.lower()
    for keyword, name in KEYWORD_NAMES:
        if keyword in lowered:
            return name
    return FALLBACK_NAME


def match_keyword_scan(line: str) -> Optional[List[Reading]]:
    """Take the first number-looking token and guess its name from the text."""
    for token in line.split():
        value = parse_float(_NON_NUMERIC_EDGES.sub("", token))
        if value is not None:
            return [Reading(keyword_name(line), value)]
    return None


RULES: Tuple[Matcher, ...] = (
    match_colon_pair,
    match_equals_pair,
    match_comma_list,
    match_whitespace_values,
    match_single_value,
    match_keyword_scan,
)


def classify_line(line: str, rules: Tuple[Matcher, ...] = RULES) -> List[Reading]:
    """Return the readings found in ``line`` in discovery order (possibly none)."""
    text = line.strip()
    if not text:
        return []
    for rule in rules:
        readings = rule(text)
        if readings:
            return readings
    return []
