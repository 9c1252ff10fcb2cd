"""Runtime configuration: defaults, YAML file discovery and loading."""

from __future__ import annotations

import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

CONFIG_FILENAME = "comchan.yaml"
APP_DIR_NAME = "comchan"


@dataclass(slots=True)
class ComChanConfig:
    """
    Serial link settings plus the plotting and spike-detection knobs.

    ``port = "auto"`` selects the first USB serial adapter found.
    """

    port: Optional[str] = "auto"
    baud: int = 9600
    data_bits: int = 8
    stop_bits: int = 1
    parity: str = "none"
    flow_control: str = "none"
    timeout_ms: int = 500
    reset_delay_ms: int = 1000
    log_file: Optional[str] = None
    verbose: bool = False

    plot: bool = False
    plot_points: int = 100
    discard_lines: int = 3

    # Spike detection / explanation
    explain: bool = False
    z_threshold: float = 2.0
    spike_window: Optional[int] = None
    explain_model: str = "gpt-3.5-turbo"
    explain_timeout_s: float = 30.0

    @property
    def spike_window_points(self) -> int:
        """Detector window size; follows ``plot_points`` unless set."""
        return self.spike_window if self.spike_window else self.plot_points

    def sanitized(self) -> ComChanConfig:
        """Return a copy with numeric fields clamped to usable ranges."""
        return ComChanConfig(
            port=None if self.port is None else str(self.port),
            baud=max(1, int(self.baud)),
            data_bits=int(self.data_bits),
            stop_bits=int(self.stop_bits),
            parity=str(self.parity),
            flow_control=str(self.flow_control),
            timeout_ms=max(0, int(self.timeout_ms)),
            reset_delay_ms=max(0, int(self.reset_delay_ms)),
            log_file=None if not self.log_file else str(self.log_file),
            verbose=bool(self.verbose),
            plot=bool(self.plot),
            plot_points=max(1, int(self.plot_points)),
            discard_lines=max(0, int(self.discard_lines)),
            explain=bool(self.explain),
            z_threshold=float(self.z_threshold),
            spike_window=None if not self.spike_window else max(1, int(self.spike_window)),
            explain_model=str(self.explain_model),
            explain_timeout_s=max(1.0, float(self.explain_timeout_s)),
        )

    def to_mapping(self) -> dict[str, Any]:
        return asdict(self)


def _recognized_fields() -> set[str]:
    return {f.name for f in fields(ComChanConfig)}


def config_from_mapping(data: Mapping[str, Any] | None) -> ComChanConfig:
    """Build :class:`ComChanConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return ComChanConfig()
    known = _recognized_fields()
    payload = {key: data[key] for key in data.keys() & known}
    return ComChanConfig(**payload).sanitized()


def platform_name() -> str:
    if sys.platform.startswith("win"):
        return "Windows"
    if sys.platform == "darwin":
        return "macOS"
    if sys.platform.startswith("linux"):
        return "Linux"
    return "Unix-like"


def default_config_path() -> Path:
    """Per-platform location of the user config file."""
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise RuntimeError("APPDATA environment variable not found")
        return Path(appdata) / APP_DIR_NAME / CONFIG_FILENAME
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_DIR_NAME / CONFIG_FILENAME
    return home / ".config" / APP_DIR_NAME / CONFIG_FILENAME


def find_config_file(specified: str | Path | None = None) -> Optional[Path]:
    """
    Locate the config file to load.

    An explicitly given path is used only if it exists. Otherwise the current
    directory, the platform config directory and ``~/.comchan.yaml`` are
    checked in that order.
    """
    if specified is not None:
        path = Path(specified).expanduser()
        return path if path.exists() else None

    candidates = [Path(CONFIG_FILENAME)]
    try:
        candidates.append(default_config_path())
    except RuntimeError:
        pass
    candidates.append(Path.home() / f".{CONFIG_FILENAME}")

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(path: str | Path | None) -> ComChanConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`ComChanConfig`.
    """
    if path is None:
        return ComChanConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return ComChanConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Failed to parse config file {cfg_path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


_HEADER = """\
# ComChan configuration file
#
# Platform: {platform} config directory
# Default location: {location}
#
# Command line arguments override these settings.
#
# To use auto-detection, set port: auto
# Available parity options: none, odd, even
# Available flow control options: none, software, hardware

"""


def generate_default_config(path: str | Path | None = None) -> Path:
    """Write a commented default config file and return its path."""
    target = Path(path).expanduser() if path is not None else default_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)

    try:
        location = str(default_config_path())
    except RuntimeError:
        location = CONFIG_FILENAME
    header = _HEADER.format(platform=platform_name(), location=location)
    body = yaml.safe_dump(
        ComChanConfig().to_mapping(),
        default_flow_style=False,
        sort_keys=False,
    )
    target.write_text(header + body, encoding="utf-8")
    return target


__all__ = [
    "ComChanConfig",
    "config_from_mapping",
    "default_config_path",
    "find_config_file",
    "generate_default_config",
    "load_config",
]
