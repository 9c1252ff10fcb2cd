"""
Command line entry point for ComChan.

Two modes share the same port/config handling:

  * monitor (default): echo device output and forward typed lines to it;
  * ``--plot``: parse device output into channels and chart them live, with
    optional spike detection and explanation (``--explain``).

Settings are merged from ``comchan.yaml`` (see ``--config``) and the flags
below; flags win.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

import serial

from .config.runtime import (
    ComChanConfig,
    find_config_file,
    generate_default_config,
    load_config,
    platform_name,
)
from .core.monitor import ConsoleReader, MonitorSession
from .core.session import PlotSession
from .core.spikes import SpikeDetector
from .dataio.serial_log import open_log
from .remote.explainer import API_KEY_ENV, ExplanationError, SpikeExplainer
from .tools.debug import debug_enabled
from .transport.ports import describe_ports, find_usb_port, open_port

__version__ = "0.2.5"

logger = logging.getLogger(__name__)

_OVERRIDES = (
    "port",
    "baud",
    "data_bits",
    "stop_bits",
    "parity",
    "flow_control",
    "timeout_ms",
    "reset_delay_ms",
    "log_file",
    "plot_points",
    "discard_lines",
    "z_threshold",
)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="comchan",
        description="Minimal serial monitor with live plotting and spike detection",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-p", "--port", help="Serial port to connect to ('auto' to detect)")
    parser.add_argument("-r", "--baud", type=int, help="Baud rate of the serial link")
    parser.add_argument("-d", "--data-bits", type=int, help="Data bits (5-8)")
    parser.add_argument("-s", "--stop-bits", type=int, help="Stop bits (1 or 2)")
    parser.add_argument("--parity", help="none, odd or even")
    parser.add_argument("--flow-control", help="none, software or hardware")
    parser.add_argument("-t", "--timeout", dest="timeout_ms", type=int, help="Read timeout in ms")
    parser.add_argument(
        "--reset-delay",
        dest="reset_delay_ms",
        type=int,
        help="Pause after opening the port, in ms",
    )
    parser.add_argument("-l", "--log", dest="log_file", help="Log serial data into a file")
    parser.add_argument("--list-ports", action="store_true", help="List all available ports")
    parser.add_argument("--auto", action="store_true", help="Auto-detect USB serial port")
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=None, help="Verbose output"
    )
    parser.add_argument("--plot", action="store_true", help="Live plotter instead of monitor")
    parser.add_argument("--plot-points", type=int, help="Rolling window size per channel")
    parser.add_argument(
        "--discard-lines",
        type=int,
        help="Leading lines to ignore in plot mode (default: 3)",
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        default=None,
        help=f"Detect spikes while plotting and explain them (needs ${API_KEY_ENV})",
    )
    parser.add_argument("--z-threshold", type=float, help="Z-score spike threshold")
    parser.add_argument(
        "-c",
        "--config",
        dest="config_file",
        type=Path,
        help="Path to config file (default: platform-specific config directory)",
    )
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate a default config file",
    )
    return parser


def merge_config(cfg: ComChanConfig, args: argparse.Namespace) -> ComChanConfig:
    """Apply command line overrides on top of file settings."""
    changes = {}
    for name in _OVERRIDES:
        value = getattr(args, name, None)
        if value is not None:
            changes[name] = value
    if getattr(args, "auto", False):
        changes["port"] = "auto"
    if getattr(args, "verbose", None):
        changes["verbose"] = True
    if getattr(args, "explain", None):
        changes["explain"] = True
    changes["plot"] = bool(getattr(args, "plot", False)) or cfg.plot
    return replace(cfg, **changes).sanitized()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose or debug_enabled() else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _install_stop_handler(stop_event: threading.Event) -> None:
    def _on_sigint(_signum: int, _frame: object) -> None:
        print("\nShutting down ComChan...")
        stop_event.set()

    signal.signal(signal.SIGINT, _on_sigint)


def resolve_port(cfg: ComChanConfig) -> Optional[str]:
    if cfg.port is None:
        print("No port specified. Use --port <PORT>, --auto, or set port in config", file=sys.stderr)
        print("Try --list-ports to see available ports or --generate-config", file=sys.stderr)
        return None
    if cfg.port.lower() != "auto":
        return cfg.port
    detected = find_usb_port()
    if detected is None:
        print("No USB serial ports found for auto-detection", file=sys.stderr)
        print("Try --list-ports to see available ports", file=sys.stderr)
        return None
    print(f"Auto-detected USB port: {detected}")
    return detected


def run_plot_mode(cfg: ComChanConfig, port_name: str) -> int:
    from .tools.live_chart import LiveChart

    detector = None
    if cfg.explain:
        detector = SpikeDetector(max_points=cfg.spike_window_points, z_threshold=cfg.z_threshold)

    stop_event = threading.Event()
    port = open_port(cfg, port_name)
    chart = None
    log = None
    try:
        chart = LiveChart(title=f"Live Serial Plotter - {port_name} @ {cfg.baud} baud")
        log = open_log(cfg.log_file)
        session = PlotSession(
            transport=port,
            renderer=chart,
            max_points=cfg.plot_points,
            discard_lines=cfg.discard_lines,
            detector=detector,
            log=log,
            stop_event=stop_event,
        )
        _install_stop_handler(stop_event)
        registry = session.run()
    finally:
        if chart is not None:
            chart.close()
        port.close()
        if log is not None:
            log.close()

    if len(registry):
        print("\nPlotting Summary:")
        for line in registry.summary_lines():
            print(line)

    if detector is not None:
        _explain(cfg, detector)
    return 0


def _explain(cfg: ComChanConfig, detector: SpikeDetector) -> None:
    if not detector.has_spikes():
        print("\nNo spikes detected.")
        return
    print(f"\nDetected spikes:\n{detector.summarize_spikes()}")
    explainer = SpikeExplainer.from_env(model=cfg.explain_model, timeout_s=cfg.explain_timeout_s)
    if explainer is None:
        print(f"Set ${API_KEY_ENV} to get an explanation of these spikes.", file=sys.stderr)
        return
    try:
        print(f"Explanation:\n{explainer.explain(detector)}")
    except ExplanationError as exc:
        logger.error("Spike explanation failed: %s", exc)
        print(f"Spike explanation failed: {exc}", file=sys.stderr)


def run_monitor_mode(cfg: ComChanConfig, port_name: str) -> int:
    port = open_port(cfg, port_name)
    log = None
    try:
        log = open_log(cfg.log_file)

        print(f"ComChan connected to {port_name} at {cfg.baud} baud")
        if cfg.verbose:
            print(
                f"Configuration: {cfg.data_bits} data bits, {cfg.stop_bits} stop bits, "
                f"{cfg.parity} parity, {cfg.flow_control} flow control"
            )
            if cfg.log_file:
                print(f"Logging to: {cfg.log_file}")
        print("Listening... (Ctrl+C to exit)\n")

        stop_event = threading.Event()
        _install_stop_handler(stop_event)

        session = MonitorSession(
            transport=port, log=log, verbose=cfg.verbose, stop_event=stop_event
        )
        ConsoleReader(sys.stdin, session.inbox).start()
        session.run()
    finally:
        port.close()
        if log is not None:
            log.close()
    print("ComChan disconnected cleanly")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        path = generate_default_config(args.config_file)
        print(f"Generated default config file for {platform_name()}: {path}")
        print("Edit the file to customize your default settings")
        return 0

    config_path = find_config_file(args.config_file)
    try:
        file_cfg = load_config(config_path)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if config_path is not None:
        print(f"Loaded config from: {config_path}")

    cfg = merge_config(file_cfg, args)
    _configure_logging(cfg.verbose)

    if args.list_ports:
        print("\n".join(describe_ports()))
        return 0

    port_name = resolve_port(cfg)
    if port_name is None:
        return 1

    try:
        if cfg.plot:
            return run_plot_mode(cfg, port_name)
        return run_monitor_mode(cfg, port_name)
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    except serial.SerialException as exc:
        print(f"Failed to open port {port_name}: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
