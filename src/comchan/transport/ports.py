"""Serial port discovery and opening (pyserial)."""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol, Tuple, Type

import serial
from serial.tools import list_ports

from ..config.runtime import ComChanConfig

logger = logging.getLogger(__name__)

# pyserial's POSIX backend lets ioctl/termios failures through unwrapped
# (e.g. EIO from in_waiting or tcdrain after the adapter is unplugged).
if sys.platform == "win32":
    _OS_ERRORS: Tuple[Type[BaseException], ...] = (OSError,)
else:
    import termios

    _OS_ERRORS = (OSError, termios.error)

_DATA_BITS = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}
_STOP_BITS = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}
_PARITY = {
    "none": serial.PARITY_NONE,
    "n": serial.PARITY_NONE,
    "odd": serial.PARITY_ODD,
    "o": serial.PARITY_ODD,
    "even": serial.PARITY_EVEN,
    "e": serial.PARITY_EVEN,
}
_FLOW_CONTROL = {
    "none": "none",
    "n": "none",
    "software": "software",
    "s": "software",
    "hardware": "hardware",
    "h": "hardware",
}


class Transport(Protocol):
    """The subset of :class:`serial.Serial` the sessions rely on."""

    @property
    def in_waiting(self) -> int:  # pragma: no cover - protocol
        ...

    def read(self, size: int = 1) -> bytes:  # pragma: no cover - protocol
        ...

    def write(self, data: bytes) -> Optional[int]:  # pragma: no cover - protocol
        ...

    def flush(self) -> None:  # pragma: no cover - protocol
        ...


def parse_data_bits(bits: int) -> int:
    try:
        return _DATA_BITS[int(bits)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Invalid data bits: {bits}. Must be 5, 6, 7, or 8") from None


def parse_stop_bits(bits: int) -> float:
    try:
        return _STOP_BITS[int(bits)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Invalid stop bits: {bits}. Must be 1 or 2") from None


def parse_parity(parity: str) -> str:
    try:
        return _PARITY[parity.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Invalid parity: {parity}. Must be 'none', 'odd', or 'even'"
        ) from None


def parse_flow_control(flow: str) -> str:
    try:
        return _FLOW_CONTROL[flow.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Invalid flow control: {flow}. Must be 'none', 'software', or 'hardware'"
        ) from None


@contextmanager
def _as_serial_error(action: str) -> Iterator[None]:
    try:
        yield
    except serial.SerialException:
        raise
    except _OS_ERRORS as exc:
        raise serial.SerialException(f"{action} failed: {exc}") from exc


def read_available(port: Transport) -> bytes:
    """
    Read whatever is buffered, waiting at most the port timeout for one byte.

    Returns ``b""`` on timeout. Every hard error, including the raw
    ``OSError``/``termios.error`` pyserial leaks on POSIX, is raised as
    :class:`serial.SerialException`.
    """
    with _as_serial_error("read"):
        return port.read(max(1, port.in_waiting))


def write_data(port: Transport, data: bytes) -> None:
    with _as_serial_error("write"):
        port.write(data)


def flush_output(port: Transport) -> None:
    """Block until written data is sent; errors as in :func:`read_available`."""
    with _as_serial_error("flush"):
        port.flush()


def open_port(cfg: ComChanConfig, port_name: str) -> serial.Serial:
    """
    Open ``port_name`` with the link settings from ``cfg``.

    Invalid settings raise :class:`ValueError` before the port is touched;
    open failures raise :class:`serial.SerialException`. After opening, waits
    ``reset_delay_ms`` for boards that reboot when the port opens.
    """
    bytesize = parse_data_bits(cfg.data_bits)
    stopbits = parse_stop_bits(cfg.stop_bits)
    parity = parse_parity(cfg.parity)
    flow = parse_flow_control(cfg.flow_control)

    timeout_s = cfg.timeout_ms / 1000.0
    port = serial.Serial(
        port=port_name,
        baudrate=cfg.baud,
        bytesize=bytesize,
        parity=parity,
        stopbits=stopbits,
        timeout=timeout_s,
        write_timeout=timeout_s or None,
        xonxoff=flow == "software",
        rtscts=flow == "hardware",
    )
    logger.info("Opened %s at %d baud", port_name, cfg.baud)
    if cfg.reset_delay_ms > 0:
        time.sleep(cfg.reset_delay_ms / 1000.0)
    return port


def find_usb_port() -> Optional[str]:
    """Return the device name of the first USB serial adapter, if any."""
    for info in list_ports.comports():
        if info.vid is not None:
            return info.device
    return None


def describe_ports() -> List[str]:
    """Human-readable listing of every serial port, USB details last."""
    ports = sorted(list_ports.comports(), key=lambda p: p.device)
    lines = ["All Available Serial Ports:"]
    if not ports:
        lines.append("   No serial ports found")
        return lines

    for info in ports:
        if info.vid is not None:
            kind = f"USB Device (VID: {info.vid:04x}, PID: {info.pid or 0:04x})"
        else:
            kind = info.description or "Unknown"
        lines.append(f"   {info.device} - {kind}")

    lines.append("")
    lines.append("USB Serial Ports:")
    usb_ports = [info for info in ports if info.vid is not None]
    if not usb_ports:
        lines.append("   No USB serial ports found")
    for info in usb_ports:
        lines.append(f"   Port: {info.device}")
        lines.append(f"      USB VID: {info.vid:04x}, PID: {info.pid or 0:04x}")
        if info.manufacturer:
            lines.append(f"      Manufacturer: {info.manufacturer}")
        if info.product:
            lines.append(f"      Product: {info.product}")
        if info.serial_number:
            lines.append(f"      Serial: {info.serial_number}")
    return lines
