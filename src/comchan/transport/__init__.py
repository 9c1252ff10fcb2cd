"""Serial transport: port discovery, setting validation and opening."""

from .ports import (
    Transport,
    describe_ports,
    find_usb_port,
    flush_output,
    open_port,
    parse_data_bits,
    parse_flow_control,
    parse_parity,
    parse_stop_bits,
    read_available,
    write_data,
)

__all__ = [
    "Transport",
    "describe_ports",
    "find_usb_port",
    "flush_output",
    "open_port",
    "parse_data_bits",
    "parse_flow_control",
    "parse_parity",
    "parse_stop_bits",
    "read_available",
    "write_data",
]
