"""RF hardware transports.

- SerialTransport: Arduino-style receiver on a serial port (pyserial)
- MockTransport: in-memory transport for tests and hardware-less runs
"""

from rf_home_hub.transport.base import PayloadCallback, Transport
from rf_home_hub.transport.mock import MockTransport
from rf_home_hub.transport.serial_line import SerialTransport, list_serial_ports

__all__ = [
    "Transport",
    "PayloadCallback",
    "MockTransport",
    "SerialTransport",
    "list_serial_ports",
]
