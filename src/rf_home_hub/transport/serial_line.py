"""Serial transport for an Arduino-style 433 MHz receiver.

The microcontroller prints one JSON object per line, for example
``{"code": 5330371, "pulseLength": 320, "status": "received"}``, and
transmits any code written back to it. A reader thread blocks on the
port and hands each line to the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any

import serial
from serial.tools import list_ports

from rf_home_hub.core.config import (
    ARDUINO_RESET_DELAY_S,
    DEFAULT_BAUDRATE,
    SERIAL_READ_TIMEOUT_S,
)
from rf_home_hub.core.exceptions import TransportClosedError, TransportError, TransportOpenError
from rf_home_hub.transport.base import PayloadCallback

logger = logging.getLogger(__name__)


def list_serial_ports() -> list[tuple[str, str]]:
    """List serial ports on this machine.

    Returns:
        (device, description) pairs.
    """
    return [(port.device, port.description or "") for port in list_ports.comports()]


class SerialTransport:
    """Line-oriented serial transport.

    Example:
        >>> transport = SerialTransport("/dev/ttyUSB0")
        >>> await transport.open()
        >>> transport.on(ingestor.on_payload)
        >>> await transport.send("5330371")
        >>> await transport.close()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout: float = SERIAL_READ_TIMEOUT_S,
        open_delay: float = ARDUINO_RESET_DELAY_S,
        serial_factory: Callable[..., Any] | None = None,
    ) -> None:
        """Initialize serial transport.

        Args:
            port: Serial device (e.g., "/dev/ttyUSB0", "COM3").
            baudrate: Line speed.
            read_timeout: readline timeout, bounds how fast close() is noticed.
            open_delay: Seconds to wait after opening (Arduino auto-reset).
            serial_factory: Port constructor (default: serial.Serial).
        """
        self.port = port
        self.baudrate = baudrate
        self.read_timeout = read_timeout
        self.open_delay = open_delay
        self._serial_factory = serial_factory or serial.Serial

        self._serial: Any = None
        self._callback: PayloadCallback | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._reader: threading.Thread | None = None
        self._stop = threading.Event()
        self._read_failed = False

    @property
    def is_open(self) -> bool:
        """True while the port is open and the reader has not failed."""
        if self._serial is None or self._read_failed:
            return False
        return bool(getattr(self._serial, "is_open", True))

    async def open(self) -> None:
        """Open the port and start the reader thread.

        Raises:
            TransportOpenError: If the port cannot be opened.
        """
        if self.is_open:
            return
        if self._serial is not None:
            await self.close()

        self._loop = asyncio.get_running_loop()
        try:
            self._serial = await self._loop.run_in_executor(
                None,
                lambda: self._serial_factory(
                    self.port,
                    self.baudrate,
                    timeout=self.read_timeout,
                ),
            )
        except (serial.SerialException, OSError, ValueError) as e:
            raise TransportOpenError(self.port, str(e)) from e

        self._stop.clear()
        self._read_failed = False
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(self._serial,),
            name=f"SerialTransport[{self.port}]",
            daemon=True,
        )
        self._reader.start()
        logger.info("Serial port %s opened at %d baud", self.port, self.baudrate)

        if self.open_delay > 0:
            await asyncio.sleep(self.open_delay)

    def on(self, callback: PayloadCallback) -> None:
        self._callback = callback

    def _read_loop(self, port: Any) -> None:
        while not self._stop.is_set():
            try:
                raw = port.readline()
            except (serial.SerialException, OSError, TypeError) as e:
                if not self._stop.is_set():
                    logger.error("Serial read on %s failed: %s", self.port, e)
                    self._read_failed = True
                break

            if not raw:
                continue

            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue

            if self._callback is not None and self._loop is not None:
                self._loop.call_soon_threadsafe(self._callback, line)

        logger.debug("Serial reader for %s stopped", self.port)

    async def send(self, code: str) -> None:
        """Write a code to the microcontroller.

        Raises:
            TransportClosedError: If the port is not open.
            TransportError: If the write fails.
        """
        if not self.is_open:
            raise TransportClosedError(f"serial port {self.port}")

        data = str(code).encode("ascii")
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._serial.write, data)
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Write to {self.port} failed", str(e)) from e
        logger.debug("Sent code %s on %s", code, self.port)

    async def close(self) -> None:
        """Stop the reader and release the port."""
        if self._serial is None:
            return

        self._stop.set()
        port, self._serial = self._serial, None
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, port.close)
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Closing {self.port} failed", str(e)) from e
        finally:
            if self._reader is not None:
                await loop.run_in_executor(None, self._reader.join, self.read_timeout * 4)
                self._reader = None

        logger.info("Serial port %s closed", self.port)
