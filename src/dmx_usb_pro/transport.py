"""
Serial transport layer for the DMX USB Pro widget.

Handles the physical serial connection and raw byte movement: write,
bytes-available, read, and input-buffer hygiene.  Knows nothing about
frames or labels — that's :mod:`protocol`'s job.

Typical usage (via :class:`~dmx_usb_pro.controller.DmxUsbPro`)::

    transport = SerialTransport("/dev/ttyUSB0")
    transport.open()
    transport.write(frame)
    transport.close()
"""

from __future__ import annotations

import logging

import serial

from .constants import DEFAULT_BAUD, DEFAULT_PORT
from .exceptions import ConnectionError

logger = logging.getLogger(__name__)


class SerialTransport:
    """Manages a serial connection to a DMX USB Pro widget.

    Args:
        port: Serial port path (e.g. ``/dev/ttyUSB0`` or ``COM3``).
        baudrate: Baud rate (default 9600; the widget's virtual COM port
            ignores it, but pyserial needs a value).
    """

    def __init__(self, port: str = DEFAULT_PORT, baudrate: int = DEFAULT_BAUD) -> None:
        self.port = port
        self.baudrate = baudrate
        self._ser: serial.Serial | None = None

    # -- Lifecycle ----------------------------------------------------------

    def open(self) -> None:
        """Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened (typically because
                another process or handle already owns it).
        """
        logger.info("Opening serial port %s at %d baud", self.port, self.baudrate)
        try:
            self._ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=0,
            )
        except serial.SerialException as exc:
            raise ConnectionError(
                f"Cannot open {self.port}: {exc} (is it already connected?)"
            ) from exc

    def close(self) -> None:
        """Close the serial port (safe to call multiple times)."""
        if self._ser and self._ser.is_open:
            self._ser.close()
            logger.info("Serial port %s closed", self.port)

    @property
    def is_open(self) -> bool:
        """Return ``True`` if the serial port is currently open."""
        return self._ser is not None and self._ser.is_open

    # -- I/O ----------------------------------------------------------------

    def write(self, data: bytes) -> None:
        """Write *data* and make sure the bytes leave the OS buffer."""
        ser = self._require_open()
        logger.debug("TX: %s", data.hex(" "))
        try:
            ser.write(data)
            ser.flush()
        except serial.SerialException as exc:
            raise ConnectionError(f"Write to {self.port} failed: {exc}") from exc

    @property
    def bytes_available(self) -> int:
        """Number of received bytes waiting to be read."""
        try:
            return self._require_open().in_waiting
        except serial.SerialException as exc:
            raise ConnectionError(f"Cannot poll {self.port}: {exc}") from exc

    def read(self, size: int) -> bytes:
        """Read up to *size* buffered bytes."""
        try:
            data = self._require_open().read(size)
        except serial.SerialException as exc:
            raise ConnectionError(f"Read from {self.port} failed: {exc}") from exc
        logger.debug("RX: %s", data.hex(" "))
        return data

    def discard_input(self) -> None:
        """Drop any unread bytes sitting in the input buffer."""
        self._require_open().reset_input_buffer()

    # -- Internal -----------------------------------------------------------

    def _require_open(self) -> serial.Serial:
        """Return the open serial port or raise."""
        if not self.is_open:
            raise ConnectionError("Serial port not open — call open() first.")
        assert self._ser is not None  # for type-checker
        return self._ser
