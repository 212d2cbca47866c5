"""
DMX USB Pro Widget Interface

Python API for controlling an Enttec DMX USB Pro (or compatible) widget via
its virtual serial port.  With it you can drive any DMX512 fixture (dimmers,
LED strips, fog machines) from Python.

Protocol details:
    - Frames: 0x7E | label | length LSB | length MSB | payload | 0xE7
    - Request/reply with no correlation ids: one request on the link at a time
    - Widget parameters are set blind and verified by reading them back
    - DMX output is fire-and-forget; the widget keeps re-emitting the last
      frame at its configured output rate
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from enum import Enum

from .constants import (
    DEFAULT_BAUD,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_USER_CONFIG,
)
from .exceptions import ConnectionError, ParameterSyncError
from .protocol import DeviceIdentity, TimingParameters, WidgetParameters, WidgetProtocol
from .transport import SerialTransport
from .universe import build_universe

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Whether the held parameters are known to match the widget."""

    UNSYNCHRONIZED = "unsynchronized"
    SETTING = "setting"
    SYNCHRONIZED = "synchronized"


class DmxUsbPro:
    """Interface for a DMX USB Pro widget.

    Owns one serial port from :meth:`connect` until :meth:`disconnect`.
    Use as a context manager for automatic connection handling::

        with DmxUsbPro("/dev/ttyUSB0") as dmx:
            dmx.set_parameters(TimingParameters(20, 2, 40))
            dmx.set_channels({1: 255})
            ...
            dmx.stop_output()

    Args:
        port: Serial port path.
        baud: Baud rate handed to pyserial.
        poll_interval: Seconds between checks for a complete reply.
        read_timeout: Upper bound on a reply wait, ``None`` for unbounded.
            On expiry the port is closed; call :meth:`connect` again.
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baud: int = DEFAULT_BAUD,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        read_timeout: float | None = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self._tx = SerialTransport(port, baud)
        self.poll_interval = poll_interval
        self.read_timeout = read_timeout
        self._p: WidgetProtocol | None = None

        self._state = SessionState.UNSYNCHRONIZED
        self._timing = TimingParameters()
        self._user_config = DEFAULT_USER_CONFIG
        self._firmware = 0
        self._serial_number: int | None = None
        self._last_output: float | None = None

    def __repr__(self) -> str:
        return (
            f"DmxUsbPro(port={self.port!r}, state={self._state.value}, "
            f"break_time={self._timing.break_time}, "
            f"mark_after_break_time={self._timing.mark_after_break_time}, "
            f"output_rate={self._timing.output_rate})"
        )

    # -- Context manager ----------------------------------------------------

    def __enter__(self) -> DmxUsbPro:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    # -- Connection ---------------------------------------------------------

    def connect(self, sync: bool = True) -> None:
        """Open the serial port and, if *sync*, adopt the widget's parameters.

        If the parameter query fails the port is closed again before the
        error propagates.
        """
        self._tx.open()
        self._p = WidgetProtocol(self._tx, self.poll_interval, self.read_timeout)
        self._state = SessionState.UNSYNCHRONIZED
        self._last_output = None
        if sync:
            try:
                self.refresh_parameters()
            except Exception:
                self.disconnect()
                raise

    def disconnect(self) -> None:
        """Close the serial port (safe to call multiple times)."""
        self._tx.close()
        self._p = None
        self._state = SessionState.UNSYNCHRONIZED

    @property
    def is_connected(self) -> bool:
        """Return True if the serial port is open."""
        return self._p is not None and self._tx.is_open

    @property
    def port(self) -> str:
        return self._tx.port

    def _proto(self) -> WidgetProtocol:
        if self._p is None or not self._tx.is_open:
            raise ConnectionError("Widget not connected — call connect() first.")
        return self._p

    # -- Parameter state ----------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_synchronized(self) -> bool:
        return self._state is SessionState.SYNCHRONIZED

    @property
    def timing(self) -> TimingParameters:
        """Timing parameters last confirmed on the widget."""
        return self._timing

    @property
    def break_time(self) -> int:
        return self._timing.break_time

    @property
    def mark_after_break_time(self) -> int:
        return self._timing.mark_after_break_time

    @property
    def output_rate(self) -> int:
        return self._timing.output_rate

    @property
    def output_period(self) -> float:
        """Seconds between frames at the configured output rate."""
        return 1.0 / self._timing.output_rate

    @property
    def user_config(self) -> bytes:
        return self._user_config

    @property
    def firmware(self) -> int:
        return self._firmware

    @property
    def serial_number(self) -> int | None:
        """Serial number from the last :meth:`query_identity`, if any."""
        return self._serial_number

    # -- Parameters ---------------------------------------------------------

    def get_parameters(self) -> WidgetParameters:
        """Query the widget's current parameters without adopting them."""
        return self._proto().get_parameters(len(self._user_config))

    def refresh_parameters(self) -> WidgetParameters:
        """Query the widget's parameters and make them the held values."""
        p = self._proto()
        with p.lock:
            params = p.get_parameters(len(self._user_config))
            self._adopt(params)
        logger.info(
            "Widget parameters: firmware 0x%04X, break %d, MAB %d, rate %d",
            params.firmware,
            params.timing.break_time,
            params.timing.mark_after_break_time,
            params.timing.output_rate,
        )
        return params

    def set_parameters(self, timing: TimingParameters) -> None:
        """Write *timing* to the widget and read it back to confirm.

        Raises:
            ValueOutOfRangeError: If a field is out of range (nothing is sent).
            ParameterSyncError: If the widget reports different values.  The
                held parameters stay at their last confirmed values and the
                session is left unsynchronized.
        """
        timing.validate()
        p = self._proto()
        with p.lock:
            self._state = SessionState.SETTING
            try:
                p.set_parameters(timing, self._user_config)
                reported = p.get_parameters(len(self._user_config))
            except Exception:
                self._state = SessionState.UNSYNCHRONIZED
                raise
            if reported.timing != timing:
                self._state = SessionState.UNSYNCHRONIZED
                raise ParameterSyncError(
                    f"Widget parameters were not set correctly (requested {timing}, "
                    f"widget reports {reported.timing}). Please try again.",
                    requested=timing,
                    reported=reported.timing,
                )
            self._adopt(reported)
        logger.info(
            "Set break %d, MAB %d, rate %d",
            timing.break_time,
            timing.mark_after_break_time,
            timing.output_rate,
        )

    def set_break_time(self, break_time: int) -> None:
        """Change only the break time (units of 10.67 µs, 9-127)."""
        self.set_parameters(replace(self._timing, break_time=break_time))

    def set_mark_after_break_time(self, mark_after_break_time: int) -> None:
        """Change only the mark-after-break time (units of 10.67 µs, 1-127)."""
        self.set_parameters(replace(self._timing, mark_after_break_time=mark_after_break_time))

    def set_output_rate(self, output_rate: int) -> None:
        """Change only the output rate (packets per second, 1-40)."""
        self.set_parameters(replace(self._timing, output_rate=output_rate))

    def _adopt(self, params: WidgetParameters) -> None:
        self._firmware = params.firmware
        self._timing = params.timing
        self._user_config = params.user_config
        self._state = SessionState.SYNCHRONIZED

    # -- Information --------------------------------------------------------

    def query_identity(self) -> DeviceIdentity:
        """Query the widget's serial number.

        The firmware version is the one read with the last parameter query.
        """
        serial_number = self._proto().get_serial()
        self._serial_number = serial_number
        return DeviceIdentity(firmware=self._firmware, serial_number=serial_number)

    # -- DMX output ---------------------------------------------------------

    def start_output(self, start_code: int, data: Sequence[int]) -> None:
        """Send one DMX frame of 24-512 channel values.

        The widget keeps sending this frame at its output rate (the LED next
        to the USB connector blinks) until a new frame arrives or
        :meth:`stop_output` is called.
        """
        p = self._proto()
        with p.lock:
            p.output_dmx(start_code, data)
            self._last_output = time.monotonic()

    def stop_output(self) -> None:
        """Stop streaming after the last frame has gone out.

        Waits out whatever is left of the current output period, then sends
        a reply-bearing request (any will do; the serial query is the
        simplest).  Channels are not blanked: send zeros first if the
        fixtures should go dark.
        """
        p = self._proto()
        with p.lock:
            if self._last_output is not None:
                remaining = self.output_period - (time.monotonic() - self._last_output)
                if remaining > 0:
                    time.sleep(remaining)
            self._last_output = None
            self.query_identity()

    def set_channels(self, assignments: Mapping[int, int] | Iterable[tuple[int, int]]) -> None:
        """Output a universe with the given ``{channel: value}`` and zeros elsewhere."""
        self.start_output(0, build_universe(assignments))

    def set_channel(self, channel: int | Iterable[int], value: int) -> None:
        """Set one or more channels to *value* and every other channel to zero."""
        channels = [channel] if isinstance(channel, int) else list(channel)
        self.set_channels({ch: value for ch in channels})


# ---------------------------------------------------------------------------
# Convenience factory
# ---------------------------------------------------------------------------


def get_controller(port: str = DEFAULT_PORT, **kwargs) -> DmxUsbPro:
    """Return a controller instance (use as a context manager).

    Example::

        with get_controller("/dev/ttyUSB0") as dmx:
            dmx.set_channels({1: 128})
    """
    return DmxUsbPro(port, **kwargs)
