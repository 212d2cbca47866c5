"""
DMX USB Pro widget protocol: request/reply turn-taking, message building,
and reply parsing.

This module sits between the transport (raw serial I/O) and the controller
(user-facing API).  It knows how to:

* validate parameters before they become messages,
* frame requests and deframe replies (via :mod:`framing`),
* keep exactly one request outstanding on the link at a time,
* parse typed data out of reply payloads.

The protocol carries no correlation ids: a reply is matched to its request
only by arriving next.  Every request therefore runs under :attr:`WidgetProtocol.lock`
and blocks until its reply has been fully consumed.

It does **not** own the serial port — that belongs to
:class:`~dmx_usb_pro.transport.SerialTransport`.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum

from .constants import (
    DEFAULT_BREAK_TIME,
    DEFAULT_MARK_AFTER_BREAK_TIME,
    DEFAULT_OUTPUT_RATE,
    DEFAULT_POLL_INTERVAL,
    FRAME_OVERHEAD,
    MAX_BREAK_TIME,
    MAX_MARK_AFTER_BREAK_TIME,
    MAX_OUTPUT_RATE,
    MAX_UNIVERSE_SIZE,
    MAX_VALUE,
    MIN_BREAK_TIME,
    MIN_MARK_AFTER_BREAK_TIME,
    MIN_OUTPUT_RATE,
    MIN_UNIVERSE_SIZE,
)
from .exceptions import (
    InvalidUniverseSizeError,
    NotImplementedMessageError,
    ProtocolError,
    TimeoutError,
    ValidationError,
    ValueOutOfRangeError,
)
from .framing import decode_frame, encode_frame, split_length
from .transport import SerialTransport

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Enums & Data
# ---------------------------------------------------------------------------


class MessageType(IntEnum):
    """Message labels defined by the widget API."""

    REPROGRAM_FIRMWARE = 1
    PROGRAM_FLASH_PAGE = 2
    GET_WIDGET_PARAMETERS = 3
    SET_WIDGET_PARAMETERS = 4
    RECEIVED_DMX_PACKET = 5
    OUTPUT_ONLY_DMX = 6
    RDM_PACKET = 7
    RECEIVE_DMX_ON_CHANGE = 8
    RECEIVED_DMX_CHANGE_OF_STATE = 9
    GET_WIDGET_SERIAL = 10
    SEND_RDM_DISCOVERY = 11


UNIMPLEMENTED_MESSAGES = frozenset(
    {
        MessageType.REPROGRAM_FIRMWARE,
        MessageType.PROGRAM_FLASH_PAGE,
        MessageType.RECEIVED_DMX_PACKET,
        MessageType.RDM_PACKET,
        MessageType.RECEIVE_DMX_ON_CHANGE,
        MessageType.RECEIVED_DMX_CHANGE_OF_STATE,
        MessageType.SEND_RDM_DISCOVERY,
    }
)


@dataclass(frozen=True)
class TimingParameters:
    """DMX line timing configured on the widget.

    ``break_time`` and ``mark_after_break_time`` are in units of 10.67 µs;
    ``output_rate`` is in packets per second.
    """

    break_time: int = DEFAULT_BREAK_TIME
    mark_after_break_time: int = DEFAULT_MARK_AFTER_BREAK_TIME
    output_rate: int = DEFAULT_OUTPUT_RATE

    def validate(self) -> None:
        """Raise :class:`ValueOutOfRangeError` if any field is out of range."""
        _validate_range("break_time", self.break_time, MIN_BREAK_TIME, MAX_BREAK_TIME)
        _validate_range(
            "mark_after_break_time",
            self.mark_after_break_time,
            MIN_MARK_AFTER_BREAK_TIME,
            MAX_MARK_AFTER_BREAK_TIME,
        )
        _validate_range("output_rate", self.output_rate, MIN_OUTPUT_RATE, MAX_OUTPUT_RATE)


@dataclass(frozen=True)
class WidgetParameters:
    """Parameters returned by a ``GET_WIDGET_PARAMETERS`` request."""

    firmware: int
    timing: TimingParameters
    user_config: bytes

    @classmethod
    def from_payload(cls, payload: bytes) -> WidgetParameters:
        """Parse a reply payload.

        Layout::

            firmware LSB | firmware MSB | break | MAB | rate | user config ...
        """
        if len(payload) < 5:
            raise ProtocolError(f"Widget parameter reply too short: {payload.hex(' ')}")
        timing = TimingParameters(
            break_time=payload[2],
            mark_after_break_time=payload[3],
            output_rate=payload[4],
        )
        return cls(
            firmware=int.from_bytes(payload[0:2], "little"),
            timing=timing,
            user_config=bytes(payload[5:]),
        )


@dataclass(frozen=True)
class DeviceIdentity:
    """Firmware version and serial number of the widget."""

    firmware: int
    serial_number: int


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _validate_range(label: str, value: int, lo: int, hi: int) -> None:
    if not isinstance(value, int) or not (lo <= value <= hi):
        raise ValueOutOfRangeError(f"{label} must be {lo}-{hi}, got {value!r}")


def _validate_label(label: int) -> MessageType:
    try:
        message = MessageType(label)
    except ValueError as err:
        raise ValidationError(f"Unknown message label {label}") from err
    if message in UNIMPLEMENTED_MESSAGES:
        raise NotImplementedMessageError(f"{message.name} message not implemented")
    return message


def _validate_universe(data: Sequence[int]) -> None:
    n = len(data)
    if not (MIN_UNIVERSE_SIZE <= n <= MAX_UNIVERSE_SIZE):
        raise InvalidUniverseSizeError(
            f"DMX data must be between {MIN_UNIVERSE_SIZE} and {MAX_UNIVERSE_SIZE} "
            f"channels, got {n}"
        )
    for i, value in enumerate(data, start=1):
        if not (0 <= value <= MAX_VALUE):
            raise ValueOutOfRangeError(f"Channel {i} value must be 0-{MAX_VALUE}, got {value}")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class WidgetProtocol:
    """Frames requests, sends them via a transport, and reads their replies.

    Args:
        transport: An open :class:`~dmx_usb_pro.transport.SerialTransport`.
        poll_interval: Seconds between checks of the bytes-available count
            while waiting for a reply.
        read_timeout: Upper bound in seconds on a reply wait.  ``None``
            waits indefinitely; the widget always answers a supported
            request, so an unbounded wait only hangs on a broken link.
    """

    def __init__(
        self,
        transport: SerialTransport,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        read_timeout: float | None = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValidationError(f"poll_interval must be > 0, got {poll_interval}")
        if read_timeout is not None and read_timeout <= 0:
            raise ValidationError(f"read_timeout must be > 0 or None, got {read_timeout}")
        self._tx = transport
        self.poll_interval = poll_interval
        self.read_timeout = read_timeout
        self.lock = threading.RLock()

    # -- Turn-taking --------------------------------------------------------

    def send(self, label: int, payload: bytes = b"") -> None:
        """Send one framed message.

        Unread input is discarded first so a stale byte cannot be taken for
        the start of the next reply.  This assumes the widget sends nothing
        unsolicited (i.e. DMX input reporting is off).

        Raises:
            NotImplementedMessageError: For RDM / firmware / DMX-input labels.
                Nothing is written in that case.
        """
        message = _validate_label(label)
        frame = encode_frame(message, payload)
        with self.lock:
            self._tx.discard_input()
            logger.debug("Sending %s (%d payload bytes)", message.name, len(payload))
            self._tx.write(frame)

    def receive(self, label: int, expected_length: int) -> bytes:
        """Block until a full reply is buffered, then read and decode it.

        Raises:
            TimeoutError: If :attr:`read_timeout` expires.  The transport is
                closed because a late reply would be misread as the answer
                to the next request; reconnect before continuing.
            FrameLengthMismatchError: If more bytes arrived than expected.
            UnexpectedMessageTypeError: If the reply carries another label.
        """
        expected_total = expected_length + FRAME_OVERHEAD
        with self.lock:
            deadline = None
            if self.read_timeout is not None:
                deadline = time.monotonic() + self.read_timeout
            while self._tx.bytes_available < expected_total:
                if deadline is not None and time.monotonic() >= deadline:
                    logger.error(
                        "No reply to label %d within %.2f s; closing the link",
                        label,
                        self.read_timeout,
                    )
                    self._tx.close()
                    raise TimeoutError(
                        f"Timed out waiting for {expected_total} bytes (label {label})"
                    )
                time.sleep(self.poll_interval)
            raw = self._tx.read(self._tx.bytes_available)
        return decode_frame(raw, label, expected_length)

    def request(self, label: int, payload: bytes, expected_length: int) -> bytes:
        """Send a request and return the payload of its reply."""
        with self.lock:
            self.send(label, payload)
            return self.receive(label, expected_length)

    # -- Messages -----------------------------------------------------------

    def get_parameters(self, user_config_size: int) -> WidgetParameters:
        """Query firmware, timing parameters, and *user_config_size* config bytes."""
        payload = bytes(split_length(user_config_size))
        reply = self.request(MessageType.GET_WIDGET_PARAMETERS, payload, 5 + user_config_size)
        return WidgetParameters.from_payload(reply)

    def set_parameters(self, timing: TimingParameters, user_config: bytes) -> None:
        """Write timing parameters, passing *user_config* through untouched.

        The widget does not acknowledge this message; read the parameters
        back to find out whether it worked.
        """
        timing.validate()
        lsb, msb = split_length(len(user_config))
        payload = bytes(
            [lsb, msb, timing.break_time, timing.mark_after_break_time, timing.output_rate]
        ) + bytes(user_config)
        self.send(MessageType.SET_WIDGET_PARAMETERS, payload)

    def get_serial(self) -> int:
        """Return the widget's 32-bit serial number."""
        reply = self.request(MessageType.GET_WIDGET_SERIAL, b"", 4)
        return int.from_bytes(reply, "little")

    def output_dmx(self, start_code: int, data: Sequence[int]) -> None:
        """Send one DMX frame (no reply is solicited).

        Fractional values are rounded to the nearest integer.
        """
        _validate_range("start_code", start_code, 0, MAX_VALUE)
        _validate_universe(data)
        payload = bytes([start_code]) + bytes(round(v) for v in data)
        self.send(MessageType.OUTPUT_ONLY_DMX, payload)
