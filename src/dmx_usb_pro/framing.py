"""
Pure encode/decode of the widget's link-level packet format.

Wire form::

    0x7E | label | length LSB | length MSB | payload ... | 0xE7

No I/O happens here; :mod:`protocol` moves the bytes.
"""

from __future__ import annotations

import logging

from .constants import FRAME_OVERHEAD, MAX_LENGTH, MAX_PAYLOAD, START_BYTE, STOP_BYTE
from .exceptions import (
    FrameLengthMismatchError,
    PayloadTooLargeError,
    UnexpectedMessageTypeError,
    ValueOutOfRangeError,
)

logger = logging.getLogger(__name__)


def split_length(n: int) -> tuple[int, int]:
    """Split *n* into a little-endian ``(lsb, msb)`` byte pair."""
    if not (0 <= n < MAX_LENGTH + 1):
        raise ValueOutOfRangeError(f"{n} cannot be represented as a uint16")
    return n & 0xFF, (n >> 8) & 0xFF


def encode_frame(label: int, payload: bytes | bytearray = b"") -> bytes:
    """Build the wire form of a message with *label* and *payload*.

    Raises:
        PayloadTooLargeError: If *payload* is longer than 600 bytes.
        ValueOutOfRangeError: If *label* does not fit in a byte.
    """
    if not (0 <= label <= 0xFF):
        raise ValueOutOfRangeError(f"Label must be 0-255, got {label}")
    if len(payload) > MAX_PAYLOAD:
        raise PayloadTooLargeError(
            f"This data package is too long ({len(payload)}>{MAX_PAYLOAD})"
        )
    lsb, msb = split_length(len(payload))
    return bytes([START_BYTE, label, lsb, msb]) + bytes(payload) + bytes([STOP_BYTE])


def decode_frame(raw: bytes, expected_label: int, expected_length: int) -> bytes:
    """Check a received frame and return its payload.

    Args:
        raw: Every byte read for this reply, framing included.
        expected_label: Label the reply must echo.
        expected_length: Payload length the reply must carry.

    Raises:
        FrameLengthMismatchError: If ``len(raw) != expected_length + 5``.
        UnexpectedMessageTypeError: If the label at offset 1 differs.
    """
    expected_total = expected_length + FRAME_OVERHEAD
    if len(raw) != expected_total:
        raise FrameLengthMismatchError(
            f"Message length not correct (expected {expected_total} bytes, got {len(raw)})"
        )
    if raw[1] != expected_label:
        raise UnexpectedMessageTypeError(
            f"Wrong label returned (Expected {expected_label}, Received {raw[1]})"
        )
    # Stop byte is reported, not enforced.
    if raw[-1] != STOP_BYTE:
        logger.warning("Frame for label %d ends with 0x%02X, not 0xE7", expected_label, raw[-1])
    return bytes(raw[4:-1])
