"""
Exception hierarchy for the DMX USB Pro widget.

All exceptions inherit from :class:`DmxUsbProError` so callers can catch
broadly (``except DmxUsbProError``) or narrowly (``except TimeoutError``).
None of them is fatal: closing and reopening the device recovers from all.
"""

from __future__ import annotations

from typing import Any


class DmxUsbProError(Exception):
    """Base exception for all DMX USB Pro errors."""


class ConnectionError(DmxUsbProError):  # noqa: A001 – intentional shadow of builtin
    """Raised when the serial port is unavailable or fails to open."""


class TimeoutError(DmxUsbProError):  # noqa: A001 – intentional shadow of builtin
    """Raised when a reply does not arrive within the configured read timeout."""


# -- Input validation (raised before any I/O) --------------------------------


class ValidationError(DmxUsbProError):
    """Raised when an argument fails pre-send validation."""


class PayloadTooLargeError(ValidationError):
    """Raised when a frame payload exceeds the 600-byte protocol limit."""


class ValueOutOfRangeError(ValidationError):
    """Raised when a number does not fit the field it is destined for."""


class InvalidUniverseSizeError(ValidationError):
    """Raised when DMX data is not between 24 and 512 channels long."""


class ChannelOutOfRangeError(ValidationError):
    """Raised when a DMX channel number is outside 1-512."""


# -- Link desync --------------------------------------------------------------


class ProtocolError(DmxUsbProError):
    """Raised when a reply does not match the request that solicited it."""


class FrameLengthMismatchError(ProtocolError):
    """Raised when a reply frame has the wrong number of bytes."""


class UnexpectedMessageTypeError(ProtocolError):
    """Raised when a reply carries a different label than the request."""


# -- Other -------------------------------------------------------------------


class ParameterSyncError(DmxUsbProError):
    """Raised when the widget does not report back the parameters just set.

    The caller should retry or abandon; the device handle keeps the last
    confirmed values and is left unsynchronized.
    """

    def __init__(self, message: str, requested: Any = None, reported: Any = None) -> None:
        super().__init__(message)
        self.requested = requested
        self.reported = reported


class NotImplementedMessageError(DmxUsbProError):
    """Raised when requesting a message type this package does not support (RDM, firmware)."""
