"""Enttec DMX USB Pro Widget Python Interface"""

from .constants import MAX_CHANNEL, MAX_OUTPUT_RATE, UNIVERSE_SIZE
from .controller import DmxUsbPro, SessionState, get_controller
from .exceptions import (
    ChannelOutOfRangeError,
    ConnectionError,
    DmxUsbProError,
    FrameLengthMismatchError,
    InvalidUniverseSizeError,
    NotImplementedMessageError,
    ParameterSyncError,
    PayloadTooLargeError,
    ProtocolError,
    TimeoutError,
    UnexpectedMessageTypeError,
    ValidationError,
    ValueOutOfRangeError,
)
from .protocol import DeviceIdentity, MessageType, TimingParameters, WidgetParameters
from .universe import build_universe

__all__ = [
    "ChannelOutOfRangeError",
    "ConnectionError",
    "DeviceIdentity",
    "DmxUsbPro",
    "DmxUsbProError",
    "FrameLengthMismatchError",
    "InvalidUniverseSizeError",
    "MAX_CHANNEL",
    "MAX_OUTPUT_RATE",
    "MessageType",
    "NotImplementedMessageError",
    "ParameterSyncError",
    "PayloadTooLargeError",
    "ProtocolError",
    "SessionState",
    "TimeoutError",
    "TimingParameters",
    "UNIVERSE_SIZE",
    "UnexpectedMessageTypeError",
    "ValidationError",
    "ValueOutOfRangeError",
    "WidgetParameters",
    "build_universe",
    "get_controller",
]
__version__ = "0.1.0"
