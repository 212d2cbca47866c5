"""Shared runtime constants for the DMX USB Pro widget.

This is the canonical source of truth for protocol limits and controller
defaults.  Other modules should import from here rather than defining
their own copies.
"""

# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

START_BYTE = 0x7E
STOP_BYTE = 0xE7
FRAME_OVERHEAD = 5  # start, label, length LSB, length MSB, stop
MAX_PAYLOAD = 600
MAX_LENGTH = 0xFFFF

# ---------------------------------------------------------------------------
# Widget parameter limits
# ---------------------------------------------------------------------------

MIN_BREAK_TIME = 9  # units of 10.67 µs
MAX_BREAK_TIME = 127
MIN_MARK_AFTER_BREAK_TIME = 1  # units of 10.67 µs
MAX_MARK_AFTER_BREAK_TIME = 127
MIN_OUTPUT_RATE = 1  # packets per second
MAX_OUTPUT_RATE = 40

USER_CONFIG_SIZE = 85  # what real widgets report; contents are opaque
DEFAULT_USER_CONFIG = bytes([0xFF] * USER_CONFIG_SIZE)

# ---------------------------------------------------------------------------
# DMX universe limits
# ---------------------------------------------------------------------------

MIN_CHANNEL = 1
MAX_CHANNEL = 512
UNIVERSE_SIZE = 512
MAX_UNIVERSE_SIZE = UNIVERSE_SIZE
MIN_UNIVERSE_SIZE = 24
MAX_VALUE = 255

# ---------------------------------------------------------------------------
# Controller / runtime defaults
# ---------------------------------------------------------------------------

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUD = 9600
DEFAULT_POLL_INTERVAL = 0.1  # seconds between bytes-available checks
DEFAULT_READ_TIMEOUT = None  # None = wait for the reply indefinitely
DEFAULT_BREAK_TIME = 9
DEFAULT_MARK_AFTER_BREAK_TIME = 1
DEFAULT_OUTPUT_RATE = 40
