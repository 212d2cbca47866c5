"""Build full DMX universes from sparse channel assignments."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .constants import MAX_CHANNEL, MAX_VALUE, MIN_CHANNEL, UNIVERSE_SIZE
from .exceptions import ChannelOutOfRangeError, ValueOutOfRangeError


def build_universe(assignments: Mapping[int, int] | Iterable[tuple[int, int]]) -> bytearray:
    """Return a 512-slot universe that is zero except at the given channels.

    Args:
        assignments: ``{channel: value}`` or ``(channel, value)`` pairs.
            Channels are 1-based (1-512), values 0-255 (rounded to integers).

    Raises:
        ChannelOutOfRangeError: If a channel is outside 1-512.
        ValueOutOfRangeError: If a value is outside 0-255.
    """
    pairs = assignments.items() if isinstance(assignments, Mapping) else assignments
    universe = bytearray(UNIVERSE_SIZE)
    for channel, value in pairs:
        if not (MIN_CHANNEL <= channel <= MAX_CHANNEL):
            raise ChannelOutOfRangeError(
                f"Channel must be {MIN_CHANNEL}-{MAX_CHANNEL}, got {channel}"
            )
        if not (0 <= value <= MAX_VALUE):
            raise ValueOutOfRangeError(f"Value must be 0-{MAX_VALUE}, got {value}")
        universe[channel - 1] = round(value)
    return universe
