"""
Time-varying channel effects built on top of :class:`~dmx_usb_pro.controller.DmxUsbPro`.

The widget re-emits whatever frame it was last given, so animating a
channel means pushing a new frame every output period.  This module owns
that scheduling; the controller only provides the primitives.

Every run ends the same way, whether it completes or is cancelled: the
channel is set to zero and :meth:`~dmx_usb_pro.controller.DmxUsbPro.stop_output`
is called, leaving the fixture dark and the link idle::

    runner = FlickerRunner(dmx, channel=1, amplitude=127, frequency=2.0, duration=5)
    runner.start()
    ...
    runner.cancel()
    runner.wait()
"""

from __future__ import annotations

import datetime
import logging
import math
import threading
import time
from collections.abc import Callable

from .constants import MAX_CHANNEL, MAX_OUTPUT_RATE, MAX_VALUE, MIN_CHANNEL
from .controller import DmxUsbPro
from .exceptions import (
    ChannelOutOfRangeError,
    ValidationError,
    ValueOutOfRangeError,
)

logger = logging.getLogger(__name__)

Waveform = Callable[[float, float, float], int]

# ---------------------------------------------------------------------------
# Waveforms
# ---------------------------------------------------------------------------


def _clamp(value: float) -> int:
    return max(0, min(MAX_VALUE, round(value)))


def flicker_intensity(elapsed: float, amplitude: float, frequency: float) -> int:
    """Sinusoid swinging between 0 and *amplitude*, starting at the midpoint."""
    return _clamp((amplitude / 2) * (1 + math.sin(2 * math.pi * frequency * elapsed)))


def sinusoid_intensity(elapsed: float, amplitude: float, frequency: float) -> int:
    """Sinusoid of *amplitude* centred on half brightness (128)."""
    return _clamp(128 + amplitude * math.sin(2 * math.pi * frequency * elapsed))


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _validate_channel(channel: int) -> None:
    if not (MIN_CHANNEL <= channel <= MAX_CHANNEL):
        raise ChannelOutOfRangeError(f"Channel must be {MIN_CHANNEL}-{MAX_CHANNEL}, got {channel}")


def _validate_number(label: str, value: float, lo: float, hi: float) -> None:
    if not (lo <= value <= hi):
        raise ValueOutOfRangeError(f"{label} must be {lo}-{hi}, got {value}")


def parse_start_time(text: str) -> datetime.time:
    """Parse a 24-hour ``HH:MM`` string."""
    try:
        return datetime.datetime.strptime(text, "%H:%M").time()
    except ValueError as exc:
        raise ValidationError(f"Start time must be HH:MM, got {text!r}") from exc


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class FlickerRunner(threading.Thread):
    """Drive one channel with a waveform at the widget's output rate.

    Sends ``duration × output_rate`` frames, one per output period, then
    zeroes the channel and stops output.  :meth:`cancel` ends the run early
    with the same cleanup.

    Args:
        controller: A connected :class:`DmxUsbPro`.
        channel: DMX channel (1-512).
        amplitude: Peak swing passed to *waveform* (0-255).
        frequency: Modulation frequency in Hz (0-40).
        duration: Run length in seconds.
        waveform: ``f(elapsed_s, amplitude, frequency) -> value``.
    """

    def __init__(
        self,
        controller: DmxUsbPro,
        channel: int,
        amplitude: float,
        frequency: float,
        duration: float,
        waveform: Waveform = flicker_intensity,
    ) -> None:
        _validate_channel(channel)
        _validate_number("amplitude", amplitude, 0, MAX_VALUE)
        _validate_number("frequency", frequency, 0, MAX_OUTPUT_RATE)
        if duration < 0:
            raise ValueOutOfRangeError(f"duration must be >= 0, got {duration}")
        super().__init__(name=f"flicker-ch{channel}", daemon=True)
        self._controller = controller
        self.channel = channel
        self.amplitude = amplitude
        self.frequency = frequency
        self.duration = duration
        self.waveform = waveform
        self.updates = 0
        self.average_period: float | None = None
        self.error: Exception | None = None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Ask the run to finish after the current frame."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self, timeout: float | None = None) -> None:
        """Join the thread and re-raise any error it hit."""
        self.join(timeout)
        if self.error is not None:
            raise self.error

    def run(self) -> None:
        try:
            self._loop()
        except Exception as exc:
            logger.error("%s aborted: %s", self.name, exc)
            self.error = exc
        # The fixture is darkened whether or not the loop finished.
        try:
            self._controller.set_channel(self.channel, 0)
            self._controller.stop_output()
        except Exception as exc:
            if self.error is None:
                logger.error("%s could not darken channel %d: %s", self.name, self.channel, exc)
                self.error = exc
            else:
                logger.warning("%s cleanup also failed: %s", self.name, exc)
        if self.error is not None:
            return
        logger.info(
            "%s stopped after delivering %d intensities%s",
            self.name,
            self.updates,
            f" at an average rate of {1 / self.average_period:.2f} Hz"
            if self.average_period
            else "",
        )

    def _loop(self) -> None:
        period = self._controller.output_period
        total = round(self.duration * self._controller.output_rate)
        logger.info(
            "Starting %s (amp %s @ %.2f Hz) for %.2f s (%d updates)",
            self.name,
            self.amplitude,
            self.frequency,
            self.duration,
            total,
        )
        start = time.monotonic()
        next_tick = start
        last = start
        while self.updates < total and not self._cancelled.is_set():
            now = time.monotonic()
            value = self.waveform(now - start, self.amplitude, self.frequency)
            self._controller.set_channels({self.channel: value})
            self.updates += 1
            last = now
            next_tick += period
            self._cancelled.wait(max(0.0, next_tick - time.monotonic()))
        if self.updates > 1:
            self.average_period = (last - start) / (self.updates - 1)


# ---------------------------------------------------------------------------
# Blocking helpers
# ---------------------------------------------------------------------------


def _run_to_completion(runner: FlickerRunner, cancel: threading.Event | None = None) -> None:
    runner.start()
    try:
        while runner.is_alive():
            runner.join(0.05)
            if cancel is not None and cancel.is_set():
                runner.cancel()
    finally:
        # Ctrl-C lands here; the runner still darkens the channel on its way out.
        runner.cancel()
        runner.join()
    if runner.error is not None:
        raise runner.error


def sinusoid(
    controller: DmxUsbPro,
    channel: int,
    amplitude: float,
    frequency: float,
    duration: float = 60,
) -> FlickerRunner:
    """Modulate *channel* around half brightness for *duration* seconds.

    Blocks until done.  Press Ctrl-C to terminate early.
    """
    _validate_number("amplitude", amplitude, 0, 127)
    runner = FlickerRunner(
        controller, channel, amplitude, frequency, duration, waveform=sinusoid_intensity
    )
    logger.info("Starting sinusoid loop for %.2f s", duration)
    _run_to_completion(runner)
    return runner


def run_flicker_session(
    controller: DmxUsbPro,
    channel: int,
    amplitude: float,
    frequency: float,
    flicker_duration: float,
    break_duration: float,
    bouts: int,
    start_at: datetime.time | None = None,
    cancel: threading.Event | None = None,
) -> list[FlickerRunner]:
    """Deliver *bouts* periods of flicker separated by dark breaks.

    Args:
        start_at: Wall-clock time of day to begin.  If it has already passed
            today the session starts immediately.
        cancel: Set this event to end the session; a running bout is
            cancelled (and darkened) and no further bouts start.

    Returns:
        One finished :class:`FlickerRunner` per bout delivered.
    """
    if bouts < 0:
        raise ValueOutOfRangeError(f"bouts must be >= 0, got {bouts}")
    if break_duration < 0:
        raise ValueOutOfRangeError(f"break_duration must be >= 0, got {break_duration}")
    cancel = cancel or threading.Event()

    if start_at is not None:
        now = datetime.datetime.now()
        target = datetime.datetime.combine(now.date(), start_at)
        if target > now:
            logger.info("Waiting until %s to start flicker", target.strftime("%H:%M"))
            if cancel.wait((target - now).total_seconds()):
                return []

    runners: list[FlickerRunner] = []
    for bout in range(bouts):
        if cancel.is_set():
            break
        runner = FlickerRunner(controller, channel, amplitude, frequency, flicker_duration)
        runners.append(runner)
        _run_to_completion(runner, cancel)
        if bout < bouts - 1 and cancel.wait(break_duration):
            break
    logger.info("Flicker session finished: %d of %d bouts delivered", len(runners), bouts)
    return runners
