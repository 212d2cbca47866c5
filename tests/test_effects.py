"""
Tests for the effects module.

Covers:
* Waveform shapes (flicker, sinusoid)
* FlickerRunner cadence, cancellation, and dark-on-exit cleanup
* Blocking sinusoid helper and scheduled flicker sessions
"""

from __future__ import annotations

import datetime
import threading

import pytest
import serial
from conftest import frame

from dmx_usb_pro import (
    ChannelOutOfRangeError,
    ConnectionError,
    ValidationError,
    ValueOutOfRangeError,
)
from dmx_usb_pro.effects import (
    FlickerRunner,
    flicker_intensity,
    parse_start_time,
    run_flicker_session,
    sinusoid,
    sinusoid_intensity,
)

DARK_FRAME = frame(6, bytes(513))
IDLE_REQUEST = frame(10)


def output_frames(fake_widget):
    return [w for w in fake_widget.written if w[1] == 6]


# ══════════════════════════════════════════════════════════════════════════
#  Waveforms
# ══════════════════════════════════════════════════════════════════════════


class TestWaveforms:
    def test_flicker_starts_at_midpoint(self):
        assert flicker_intensity(0.0, 127, 2.0) == 64

    def test_flicker_peak(self):
        assert flicker_intensity(0.125, 127, 2.0) == 127

    def test_flicker_trough(self):
        assert flicker_intensity(0.375, 127, 2.0) == 0

    def test_sinusoid_centre_and_extremes(self):
        assert sinusoid_intensity(0.0, 127, 1.0) == 128
        assert sinusoid_intensity(0.25, 127, 1.0) == 255
        assert sinusoid_intensity(0.75, 127, 1.0) == 1

    def test_clamped_to_byte(self):
        assert flicker_intensity(0.125, 400, 2.0) == 255


class TestParseStartTime:
    def test_valid(self):
        assert parse_start_time("14:59") == datetime.time(14, 59)

    def test_invalid(self):
        with pytest.raises(ValidationError, match="HH:MM"):
            parse_start_time("2pm")


# ══════════════════════════════════════════════════════════════════════════
#  FlickerRunner
# ══════════════════════════════════════════════════════════════════════════


class TestFlickerRunner:
    def test_sends_one_frame_per_period(self, controller, fake_widget):
        runner = FlickerRunner(controller, channel=1, amplitude=127, frequency=2.0, duration=0.1)
        runner.start()
        runner.wait(5)
        assert runner.updates == 4  # 0.1 s at 40 Hz
        assert runner.average_period == pytest.approx(controller.output_period, abs=0.02)
        assert output_frames(fake_widget)[0] == frame(6, bytes([0, 64]) + bytes(511))

    def test_ends_dark_and_idle(self, controller, fake_widget):
        runner = FlickerRunner(controller, channel=5, amplitude=200, frequency=1.0, duration=0.05)
        runner.start()
        runner.wait(5)
        assert fake_widget.written[-2:] == [DARK_FRAME, IDLE_REQUEST]

    def test_cancel_ends_early_and_dark(self, controller, fake_widget):
        runner = FlickerRunner(controller, channel=1, amplitude=127, frequency=2.0, duration=10)
        runner.start()
        runner.cancel()
        runner.wait(5)
        assert not runner.is_alive()
        assert runner.cancelled
        assert runner.updates < 400
        assert fake_widget.written[-2:] == [DARK_FRAME, IDLE_REQUEST]

    def test_error_is_reraised_by_wait(self, controller):
        controller.disconnect()
        runner = FlickerRunner(controller, channel=1, amplitude=127, frequency=2.0, duration=1)
        runner.start()
        with pytest.raises(ConnectionError):
            runner.wait(5)

    def test_waveform_error_still_ends_dark(self, controller, fake_widget):
        def broken(elapsed, amplitude, frequency):
            raise ValueError("bad waveform")

        runner = FlickerRunner(
            controller, channel=1, amplitude=127, frequency=2.0, duration=1, waveform=broken
        )
        runner.start()
        with pytest.raises(ValueError, match="bad waveform"):
            runner.wait(5)
        assert fake_widget.written[-2:] == [DARK_FRAME, IDLE_REQUEST]

    def test_serial_failure_reported_by_wait(self, controller, fake_widget):
        fake_widget.write_error = serial.SerialException("device disconnected")
        runner = FlickerRunner(controller, channel=1, amplitude=127, frequency=2.0, duration=1)
        runner.start()
        with pytest.raises(ConnectionError, match="Write to"):
            runner.wait(5)
        assert not runner.is_alive()

    def test_channel_validated(self, controller):
        with pytest.raises(ChannelOutOfRangeError):
            FlickerRunner(controller, channel=0, amplitude=127, frequency=2.0, duration=1)

    def test_frequency_validated(self, controller):
        with pytest.raises(ValueOutOfRangeError, match="frequency"):
            FlickerRunner(controller, channel=1, amplitude=127, frequency=50, duration=1)


# ══════════════════════════════════════════════════════════════════════════
#  Blocking helpers
# ══════════════════════════════════════════════════════════════════════════


class TestSinusoid:
    def test_runs_and_cleans_up(self, controller, fake_widget):
        runner = sinusoid(controller, channel=2, amplitude=100, frequency=1.0, duration=0.05)
        assert runner.updates == 2
        assert output_frames(fake_widget)[0][6] == 128  # channel 2
        assert fake_widget.written[-2:] == [DARK_FRAME, IDLE_REQUEST]

    def test_amplitude_limited_to_127(self, controller, fake_widget):
        with pytest.raises(ValueOutOfRangeError, match="amplitude"):
            sinusoid(controller, channel=1, amplitude=128, frequency=1.0)
        assert fake_widget.written == []


class TestFlickerSession:
    def test_delivers_all_bouts(self, controller, fake_widget):
        runners = run_flicker_session(
            controller,
            channel=1,
            amplitude=127,
            frequency=2.0,
            flicker_duration=0.05,
            break_duration=0.01,
            bouts=3,
        )
        assert len(runners) == 3
        assert all(r.updates == 2 for r in runners)
        assert fake_widget.written.count(IDLE_REQUEST) == 3

    def test_past_start_time_starts_immediately(self, controller):
        runners = run_flicker_session(
            controller,
            channel=1,
            amplitude=127,
            frequency=2.0,
            flicker_duration=0.025,
            break_duration=0,
            bouts=1,
            start_at=datetime.time(0, 0),
        )
        assert len(runners) == 1

    def test_cancelled_session_delivers_nothing(self, controller, fake_widget):
        cancel = threading.Event()
        cancel.set()
        runners = run_flicker_session(
            controller,
            channel=1,
            amplitude=127,
            frequency=2.0,
            flicker_duration=1,
            break_duration=1,
            bouts=5,
            cancel=cancel,
        )
        assert runners == []
        assert fake_widget.written == []

    def test_negative_bouts_rejected(self, controller):
        with pytest.raises(ValueOutOfRangeError, match="bouts"):
            run_flicker_session(controller, 1, 127, 2.0, 1, 1, bouts=-1)
