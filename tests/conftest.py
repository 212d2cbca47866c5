"""Shared pytest fixtures for DMX USB Pro tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from dmx_usb_pro import DmxUsbPro
from dmx_usb_pro.protocol import WidgetProtocol
from dmx_usb_pro.transport import SerialTransport

FAST_POLL = 0.001


def frame(label: int, payload: bytes = b"") -> bytes:
    """Build a wire frame by hand, independent of :mod:`dmx_usb_pro.framing`."""
    n = len(payload)
    return bytes([0x7E, label, n & 0xFF, n >> 8]) + payload + bytes([0xE7])


class FakeWidget:
    """Lightweight stand-in for ``serial.Serial`` that answers like a widget.

    Implements the subset of the pyserial API used by
    :class:`~dmx_usb_pro.transport.SerialTransport`:
    ``write``, ``read``, ``in_waiting``, ``flush``, ``reset_input_buffer``,
    ``close``, and ``is_open``.

    Each written frame is interpreted the way the widget would:

    * ``GET_WIDGET_PARAMETERS`` (3) queues a reply with the current firmware,
      timing and as many user-config bytes as were requested,
    * ``SET_WIDGET_PARAMETERS`` (4) stores the new values (unless
      :attr:`ignore_sets` is true), no reply,
    * ``OUTPUT_ONLY_DMX`` (6) stores the frame in :attr:`dmx`, no reply,
    * ``GET_WIDGET_SERIAL`` (10) queues the 4-byte serial number.

    :meth:`stage_reply` overrides the **next** reply with raw bytes, and
    :attr:`mute` suppresses replies entirely, and :attr:`write_error` makes
    every write raise (an unplugged device).  Every write and read is
    appended to :attr:`events` so tests can check the ordering on the wire.
    """

    def __init__(self) -> None:
        self.is_open: bool = True
        self.written: list[bytes] = []
        self.events: list[tuple[str, int]] = []
        self.firmware = 0x0144
        self.timing = [9, 1, 40]  # break, MAB, rate
        self.user_config = bytes([0xFF] * 85)
        self.serial_number = 0x00123456
        self.dmx: bytes | None = None
        self.ignore_sets = False
        self.mute = False
        self.write_error: Exception | None = None
        self._rx = bytearray()
        self._staged: bytes | None = None

    # -- Helpers for tests --------------------------------------------------

    def stage_reply(self, raw: bytes) -> None:
        """Use *raw* instead of the next generated reply."""
        self._staged = raw

    def inject(self, raw: bytes) -> None:
        """Put unsolicited bytes in the input buffer."""
        self._rx += raw

    def clear(self) -> None:
        self.written.clear()
        self.events.clear()

    # -- pyserial interface -------------------------------------------------

    def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        data = bytes(data)
        self.written.append(data)
        label = data[1]
        payload = data[4:-1]
        self.events.append(("write", label))

        reply = None
        if label == 3:
            size = payload[0] | (payload[1] << 8)
            body = self.firmware.to_bytes(2, "little") + bytes(self.timing)
            reply = frame(3, body + self.user_config[:size])
        elif label == 4:
            if not self.ignore_sets:
                self.timing = list(payload[2:5])
                self.user_config = bytes(payload[5:])
        elif label == 6:
            self.dmx = payload
        elif label == 10:
            reply = frame(10, self.serial_number.to_bytes(4, "little"))

        if reply is not None and not self.mute:
            if self._staged is not None:
                reply, self._staged = self._staged, None
            self._rx += reply
        return len(data)

    @property
    def in_waiting(self) -> int:
        return len(self._rx)

    def read(self, size: int = 1) -> bytes:
        data = bytes(self._rx[:size])
        del self._rx[:size]
        self.events.append(("read", len(data)))
        return data

    def flush(self) -> None:
        pass

    def reset_input_buffer(self) -> None:
        self._rx.clear()

    def close(self) -> None:
        self.is_open = False


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_widget() -> FakeWidget:
    """Return a fresh ``FakeWidget`` instance."""
    return FakeWidget()


@pytest.fixture()
def transport(fake_widget: FakeWidget) -> SerialTransport:
    """Return a ``SerialTransport`` wired to a fake widget."""
    with patch("dmx_usb_pro.transport.serial.Serial", return_value=fake_widget):
        tx = SerialTransport("/dev/fake")
        tx.open()
        return tx


@pytest.fixture()
def protocol(transport: SerialTransport) -> WidgetProtocol:
    """Return a ``WidgetProtocol`` wired to a fake transport."""
    return WidgetProtocol(transport, poll_interval=FAST_POLL)


@pytest.fixture()
def controller(fake_widget: FakeWidget) -> DmxUsbPro:
    """Return a fully connected ``DmxUsbPro`` wired to a fake widget."""
    with patch("dmx_usb_pro.transport.serial.Serial", return_value=fake_widget):
        dmx = DmxUsbPro("/dev/fake", poll_interval=FAST_POLL)
        dmx.connect()
        # Reset so tests don't see the parameter query made on connect
        fake_widget.clear()
        return dmx
