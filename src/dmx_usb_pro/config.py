"""
Widget configuration — load a YAML file describing the link, the DMX
timing parameters, and an optional flicker session, then apply it to or
verify it against a connected widget.

Both the CLI scripts and system-integration code can import this directly::

    from dmx_usb_pro.config import apply_config, load_config, verify_config

    config = load_config("config/widget_config.yaml")
    with config.controller() as dmx:
        result = apply_config(dmx, config)
        result = verify_config(dmx, config)
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from .constants import DEFAULT_BAUD, DEFAULT_POLL_INTERVAL, DEFAULT_READ_TIMEOUT
from .controller import DmxUsbPro
from .effects import parse_start_time
from .exceptions import DmxUsbProError, ValidationError
from .protocol import TimingParameters

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FlickerConfig:
    """A scheduled flicker session on one channel."""

    channel: int
    amplitude: float
    frequency: float
    duration: float
    break_duration: float
    bouts: int
    start_at: datetime.time | None = None


@dataclass(frozen=True)
class WidgetConfig:
    """Top-level configuration loaded from a YAML file."""

    port: str
    baudrate: int = DEFAULT_BAUD
    poll_interval: float = DEFAULT_POLL_INTERVAL
    read_timeout: float | None = DEFAULT_READ_TIMEOUT
    timing: TimingParameters | None = None
    flicker: FlickerConfig | None = None

    def controller(self) -> DmxUsbPro:
        """Return an unconnected controller for this link (use as a context manager)."""
        return DmxUsbPro(
            self.port,
            baud=self.baudrate,
            poll_interval=self.poll_interval,
            read_timeout=self.read_timeout,
        )


# ---------------------------------------------------------------------------
# Config loading & validation
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> WidgetConfig:
    """Load and validate a widget configuration from a YAML file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValidationError: If the config is malformed or contains invalid values.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValidationError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    port = raw.get("port")
    if not isinstance(port, str) or not port:
        raise ValidationError("Config must specify a non-empty 'port' string")

    baudrate = raw.get("baudrate", DEFAULT_BAUD)
    if not isinstance(baudrate, int) or isinstance(baudrate, bool) or baudrate <= 0:
        raise ValidationError(f"'baudrate' must be a positive integer, got {baudrate!r}")

    poll_interval = _positive_number(raw, "poll_interval", DEFAULT_POLL_INTERVAL)
    read_timeout = raw.get("read_timeout", DEFAULT_READ_TIMEOUT)
    if read_timeout is not None:
        read_timeout = _positive_number(raw, "read_timeout", None)

    timing = None
    if raw.get("timing") is not None:
        timing = _parse_timing(raw["timing"])

    flicker = None
    if raw.get("flicker") is not None:
        flicker = _parse_flicker(raw["flicker"])

    return WidgetConfig(
        port=port,
        baudrate=baudrate,
        poll_interval=poll_interval,
        read_timeout=read_timeout,
        timing=timing,
        flicker=flicker,
    )


def _parse_timing(data: dict) -> TimingParameters:
    if not isinstance(data, dict):
        raise ValidationError("'timing' must be a mapping")
    defaults = TimingParameters()
    timing = TimingParameters(
        break_time=data.get("break_time", defaults.break_time),
        mark_after_break_time=data.get("mark_after_break_time", defaults.mark_after_break_time),
        output_rate=data.get("output_rate", defaults.output_rate),
    )
    timing.validate()
    return timing


def _parse_flicker(data: dict) -> FlickerConfig:
    if not isinstance(data, dict):
        raise ValidationError("'flicker' must be a mapping")

    channel = data.get("channel")
    if not isinstance(channel, int) or not (1 <= channel <= 512):
        raise ValidationError(f"flicker: 'channel' must be 1-512, got {channel!r}")

    amplitude = _non_negative_number(data, "amplitude", "flicker")
    if amplitude > 255:
        raise ValidationError(f"flicker: 'amplitude' must be 0-255, got {amplitude}")

    bouts = data.get("bouts", 1)
    if not isinstance(bouts, int) or bouts < 1:
        raise ValidationError(f"flicker: 'bouts' must be a positive integer, got {bouts!r}")

    start_at = data.get("start_at")
    if isinstance(start_at, int) and not isinstance(start_at, bool):
        # YAML 1.1 reads an unquoted 14:59 as the sexagesimal integer 899
        start_at = f"{start_at // 60:02d}:{start_at % 60:02d}"
    if start_at is not None:
        start_at = parse_start_time(str(start_at))

    return FlickerConfig(
        channel=channel,
        amplitude=amplitude,
        frequency=_non_negative_number(data, "frequency", "flicker"),
        duration=_non_negative_number(data, "duration", "flicker"),
        break_duration=_non_negative_number(data, "break_duration", "flicker", default=0),
        bouts=bouts,
        start_at=start_at,
    )


def _positive_number(data: dict, key: str, default: float | None) -> float:
    val = data.get(key, default)
    if not isinstance(val, (int, float)) or isinstance(val, bool) or val <= 0:
        raise ValidationError(f"'{key}' must be a positive number, got {val!r}")
    return float(val)


def _non_negative_number(
    data: dict, key: str, section: str, default: float | None = None
) -> float:
    val = data.get(key, default)
    if not isinstance(val, (int, float)) or isinstance(val, bool) or val < 0:
        raise ValidationError(f"{section}: '{key}' must be a non-negative number, got {val!r}")
    return float(val)


# ---------------------------------------------------------------------------
# Apply & verify
# ---------------------------------------------------------------------------


@dataclass
class ConfigResult:
    """Outcome of an apply or verify operation."""

    success: bool
    message: str


def apply_config(controller: DmxUsbPro, config: WidgetConfig) -> ConfigResult:
    """Write the configured timing parameters (set-then-verify).

    Args:
        controller: A connected DmxUsbPro instance.
        config: Loaded configuration.

    Returns:
        A :class:`ConfigResult` indicating success or failure.
    """
    if config.timing is None:
        return ConfigResult(True, "No timing parameters configured; nothing to apply")

    try:
        controller.set_parameters(config.timing)
    except DmxUsbProError as exc:
        msg = f"Applying {_describe(config.timing)} FAILED: {exc}"
        logger.error(msg)
        return ConfigResult(False, msg)

    msg = f"Applied {_describe(config.timing)}"
    logger.info(msg)
    return ConfigResult(True, msg)


def verify_config(controller: DmxUsbPro, config: WidgetConfig) -> ConfigResult:
    """Read the widget's parameters back and compare them with *config*.

    Nothing is written to the widget.
    """
    if config.timing is None:
        return ConfigResult(True, "No timing parameters configured; nothing to verify")

    try:
        actual = controller.get_parameters().timing
    except DmxUsbProError as exc:
        msg = f"VERIFY FAILED: query failed: {exc}"
        logger.warning(msg)
        return ConfigResult(False, msg)

    errors: list[str] = []
    expected = config.timing
    for name in ("break_time", "mark_after_break_time", "output_rate"):
        want, got = getattr(expected, name), getattr(actual, name)
        if want != got:
            errors.append(f"{name} is {got}, expected {want}")

    if errors:
        msg = f"VERIFY FAILED: {'; '.join(errors)}"
        logger.warning(msg)
        return ConfigResult(False, msg)

    msg = f"{_describe(expected)} verified OK"
    logger.info(msg)
    return ConfigResult(True, msg)


def _describe(timing: TimingParameters) -> str:
    return (
        f"break {timing.break_time}, MAB {timing.mark_after_break_time}, "
        f"rate {timing.output_rate} Hz"
    )
