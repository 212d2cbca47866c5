#!/usr/bin/env python3
"""
Flicker Session — Deliver periods of sinusoidal flicker on one DMX channel.

Drives a single channel (e.g. a dimmer feeding a white LED strip) with
bouts of flicker separated by dark breaks, optionally starting at a set
time of day.  The flicker settings come from the ``flicker`` section of the
YAML config; command-line options override them.

Usage:
    python scripts/flicker_session.py                         # settings from config
    python scripts/flicker_session.py --frequency 10 --bouts 3
    python scripts/flicker_session.py --start-at 14:59

Press Ctrl-C to cancel; the channel is switched off before exit.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from dmx_usb_pro import DmxUsbProError
from dmx_usb_pro.config import FlickerConfig, apply_config, load_config
from dmx_usb_pro.effects import parse_start_time, run_flicker_session

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "widget_config.yaml"

logger = logging.getLogger("flicker_session")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deliver scheduled flicker on one DMX channel.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="YAML config file")
    parser.add_argument("--port", help="Serial port (overrides the config file)")
    parser.add_argument("--channel", type=int, help="DMX channel (1-512)")
    parser.add_argument("--amplitude", type=float, help="Flicker amplitude (0-255)")
    parser.add_argument("--frequency", type=float, help="Flicker frequency in Hz")
    parser.add_argument("--duration", type=float, help="Seconds of flicker per bout")
    parser.add_argument("--break-duration", type=float, help="Seconds of darkness between bouts")
    parser.add_argument("--bouts", type=int, help="Number of flicker bouts")
    parser.add_argument("--start-at", help="Start time of day, HH:MM (24 hour clock)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log wire traffic")
    return parser


def merge_flicker(base: FlickerConfig | None, args: argparse.Namespace) -> FlickerConfig:
    """Overlay command-line options on the config's flicker section."""
    flicker = base or FlickerConfig(
        channel=1, amplitude=127, frequency=2.0, duration=5.0, break_duration=3.0, bouts=5
    )
    overrides = {
        "channel": args.channel,
        "amplitude": args.amplitude,
        "frequency": args.frequency,
        "duration": args.duration,
        "break_duration": args.break_duration,
        "bouts": args.bouts,
    }
    flicker = replace(flicker, **{k: v for k, v in overrides.items() if v is not None})
    if args.start_at:
        flicker = replace(flicker, start_at=parse_start_time(args.start_at))
    return flicker


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        if args.port:
            config = replace(config, port=args.port)
        flicker = merge_flicker(config.flicker, args)
    except (FileNotFoundError, DmxUsbProError) as exc:
        logger.error("Config error: %s", exc)
        return 1

    cancel = threading.Event()
    try:
        with config.controller() as dmx:
            result = apply_config(dmx, config)
            if not result.success:
                logger.error(result.message)
                return 1
            try:
                runners = run_flicker_session(
                    dmx,
                    channel=flicker.channel,
                    amplitude=flicker.amplitude,
                    frequency=flicker.frequency,
                    flicker_duration=flicker.duration,
                    break_duration=flicker.break_duration,
                    bouts=flicker.bouts,
                    start_at=flicker.start_at,
                    cancel=cancel,
                )
            except KeyboardInterrupt:
                cancel.set()
                logger.warning("Interrupted; channel %d switched off", flicker.channel)
                return 130
    except DmxUsbProError as exc:
        logger.error("Widget error: %s", exc)
        return 1

    for i, runner in enumerate(runners, start=1):
        rate = f"{1 / runner.average_period:.2f} Hz" if runner.average_period else "n/a"
        logger.info("Bout %d: %d intensities, average rate %s", i, runner.updates, rate)
    return 0


if __name__ == "__main__":
    sys.exit(main())
