#!/usr/bin/env python3
"""
Configure Widget — Apply DMX timing parameters to a DMX USB Pro widget.

Reads a YAML config file, writes the configured break time, mark-after-break
time and output rate to the widget, and reads them back to confirm.

Usage:
    python scripts/configure_widget.py                           # default config
    python scripts/configure_widget.py --config path/to/cfg.yaml # custom config
    python scripts/configure_widget.py --verify-only             # check without writing
    python scripts/configure_widget.py --port COM3               # override the port
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from dmx_usb_pro import DmxUsbProError
from dmx_usb_pro.config import WidgetConfig, apply_config, load_config, verify_config

# ---------------------------------------------------------------------------
# Default config location (relative to this script)
# ---------------------------------------------------------------------------

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "widget_config.yaml"

# ---------------------------------------------------------------------------
# Terminal helpers
# ---------------------------------------------------------------------------


class C:
    """ANSI color codes (no-op on non-TTY)."""

    if sys.stdout.isatty():
        BOLD = "\033[1m"
        DIM = "\033[2m"
        GREEN = "\033[32m"
        YELLOW = "\033[33m"
        RED = "\033[31m"
        RESET = "\033[0m"
    else:
        BOLD = DIM = GREEN = YELLOW = RED = RESET = ""


def ok(text: str) -> None:
    print(f"  {C.GREEN}✓{C.RESET} {text}")


def fail(text: str) -> None:
    print(f"  {C.RED}✗{C.RESET} {text}")


def warn(text: str) -> None:
    print(f"  {C.YELLOW}⚠{C.RESET} {text}")


def info(text: str) -> None:
    print(f"  {C.DIM}{text}{C.RESET}")


def banner(text: str) -> None:
    print(f"\n{C.BOLD}{'═' * 60}")
    print(f"  {text}")
    print(f"{'═' * 60}{C.RESET}")


def print_config_summary(config: WidgetConfig) -> None:
    """Print a summary of the loaded config."""
    print(f"  Port:         {config.port} @ {config.baudrate} baud")
    timeout = "none" if config.read_timeout is None else f"{config.read_timeout:g} s"
    print(f"  Read timeout: {timeout}")
    if config.timing is None:
        print("  Timing:       (not configured)")
    else:
        t = config.timing
        print(
            f"  Timing:       break {t.break_time} × 10.67 µs, "
            f"MAB {t.mark_after_break_time} × 10.67 µs, {t.output_rate} packets/s"
        )


# ---------------------------------------------------------------------------
# One-shot mode
# ---------------------------------------------------------------------------


def run_oneshot(config: WidgetConfig, verify_only: bool) -> int:
    """Apply and verify the configured parameters. Returns exit code."""
    banner("DMX USB Pro Widget Configuration")
    print_config_summary(config)

    print()
    controller = config.controller()
    try:
        controller.connect()
        ok(f"Connected to {config.port}")
    except DmxUsbProError as exc:
        fail(f"Cannot connect: {exc}")
        return 1

    exit_code = 0
    try:
        try:
            identity = controller.query_identity()
            info(f"Firmware 0x{identity.firmware:04X}, SN {identity.serial_number}")
        except DmxUsbProError:
            warn("Could not read device identity")

        if not verify_only:
            result = apply_config(controller, config)
            if result.success:
                ok(result.message)
            else:
                fail(result.message)
                exit_code = 1

        if exit_code == 0:
            result = verify_config(controller, config)
            if result.success:
                ok(result.message)
            else:
                fail(result.message)
                exit_code = 1
    finally:
        controller.disconnect()
        info("Disconnected.")

    return exit_code


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Apply DMX timing parameters from a YAML config to a DMX USB Pro widget.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to YAML config file (default: {DEFAULT_CONFIG.name})",
    )
    parser.add_argument("--port", help="Serial port (overrides the config file)")
    parser.add_argument(
        "--verify-only",
        action="store_true",
        help="Verify current parameters without making changes",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log wire traffic")
    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except (FileNotFoundError, DmxUsbProError) as exc:
        print(f"{C.RED}✗{C.RESET} Config error: {exc}", file=sys.stderr)
        return 1

    if args.port:
        config = replace(config, port=args.port)

    return run_oneshot(config, verify_only=args.verify_only)


if __name__ == "__main__":
    sys.exit(main())
