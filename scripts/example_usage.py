#!/usr/bin/env python3
"""
Example usage of the DMX USB Pro widget module

This script demonstrates:
- Connecting to the widget
- Reading device parameters and identity
- Setting DMX timing parameters
- Sending channel values
- Proper shutdown (dark fixtures, idle link)
"""

import sys
import time

# Add src to path so we can import dmx_usb_pro
sys.path.insert(0, "src")

from dmx_usb_pro import TimingParameters, get_controller
from dmx_usb_pro.effects import sinusoid


def main():
    """Run example DMX output sequence"""

    print("DMX USB Pro Widget - Example Usage")
    print("=" * 60)

    # Use context manager for automatic connection/disconnection
    with get_controller("/dev/ttyUSB0") as dmx:
        identity = dmx.query_identity()
        print("\nConnected to Widget:")
        print(f"  Firmware:  0x{identity.firmware:04X}")
        print(f"  Serial:    {identity.serial_number}")
        print(f"  Timing:    {dmx.timing}")

        # Example 1: DMX timing
        print("\n" + "=" * 60)
        print("Example 1: 40 Hz output, break 20 × 10.67 µs, MAB 2 × 10.67 µs")
        dmx.set_parameters(TimingParameters(break_time=20, mark_after_break_time=2, output_rate=40))
        print("✓ Parameters set and verified")

        # Example 2: all channels at half brightness
        print("\n" + "=" * 60)
        print("Example 2: All 512 channels at 128")
        dmx.start_output(0, [128] * 512)
        print("✓ Universe sent (the widget keeps repeating it)")

        time.sleep(2)

        # Example 3: one channel only
        print("\n" + "=" * 60)
        print("Example 3: Channel 1 at full, everything else off")
        dmx.set_channels({1: 255})
        print("✓ Channel 1 ON")

        time.sleep(2)

        # Example 4: flicker
        print("\n" + "=" * 60)
        print("Example 4: Channel 1 sinusoid at 2 Hz for 5 s")
        sinusoid(dmx, channel=1, amplitude=127, frequency=2, duration=5)
        print("✓ Done (channel switched off)")

        # Example 5: off
        print("\n" + "=" * 60)
        print("Example 5: Blackout")
        dmx.set_channels({})
        dmx.stop_output()
        print("✓ All channels OFF")

        print("\n" + "=" * 60)
        print("Example complete!")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)
