"""Command-line interface for hwtest-nanovna.

Usage:
    # List serial ports
    hwtest-nanovna ports

    # Detect the device and print its capabilities and info
    hwtest-nanovna --port /dev/ttyACM0 info

    # Sweep the 2 m band and write a CSV file
    hwtest-nanovna sweep --start 144e6 --stop 148e6 --points 101 --csv band.csv

    # Try everything against the built-in emulator
    hwtest-nanovna --emulate v2plus4 sweep
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import TextIO

from hwtest_nanovna.config import DriverConfig, SerialConfig, load_config
from hwtest_nanovna.device import NanoVnaDevice, TransportOpener
from hwtest_nanovna.emulator import make_emulator
from hwtest_nanovna.errors import NanoVnaError
from hwtest_nanovna.transport import SerialTransport, list_ports
from hwtest_nanovna.types import HardwareVariant, SweepData

EMULATOR_PORT = "emulator"


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _emulator_opener(variant: HardwareVariant) -> TransportOpener:
    def opener(_port: str, _config: SerialConfig) -> SerialTransport:
        return make_emulator(variant)

    return opener


def _build_config(args: argparse.Namespace) -> DriverConfig:
    config = load_config(args.config) if args.config else DriverConfig()
    if args.port:
        config = replace(config, port=args.port)
    if args.variant:
        config = replace(config, variant=args.variant)
    return config


def connect(args: argparse.Namespace) -> NanoVnaDevice:
    """Open the device selected by the command-line options."""
    config = _build_config(args)
    opener = None
    if args.emulate:
        opener = _emulator_opener(args.emulate)
        if config.port is None:
            config = replace(config, port=EMULATOR_PORT)

    if config.port is None:
        return NanoVnaDevice.auto_connect(config=config, opener=opener)
    if config.variant is not None:
        return NanoVnaDevice.open_with_variant(
            config.port, config.variant, config, opener=opener
        )
    device = NanoVnaDevice.open(config.port, config, opener=opener)
    try:
        device.detect()
    except NanoVnaError:
        device.close()
        raise
    return device


def write_sweep_csv(data: SweepData, stream: TextIO) -> None:
    """Write sweep data as CSV with real/imaginary columns."""
    writer = csv.writer(stream)
    writer.writerow(["frequency_hz", "s11_re", "s11_im", "s21_re", "s21_im"])
    for freq, s11, s21 in zip(data.frequencies, data.s11, data.s21):
        writer.writerow([f"{freq:.0f}", s11.real, s11.imag, s21.real, s21.imag])


def cmd_ports(args: argparse.Namespace) -> int:
    """List serial ports."""
    ports = list_ports()
    if not ports:
        print("No serial ports found.")
        return 1
    for port in ports:
        print(port)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Print hardware capabilities and device info."""
    with connect(args) as vna:
        hw = vna.hardware_info
        info = vna.get_info()
        caps = hw.capabilities
        print(f"Connected to: {hw.variant.display_name} ({vna.port_details()})")
        print(f"  Model: {info.model}")
        print(f"  Firmware: {info.firmware or '(unknown)'}")
        print(f"  Serial number: {info.serial_number or '(unknown)'}")
        print(
            f"  Frequency range: {hw.frequency_range.min_hz:.0f} Hz - "
            f"{hw.frequency_range.max_hz:.0f} Hz"
        )
        print(f"  Max sweep points: {hw.max_sweep_points}")
        print(f"  Supported ports: {', '.join(hw.supported_ports)}")
        print("\nCapabilities:")
        print(f"  S21 transmission: {caps.has_s21}")
        print(f"  Time domain: {caps.has_time_domain}")
        print(f"  Calibration: {caps.has_calibration}")
        print(f"  Multiple ports: {caps.has_multiple_ports}")
        print(f"  Signal generator: {caps.has_generator}")
        print(f"  Spectrum mode: {caps.has_spectrum_mode}")
    return 0


def cmd_sweep(args: argparse.Namespace) -> int:
    """Configure and run a sweep."""
    with connect(args) as vna:
        start = int(args.start)
        stop = int(args.stop)
        print(f"Running sweep: {start} - {stop} Hz, {args.points} points")
        vna.configure_sweep(start, stop, args.points)
        data = vna.run_sweep()
    print(f"Measured {len(data)} frequency points")

    if args.csv:
        with open(args.csv, "w", newline="", encoding="utf-8") as f:
            write_sweep_csv(data, f)
        print(f"Saved to: {Path(args.csv)}")
    else:
        print("\nFirst 5 measurement points:")
        for freq, s11 in list(zip(data.frequencies, data.s11))[:5]:
            print(f"  {freq / 1e6:.1f} MHz: S11 = {s11.real:.6f} {s11.imag:+.6f}i")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="NanoVNA host driver CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--port", "-p", help="Serial port (default: auto-detect)")
    parser.add_argument(
        "--variant", type=HardwareVariant.parse,
        help="Force a hardware variant instead of detecting it (e.g. v1, vh, v2plus4)"
    )
    parser.add_argument("--config", "-c", help="YAML driver configuration file")
    parser.add_argument(
        "--emulate", type=HardwareVariant.parse, metavar="VARIANT",
        help="Talk to the built-in emulator instead of a serial port"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("ports", help="List serial ports")
    subparsers.add_parser("info", help="Show hardware capabilities and device info")

    sweep_parser = subparsers.add_parser("sweep", help="Run a sweep")
    sweep_parser.add_argument(
        "--start", type=float, default=144e6,
        help="Start frequency in Hz (default: 144e6)"
    )
    sweep_parser.add_argument(
        "--stop", type=float, default=148e6,
        help="Stop frequency in Hz (default: 148e6)"
    )
    sweep_parser.add_argument(
        "--points", type=int, default=101,
        help="Number of sweep points (default: 101)"
    )
    sweep_parser.add_argument("--csv", help="Write the sweep to this CSV file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    try:
        if args.command == "ports":
            return cmd_ports(args)
        elif args.command == "info":
            return cmd_info(args)
        elif args.command == "sweep":
            return cmd_sweep(args)
        else:
            parser.print_help()
            return 1
    except (NanoVnaError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
