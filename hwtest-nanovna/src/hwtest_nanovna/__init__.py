"""NanoVNA vector network analyzer driver for hwtest.

This package provides a host-side driver for the NanoVNA instrument family
(NanoVNA v1, NanoVNA-H, V2 / V2 Plus / V2 Plus4, SAA2, tinySA, LiteVNA)
over their serial text shell. It includes:

- Hardware variant detection and a per-variant capability registry
- Sweep configuration with command fallbacks
- Sweep data and device info parsing
- A pyserial transport and an in-process emulator for testing

Modules:
    device: High-level driver and connection session.
    registry: Capability entries per hardware variant.
    channel: Command/response loop over the transport.
    detection: Variant classification heuristics.
    sweep: Sweep configuration and data parsing.
    info: Device info parsing.
    transport: Transport protocol, pyserial transport, port listing.
    emulator: In-process firmware emulator.
    config: Driver configuration and YAML loading.

Example:
    Connect to the first detectable instrument::

        from hwtest_nanovna import NanoVnaDevice

        with NanoVnaDevice.auto_connect() as vna:
            vna.configure_sweep(144_000_000, 148_000_000, 101)
            data = vna.run_sweep()

    Use the emulator for testing::

        from hwtest_nanovna import HardwareVariant, NanoVnaDevice, make_emulator

        vna = NanoVnaDevice(make_emulator(HardwareVariant.VH))
        vna.detect()
"""

from hwtest_nanovna.channel import CommandChannel
from hwtest_nanovna.config import ChannelTiming, DriverConfig, SerialConfig, load_config
from hwtest_nanovna.detection import DetectionResult, classify, detect_variant
from hwtest_nanovna.device import NanoVnaDevice, Session, SessionState
from hwtest_nanovna.emulator import NanoVnaEmulator, NanoVnaEmulatorConfig, make_emulator
from hwtest_nanovna.errors import (
    CommandFailedError,
    ConfigError,
    NanoVnaError,
    NoDataError,
    NoDeviceFoundError,
    NotConnectedError,
    OutOfRangeError,
    StateError,
    TransportError,
    TransportTimeoutError,
    UnrecognizedDeviceError,
)
from hwtest_nanovna.registry import lookup
from hwtest_nanovna.transport import PySerialTransport, SerialTransport, list_ports, open_serial
from hwtest_nanovna.types import (
    CalibrationData,
    CommandSet,
    DeviceInfo,
    FrequencyRange,
    HardwareCapabilities,
    HardwareInfo,
    HardwareVariant,
    SweepData,
)

__all__ = [
    # Device
    "NanoVnaDevice",
    "Session",
    "SessionState",
    # Components
    "CommandChannel",
    "DetectionResult",
    "classify",
    "detect_variant",
    "lookup",
    # Types
    "CalibrationData",
    "CommandSet",
    "DeviceInfo",
    "FrequencyRange",
    "HardwareCapabilities",
    "HardwareInfo",
    "HardwareVariant",
    "SweepData",
    # Config
    "ChannelTiming",
    "DriverConfig",
    "SerialConfig",
    "load_config",
    # Transport
    "PySerialTransport",
    "SerialTransport",
    "list_ports",
    "open_serial",
    # Emulator
    "NanoVnaEmulator",
    "NanoVnaEmulatorConfig",
    "make_emulator",
    # Errors
    "CommandFailedError",
    "ConfigError",
    "NanoVnaError",
    "NoDataError",
    "NoDeviceFoundError",
    "NotConnectedError",
    "OutOfRangeError",
    "StateError",
    "TransportError",
    "TransportTimeoutError",
    "UnrecognizedDeviceError",
]
