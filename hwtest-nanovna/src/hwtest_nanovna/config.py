"""Driver configuration and YAML loading.

Serial settings and channel timing live in frozen dataclasses with named
defaults. A YAML file can override any subset of them.

Example YAML configuration:
    serial:
      baudrate: 115200
      timeout: 2.0

    channel:
      response_grace: 0.05
      max_read_attempts: 20

    device:
      port: "/dev/ttyACM0"
      variant: "v2plus4"
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from hwtest_nanovna.errors import ConfigError
from hwtest_nanovna.types import HardwareVariant

DEFAULT_BAUDRATE = 9600
DEFAULT_READ_TIMEOUT = 5.0
DEFAULT_BYTESIZE = 8
DEFAULT_PARITY = "N"
DEFAULT_STOPBITS = 1

DEFAULT_RESPONSE_GRACE = 0.05
DEFAULT_READ_INTERVAL = 0.02
DEFAULT_MAX_READ_ATTEMPTS = 10
DEFAULT_READ_SIZE = 1024

_PARITIES = ("N", "E", "O", "M", "S")


@dataclass(frozen=True)
class SerialConfig:
    """Serial line settings used when opening a port.

    Attributes:
        baudrate: Line speed in baud.
        timeout: Read timeout in seconds.
        bytesize: Data bits per character.
        parity: Parity as a pyserial letter (``"N"``, ``"E"``, ``"O"``, ...).
        stopbits: Number of stop bits.
    """

    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = DEFAULT_READ_TIMEOUT
    bytesize: int = DEFAULT_BYTESIZE
    parity: str = DEFAULT_PARITY
    stopbits: float = DEFAULT_STOPBITS

    def __post_init__(self) -> None:
        if self.baudrate <= 0:
            raise ValueError("baudrate must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.bytesize not in (5, 6, 7, 8):
            raise ValueError("bytesize must be one of 5, 6, 7, 8")
        if self.parity not in _PARITIES:
            raise ValueError(f"parity must be one of {', '.join(_PARITIES)}")
        if self.stopbits not in (1, 1.5, 2):
            raise ValueError("stopbits must be 1, 1.5 or 2")

    def describe(self, port: str) -> str:
        """Format the settings for diagnostics."""
        return (
            f"Port: {port}, Baud: {self.baudrate}, ReadTimeout: {self.timeout}s, "
            f"Size: {self.bytesize}, Parity: {self.parity}, StopBits: {self.stopbits}"
        )


@dataclass(frozen=True)
class ChannelTiming:
    """Delays and limits of the command/response loop.

    Attributes:
        response_grace: Seconds to wait after writing before the first read.
        read_interval: Seconds to wait between read attempts.
        max_read_attempts: Upper bound on reads per exchange.
        read_size: Bytes requested per read.
    """

    response_grace: float = DEFAULT_RESPONSE_GRACE
    read_interval: float = DEFAULT_READ_INTERVAL
    max_read_attempts: int = DEFAULT_MAX_READ_ATTEMPTS
    read_size: int = DEFAULT_READ_SIZE

    def __post_init__(self) -> None:
        if self.response_grace < 0 or self.read_interval < 0:
            raise ValueError("delays must be non-negative")
        if self.max_read_attempts < 1:
            raise ValueError("max_read_attempts must be >= 1")
        if self.read_size < 1:
            raise ValueError("read_size must be >= 1")


@dataclass(frozen=True)
class DriverConfig:
    """Complete driver configuration.

    Attributes:
        serial: Serial line settings.
        timing: Command channel timing.
        port: Default port to open, or None to auto-connect.
        variant: Variant to force instead of detecting, or None.
    """

    serial: SerialConfig = field(default_factory=SerialConfig)
    timing: ChannelTiming = field(default_factory=ChannelTiming)
    port: str | None = None
    variant: HardwareVariant | None = None


def _build_section(cls: type, data: Any, section: str) -> Any:
    """Instantiate a config dataclass from a YAML mapping."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")
    try:
        return cls(**data)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid '{section}' configuration: {exc}") from exc


def parse_config(data: dict[str, Any] | None) -> DriverConfig:
    """Build a :class:`DriverConfig` from already-parsed YAML data.

    Args:
        data: Top-level mapping, or None for all defaults.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If a section is malformed or a value is invalid.
    """
    if data is None:
        return DriverConfig()
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    serial = _build_section(SerialConfig, data.get("serial"), "serial")
    timing = _build_section(ChannelTiming, data.get("channel"), "channel")

    device = data.get("device") or {}
    if not isinstance(device, dict):
        raise ConfigError("Section 'device' must be a mapping")
    port = device.get("port")
    variant = None
    if device.get("variant") is not None:
        try:
            variant = HardwareVariant.parse(str(device["variant"]))
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    return DriverConfig(
        serial=serial,
        timing=timing,
        port=str(port) if port is not None else None,
        variant=variant,
    )


def load_config(path: str | Path) -> DriverConfig:
    """Load a driver configuration from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        The validated configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the YAML is invalid or describes an invalid config.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    return parse_config(data)
