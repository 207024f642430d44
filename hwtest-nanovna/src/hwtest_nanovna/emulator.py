"""NanoVNA firmware emulator.

Provides an in-process emulator implementing the ``SerialTransport``
protocol. It answers the shell commands used by the driver with the prompt,
banner and info text of each hardware variant, and returns a synthetic
series-RLC resonator response for sweeps.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

from hwtest_nanovna import registry
from hwtest_nanovna.errors import TransportError, TransportTimeoutError
from hwtest_nanovna.types import HardwareVariant

_REFERENCE_IMPEDANCE = 50.0

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NanoVnaEmulatorConfig:
    """Configuration of an emulated NanoVNA.

    Args:
        variant: Variant whose limits and dialect are emulated.
        banner: Text printed in reply to a bare carriage return.
        info: Lines printed by the ``info`` command.
        version: Text printed by the ``version`` command.
        echo: Whether commands are echoed back.
        failing_commands: Command prefixes that make ``write`` raise
            :class:`TransportError`, to emulate a dropped link.
        start_hz: Initial sweep start frequency.
        stop_hz: Initial sweep stop frequency.
        points: Initial number of sweep points.
    """

    variant: HardwareVariant
    banner: str
    info: tuple[str, ...]
    version: str = "1.0"
    echo: bool = True
    failing_commands: tuple[str, ...] = ()
    start_hz: int = 50_000
    stop_hz: int = 900_000_000
    points: int = 101

    def __post_init__(self) -> None:
        if not self.banner:
            raise ValueError("banner must be non-empty")
        if self.points < 1:
            raise ValueError("points must be >= 1")
        if self.start_hz > self.stop_hz:
            raise ValueError("start_hz must not exceed stop_hz")


# ---------------------------------------------------------------------------
# Emulator
# ---------------------------------------------------------------------------


class NanoVnaEmulator:
    """In-process NanoVNA emulator implementing ``SerialTransport``.

    Args:
        config: Emulator configuration.
    """

    def __init__(self, config: NanoVnaEmulatorConfig) -> None:
        self._config = config
        info = registry.lookup(config.variant)
        self._commands = info.command_set
        self._prompt = info.command_set.prompt + " "
        self._start = config.start_hz
        self._stop = config.stop_hz
        self._points = config.points
        self._output = b""
        self.written: list[str] = []
        self.closed = False

        self._handlers: dict[str, Callable[[list[str]], str]] = {
            self._commands.info: self._info,
            self._commands.version: lambda _args: self._config.version,
            self._commands.frequencies: self._frequencies,
            "data": self._data,
            "sweep": self._sweep,
            "start": lambda args: self._set_scalar("start", args),
            "stop": lambda args: self._set_scalar("stop", args),
            "points": lambda args: self._set_scalar("points", args),
            "save": lambda _args: "",
            "recall": lambda _args: "",
        }

    # -- Transport interface ------------------------------------------------

    def write(self, data: bytes) -> int:
        """Process one or more ``\\r``-terminated commands."""
        text = data.decode("ascii")
        lines = text.split("\r")
        if text.endswith("\r"):
            lines.pop()
        for line in lines:
            self._handle_line(line.strip())
        return len(data)

    def read(self, size: int) -> bytes:
        """Return up to ``size`` pending bytes.

        Raises:
            TransportTimeoutError: If nothing is pending.
        """
        if not self._output:
            raise TransportTimeoutError("timeout")
        chunk, self._output = self._output[:size], self._output[size:]
        return chunk

    def discard_input(self) -> None:
        """Drop pending output."""
        self._output = b""

    def close(self) -> None:
        """Mark the emulator closed."""
        self.closed = True

    # -- Test helpers -------------------------------------------------------

    @property
    def config(self) -> NanoVnaEmulatorConfig:
        return self._config

    @property
    def sweep_settings(self) -> tuple[int, int, int]:
        """Current ``(start_hz, stop_hz, points)``."""
        return self._start, self._stop, self._points

    def frequencies(self) -> list[float]:
        """Sweep frequencies for the current settings."""
        if self._points == 1:
            return [float(self._start)]
        step = (self._stop - self._start) / (self._points - 1)
        return [self._start + i * step for i in range(self._points)]

    def s11(self, frequency: float) -> complex:
        """Reflection of a 50 ohm series RLC resonant at the sweep center."""
        f0 = (self._start + self._stop) / 2 or 1.0
        inductance = 1e-6
        capacitance = 1.0 / ((2 * math.pi * f0) ** 2 * inductance)
        omega = 2 * math.pi * max(frequency, 1.0)
        z = complex(_REFERENCE_IMPEDANCE, omega * inductance - 1.0 / (omega * capacitance))
        return (z - _REFERENCE_IMPEDANCE) / (z + _REFERENCE_IMPEDANCE)

    def s21(self, frequency: float) -> complex:
        """Transmission matching :meth:`s11` for a lossless network."""
        reflection = self.s11(frequency)
        return complex(math.sqrt(max(0.0, 1.0 - abs(reflection) ** 2)), 0.0)

    # -- Private helpers ----------------------------------------------------

    def _emit(self, text: str) -> None:
        self._output += text.encode("ascii")

    def _handle_line(self, line: str) -> None:
        self.written.append(line)
        if line and any(line.startswith(prefix) for prefix in self._config.failing_commands):
            raise TransportError(f"emulated write failure for {line!r}")
        if not line:
            self._emit(self._config.banner)
            return

        parts = line.split()
        handler = self._handlers.get(parts[0])
        body = handler(parts[1:]) if handler is not None else f"{parts[0]}?"
        echo = f"{line}\r\n" if self._config.echo else ""
        newline = "\r\n" if body else ""
        self._emit(f"{echo}{body}{newline}{self._prompt}")

    def _info(self, _args: list[str]) -> str:
        return "\r\n".join(self._config.info)

    def _frequencies(self, _args: list[str]) -> str:
        return "\r\n".join(str(round(f)) for f in self.frequencies())

    def _data(self, args: list[str]) -> str:
        try:
            port = int(args[0]) if args else 0
        except ValueError:
            return "data?"
        measure = {0: self.s11, 1: self.s21}.get(port)
        if measure is None:
            return "data?"
        values = (measure(f) for f in self.frequencies())
        return "\r\n".join(f"{v.real:.9f} {v.imag:.9f}" for v in values)

    def _sweep(self, args: list[str]) -> str:
        if args and args[0] in ("start", "stop", "points"):
            return self._set_scalar(args[0], args[1:])
        try:
            numbers = [int(float(a)) for a in args]
        except ValueError:
            return "sweep?"
        if len(numbers) >= 1:
            self._start = numbers[0]
        if len(numbers) >= 2:
            self._stop = numbers[1]
        if len(numbers) >= 3 and numbers[2] > 0:
            self._points = numbers[2]
        if not numbers:
            return f"{self._start} {self._stop} {self._points}"
        return ""

    def _set_scalar(self, name: str, args: list[str]) -> str:
        try:
            value = int(float(args[0]))
        except (IndexError, ValueError):
            return f"{name}?"
        if name == "start":
            self._start = value
        elif name == "stop":
            self._stop = value
        elif value > 0:
            self._points = value
        return ""


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

_PROFILES: dict[HardwareVariant, tuple[str, tuple[str, ...]]] = {
    HardwareVariant.V1: (
        "ch> ",
        ("NanoVNA", "2016-2019 Copyright @edy555", "Version: v0.2.3", "Serial: NV1-0001"),
    ),
    HardwareVariant.VH: (
        "\r\nch> ",
        ("NanoVNA-H", "2016-2020 Copyright @edy555", "Version: v1.0.45", "Serial: NVH-0001"),
    ),
    HardwareVariant.TINYSA: (
        "ch> ",
        ("tinySA v1.3-435", "2019-2022 Copyright @Erik Kaashoek", "Serial: TSA-0001"),
    ),
    HardwareVariant.LITEVNA: (
        "ch> ",
        ("LiteVNA 64", "Board: LiteVNA", "Version: v0.3.1"),
    ),
    HardwareVariant.V2: (
        "2> ",
        ("NanoVNA V2_2", "Firmware: 20201013"),
    ),
    HardwareVariant.V2_PLUS: (
        "2> ",
        ("NanoVNA V2 Plus", "Firmware: 20211120"),
    ),
    HardwareVariant.V2_PLUS4: (
        "2> ",
        ("NanoVNA V2 Plus4", "Firmware: 20220118"),
    ),
    HardwareVariant.SAA2: (
        "2> ",
        ("S-A-A-2 SAA2 board", "Version: 1.1"),
    ),
}


def make_emulator(variant: HardwareVariant, **overrides: object) -> NanoVnaEmulator:
    """Create an emulator that detects as ``variant``.

    Args:
        variant: Any known variant except ``UNKNOWN``.
        **overrides: Replacement :class:`NanoVnaEmulatorConfig` fields.

    Returns:
        Configured emulator instance.

    Raises:
        ValueError: If ``variant`` is ``UNKNOWN``.
    """
    if variant not in _PROFILES:
        raise ValueError(f"No emulator profile for {variant.display_name}")
    banner, info = _PROFILES[variant]
    limits = registry.lookup(variant)
    fields: dict[str, object] = {
        "variant": variant,
        "banner": banner,
        "info": info,
        "start_hz": int(limits.frequency_range.min_hz),
        "stop_hz": int(min(limits.frequency_range.max_hz, 900e6)),
        "points": min(limits.max_sweep_points, 101),
    }
    fields.update(overrides)
    return NanoVnaEmulator(NanoVnaEmulatorConfig(**fields))  # type: ignore[arg-type]
