"""Data model for NanoVNA hardware and measurements.

Classes:
    HardwareVariant: Enumeration of the supported instrument models.
    FrequencyRange: Inclusive sweep frequency bounds in Hz.
    CommandSet: Per-variant command templates and prompt marker.
    HardwareCapabilities: Boolean feature flags of a variant.
    HardwareInfo: Aggregate capability entry produced by the registry.
    SweepData: Frequencies and complex S-parameter samples of one sweep.
    DeviceInfo: Best-effort model/firmware/serial strings.
    CalibrationData: Placeholder for calibration coefficients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
import numpy.typing as npt


class HardwareVariant(Enum):
    """Hardware models of the NanoVNA instrument family.

    Attributes:
        UNKNOWN: Not yet detected, or detection failed.
        V1: Original NanoVNA.
        VH: NanoVNA-H.
        V2: NanoVNA V2 (S-A-A-2 design).
        V2_PLUS: NanoVNA V2 Plus.
        V2_PLUS4: NanoVNA V2 Plus4.
        SAA2: Standalone SAA2 board.
        TINYSA: tinySA spectrum analyzer.
        LITEVNA: LiteVNA.
    """

    UNKNOWN = "unknown"
    V1 = "v1"
    VH = "vh"
    V2 = "v2"
    V2_PLUS = "v2plus"
    V2_PLUS4 = "v2plus4"
    SAA2 = "saa2"
    TINYSA = "tinysa"
    LITEVNA = "litevna"

    @property
    def display_name(self) -> str:
        """Human-readable model name."""
        return _DISPLAY_NAMES[self]

    @property
    def version_label(self) -> str:
        """Short firmware family label (``"v1"``, ``"vh"``, ``"v2"``, ...)."""
        if self.is_v2_family:
            return "v2"
        return self.value

    @property
    def is_v2_family(self) -> bool:
        """True for the V2 hardware generation, which shares a command dialect."""
        return self in (
            HardwareVariant.V2,
            HardwareVariant.V2_PLUS,
            HardwareVariant.V2_PLUS4,
            HardwareVariant.SAA2,
        )

    @classmethod
    def parse(cls, text: str) -> HardwareVariant:
        """Parse a variant from its member name or value, case-insensitively.

        Accepts ``"V2_PLUS4"``, ``"v2plus4"``, ``"v2-plus4"`` and so on.

        Raises:
            ValueError: If the text names no variant.
        """
        key = text.strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        for variant in cls:
            if key in (variant.value, variant.name.lower().replace("_", "")):
                return variant
        raise ValueError(f"Unknown hardware variant: {text!r}")

    def __str__(self) -> str:
        return self.display_name


_DISPLAY_NAMES: dict[HardwareVariant, str] = {
    HardwareVariant.UNKNOWN: "Unknown",
    HardwareVariant.V1: "NanoVNA v1",
    HardwareVariant.VH: "NanoVNA-H",
    HardwareVariant.V2: "NanoVNA v2",
    HardwareVariant.V2_PLUS: "NanoVNA v2 Plus",
    HardwareVariant.V2_PLUS4: "NanoVNA v2 Plus4",
    HardwareVariant.SAA2: "SAA2",
    HardwareVariant.TINYSA: "TinySA",
    HardwareVariant.LITEVNA: "LiteVNA",
}


@dataclass(frozen=True)
class FrequencyRange:
    """Inclusive frequency bounds supported by a variant.

    Attributes:
        min_hz: Lowest sweep frequency in Hz.
        max_hz: Highest sweep frequency in Hz.
    """

    min_hz: float
    max_hz: float

    def __post_init__(self) -> None:
        if self.min_hz < 0 or self.max_hz < 0:
            raise ValueError("frequency bounds must be non-negative")
        if self.min_hz > self.max_hz:
            raise ValueError(f"min_hz ({self.min_hz}) must not exceed max_hz ({self.max_hz})")

    def contains(self, hz: float) -> bool:
        """Return True if ``hz`` lies within the range."""
        return self.min_hz <= hz <= self.max_hz


@dataclass(frozen=True)
class CommandSet:
    """Command templates of one firmware dialect.

    Templates use :meth:`str.format` fields: ``{start}``, ``{stop}`` and
    ``{points}`` for the sweep, ``{port}`` for data, ``{slot}`` for
    calibration save/load.

    Attributes:
        sweep: Sweep configuration template.
        frequencies: Frequency list query.
        data: S-parameter data query template.
        info: Device information query.
        version: Firmware version query.
        calibration_save: Calibration save template.
        calibration_load: Calibration recall template.
        prompt: Prompt marker printed when the firmware is ready.
    """

    sweep: str = "sweep {start} {stop} {points}"
    frequencies: str = "frequencies"
    data: str = "data {port}"
    info: str = "info"
    version: str = "version"
    calibration_save: str = "save {slot}"
    calibration_load: str = "recall {slot}"
    prompt: str = "ch>"

    def format_sweep(self, start: int, stop: int, points: int) -> str:
        return self.sweep.format(start=start, stop=stop, points=points)

    def format_data(self, port: int) -> str:
        return self.data.format(port=port)

    def format_save(self, slot: int) -> str:
        return self.calibration_save.format(slot=slot)

    def format_load(self, slot: int) -> str:
        return self.calibration_load.format(slot=slot)

    @property
    def data_token(self) -> str:
        """Leading word of the data command, echoed back by the firmware."""
        return self.data.split()[0]


@dataclass(frozen=True)
class HardwareCapabilities:
    """Feature flags that differ between variants."""

    has_s21: bool = False
    has_time_domain: bool = False
    has_calibration: bool = True
    has_multiple_ports: bool = False
    has_generator: bool = False
    has_spectrum_mode: bool = False


@dataclass(frozen=True)
class HardwareInfo:
    """Capability entry for one hardware variant.

    Attributes:
        variant: The variant this entry describes.
        frequency_range: Supported sweep frequency range.
        max_sweep_points: Largest accepted number of sweep points.
        supported_ports: Ordered S-parameter labels (``"S11"``, ``"S21"``, ...).
        command_set: Command dialect spoken by the firmware.
        capabilities: Feature flags.
    """

    variant: HardwareVariant
    frequency_range: FrequencyRange
    max_sweep_points: int
    supported_ports: tuple[str, ...]
    command_set: CommandSet = field(default_factory=CommandSet)
    capabilities: HardwareCapabilities = field(default_factory=HardwareCapabilities)

    def __post_init__(self) -> None:
        if self.max_sweep_points <= 0:
            raise ValueError("max_sweep_points must be > 0")
        if not self.supported_ports:
            raise ValueError("supported_ports must be non-empty")

    def is_port_supported(self, port: str) -> bool:
        """Return True if ``port`` (e.g. ``"S21"``) is measurable on this variant."""
        return port in self.supported_ports


@dataclass(frozen=True, eq=False)
class SweepData:
    """Result of a single sweep.

    All three arrays have the same length. ``s21`` holds zeros where the
    hardware does not measure transmission.

    Attributes:
        frequencies: Sweep frequencies in Hz (float64).
        s11: Reflection samples (complex128).
        s21: Transmission samples (complex128).
    """

    frequencies: npt.NDArray[np.float64]
    s11: npt.NDArray[np.complex128]
    s21: npt.NDArray[np.complex128]

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequencies", np.asarray(self.frequencies, dtype=np.float64))
        object.__setattr__(self, "s11", np.asarray(self.s11, dtype=np.complex128))
        object.__setattr__(self, "s21", np.asarray(self.s21, dtype=np.complex128))
        if not len(self.frequencies) == len(self.s11) == len(self.s21):
            raise ValueError(
                "frequencies, s11 and s21 must have equal lengths, got "
                f"{len(self.frequencies)}, {len(self.s11)}, {len(self.s21)}"
            )

    def __len__(self) -> int:
        return len(self.frequencies)


@dataclass(frozen=True)
class DeviceInfo:
    """Identification strings reported by the firmware.

    Attributes:
        model: Model text, or ``"<variant> (detected)"`` when none was found.
        firmware: Firmware version, empty if unknown.
        serial_number: Serial number, empty if unknown.
    """

    model: str
    firmware: str = ""
    serial_number: str = ""


@dataclass(frozen=True)
class CalibrationData:
    """Calibration coefficients. Not populated yet; see the calibration hooks."""
