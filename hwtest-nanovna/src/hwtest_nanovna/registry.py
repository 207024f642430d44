"""Capability registry mapping hardware variants to their limits and dialect.

The registry is static module data and is safe to share between sessions.
:func:`lookup` is total over :class:`HardwareVariant`; ``UNKNOWN`` resolves to
conservative defaults.
"""

from __future__ import annotations

from types import MappingProxyType

from hwtest_nanovna.types import (
    CommandSet,
    FrequencyRange,
    HardwareCapabilities,
    HardwareInfo,
    HardwareVariant,
)

# Dialect of the ChibiOS shell firmwares (V1, -H, tinySA, LiteVNA)
CH_COMMANDS = CommandSet()

# Dialect of the V2 generation
V2_COMMANDS = CommandSet(frequencies="freq", prompt="2>")

_V2_CAPABILITIES = HardwareCapabilities(
    has_s21=True,
    has_time_domain=True,
    has_calibration=True,
    has_generator=True,
    has_spectrum_mode=True,
)

_REGISTRY: MappingProxyType[HardwareVariant, HardwareInfo] = MappingProxyType(
    {
        HardwareVariant.UNKNOWN: HardwareInfo(
            variant=HardwareVariant.UNKNOWN,
            frequency_range=FrequencyRange(50e3, 900e6),
            max_sweep_points=101,
            supported_ports=("S11",),
            command_set=CH_COMMANDS,
            capabilities=HardwareCapabilities(),
        ),
        HardwareVariant.V1: HardwareInfo(
            variant=HardwareVariant.V1,
            frequency_range=FrequencyRange(50e3, 900e6),
            max_sweep_points=101,
            supported_ports=("S11", "S21"),
            command_set=CH_COMMANDS,
            capabilities=HardwareCapabilities(has_s21=True),
        ),
        HardwareVariant.VH: HardwareInfo(
            variant=HardwareVariant.VH,
            frequency_range=FrequencyRange(50e3, 1.5e9),
            max_sweep_points=201,
            supported_ports=("S11", "S21"),
            command_set=CH_COMMANDS,
            capabilities=HardwareCapabilities(
                has_s21=True, has_time_domain=True, has_generator=True
            ),
        ),
        HardwareVariant.V2: HardwareInfo(
            variant=HardwareVariant.V2,
            frequency_range=FrequencyRange(50e3, 3e9),
            max_sweep_points=4000,
            supported_ports=("S11", "S21"),
            command_set=V2_COMMANDS,
            capabilities=_V2_CAPABILITIES,
        ),
        HardwareVariant.V2_PLUS: HardwareInfo(
            variant=HardwareVariant.V2_PLUS,
            frequency_range=FrequencyRange(50e3, 6e9),
            max_sweep_points=4000,
            supported_ports=("S11", "S21"),
            command_set=V2_COMMANDS,
            capabilities=_V2_CAPABILITIES,
        ),
        HardwareVariant.V2_PLUS4: HardwareInfo(
            variant=HardwareVariant.V2_PLUS4,
            frequency_range=FrequencyRange(50e3, 6e9),
            max_sweep_points=4000,
            supported_ports=("S11", "S21", "S12", "S22"),
            command_set=V2_COMMANDS,
            capabilities=HardwareCapabilities(
                has_s21=True,
                has_time_domain=True,
                has_calibration=True,
                has_multiple_ports=True,
                has_generator=True,
                has_spectrum_mode=True,
            ),
        ),
        HardwareVariant.SAA2: HardwareInfo(
            variant=HardwareVariant.SAA2,
            frequency_range=FrequencyRange(50e3, 3e9),
            max_sweep_points=4000,
            supported_ports=("S11", "S21"),
            command_set=V2_COMMANDS,
            capabilities=_V2_CAPABILITIES,
        ),
        HardwareVariant.TINYSA: HardwareInfo(
            variant=HardwareVariant.TINYSA,
            frequency_range=FrequencyRange(100e3, 960e6),
            max_sweep_points=500,
            supported_ports=("S11",),
            command_set=CH_COMMANDS,
            capabilities=HardwareCapabilities(has_generator=True, has_spectrum_mode=True),
        ),
        HardwareVariant.LITEVNA: HardwareInfo(
            variant=HardwareVariant.LITEVNA,
            frequency_range=FrequencyRange(50e3, 6.3e9),
            max_sweep_points=1024,
            supported_ports=("S11", "S21"),
            command_set=CH_COMMANDS,
            capabilities=HardwareCapabilities(has_s21=True, has_time_domain=True),
        ),
    }
)


def lookup(variant: HardwareVariant) -> HardwareInfo:
    """Return the capability entry for ``variant``.

    Args:
        variant: Any :class:`HardwareVariant` member.

    Returns:
        The immutable :class:`HardwareInfo` for that variant.
    """
    return _REGISTRY[variant]


def variants() -> tuple[HardwareVariant, ...]:
    """Return every variant with a registry entry."""
    return tuple(_REGISTRY)
