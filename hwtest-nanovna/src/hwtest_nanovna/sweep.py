"""Sweep configuration and sweep data acquisition.

:func:`configure_sweep` validates a sweep request against a
:class:`HardwareInfo` entry and sends it, falling back to per-parameter
commands when the firmware rejects the combined form. :func:`run_sweep`
reads the frequency list and S-parameter data and returns a
:class:`SweepData` with equal-length arrays.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from hwtest_nanovna.errors import CommandFailedError, NoDataError, OutOfRangeError, TransportError
from hwtest_nanovna.types import HardwareInfo, SweepData

if TYPE_CHECKING:
    from hwtest_nanovna.channel import CommandChannel

logger = logging.getLogger(__name__)

S11_PORT = 0
S21_PORT = 1

# Marks a command the firmware did not understand
ERROR_MARKER = "?"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def validate_sweep(info: HardwareInfo, start_hz: int, stop_hz: int, points: int) -> None:
    """Check a sweep request against the hardware limits.

    Bounds are checked in the order start, stop, points; the first violation
    is reported.

    Raises:
        OutOfRangeError: If a parameter is outside the limits of ``info``.
    """
    name = info.variant.display_name
    freq_range = info.frequency_range
    if start_hz < freq_range.min_hz:
        raise OutOfRangeError(
            "start",
            start_hz,
            freq_range.min_hz,
            f"start frequency {start_hz} Hz is below minimum {freq_range.min_hz:g} Hz for {name}",
        )
    if stop_hz > freq_range.max_hz:
        raise OutOfRangeError(
            "stop",
            stop_hz,
            freq_range.max_hz,
            f"stop frequency {stop_hz} Hz is above maximum {freq_range.max_hz:g} Hz for {name}",
        )
    if points > info.max_sweep_points:
        raise OutOfRangeError(
            "points",
            points,
            info.max_sweep_points,
            f"requested {points} points exceeds maximum {info.max_sweep_points} for {name}",
        )


def fallback_commands(info: HardwareInfo, start_hz: int, stop_hz: int, points: int) -> list[str]:
    """Return the per-parameter commands tried when the sweep command fails."""
    prefix = "sweep " if info.variant.is_v2_family else ""
    return [
        f"{prefix}start {start_hz}",
        f"{prefix}stop {stop_hz}",
        f"{prefix}points {points}",
    ]


def configure_sweep(
    channel: CommandChannel,
    info: HardwareInfo,
    start_hz: int,
    stop_hz: int,
    points: int,
) -> None:
    """Validate and apply sweep settings.

    Every fallback command is sent; the configuration succeeds if the
    firmware accepted at least one of them.

    Args:
        channel: Channel to the device.
        info: Capability entry of the active variant.
        start_hz: Sweep start frequency in Hz.
        stop_hz: Sweep stop frequency in Hz.
        points: Number of sweep points.

    Raises:
        OutOfRangeError: If a parameter violates the hardware limits.
        CommandFailedError: If the sweep command and all fallbacks failed.
        NotConnectedError: If the channel has no transport.
    """
    validate_sweep(info, start_hz, stop_hz, points)

    command = info.command_set.format_sweep(start_hz, stop_hz, points)
    try:
        channel.exchange(command)
        return
    except TransportError as exc:
        primary_error = exc
        logger.warning("Sweep command %r failed (%s), trying fallback commands", command, exc)

    accepted = 0
    for fallback in fallback_commands(info, start_hz, stop_hz, points):
        try:
            channel.exchange(fallback)
        except TransportError as exc:
            logger.warning("Fallback command %r failed: %s", fallback, exc)
            continue
        accepted += 1

    if not accepted:
        raise CommandFailedError(command, primary_error) from primary_error


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _is_noise(line: str, prompt: str) -> bool:
    return not line or prompt in line or ERROR_MARKER in line


def parse_frequencies(text: str, command: str, prompt: str) -> list[float]:
    """Parse a frequency list response, one value per line.

    Blank lines, the command echo, prompt lines, lines carrying the ``?``
    error marker and unparseable lines are skipped.
    """
    frequencies: list[float] = []
    for raw in text.split("\n"):
        line = raw.strip()
        if _is_noise(line, prompt) or line == command:
            continue
        try:
            frequencies.append(float(line))
        except ValueError:
            continue
    return frequencies


def parse_samples(text: str, token: str, prompt: str) -> list[complex]:
    """Parse a data response into complex samples.

    Each retained line must hold at least two numbers, read as the real and
    imaginary parts. Lines starting with ``token`` (the command echo) are
    skipped along with the noise skipped by :func:`parse_frequencies`.
    """
    samples: list[complex] = []
    for raw in text.split("\n"):
        line = raw.strip()
        if _is_noise(line, prompt) or line.startswith(token):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        try:
            samples.append(complex(float(parts[0]), float(parts[1])))
        except ValueError:
            continue
    return samples


def reconcile(
    frequencies: list[float],
    s11: list[complex],
    s21: list[complex],
) -> SweepData:
    """Align the three sample lists to a common length.

    S21 is zero-padded to the S11 length, then all three are cut to the
    shorter of frequencies and S11 (S21 padded again if still short).

    Raises:
        NoDataError: If there are no frequencies or no S11 samples.
    """
    s21 = s21 + [0j] * (len(s11) - len(s21))

    if not frequencies or not s11:
        raise NoDataError(
            f"no valid measurement data received "
            f"({len(frequencies)} frequencies, {len(s11)} S11 samples)"
        )

    length = min(len(frequencies), len(s11))
    s21 = s21[:length] + [0j] * (length - len(s21))
    return SweepData(
        frequencies=np.array(frequencies[:length], dtype=np.float64),
        s11=np.array(s11[:length], dtype=np.complex128),
        s21=np.array(s21, dtype=np.complex128),
    )


# ---------------------------------------------------------------------------
# Acquisition
# ---------------------------------------------------------------------------


def run_sweep(channel: CommandChannel, info: HardwareInfo) -> SweepData:
    """Read frequencies, S11 and (where supported) S21 from the device.

    A failed S21 query is recovered by returning zero S21 samples.

    Args:
        channel: Channel to the device.
        info: Capability entry of the active variant.

    Returns:
        Sweep data with equal-length arrays.

    Raises:
        NoDataError: If no frequencies or no S11 samples were parsed.
        NotConnectedError: If the channel has no transport.
        TransportError: If the frequency or S11 query fails.
    """
    commands = info.command_set
    prompt = commands.prompt
    token = commands.data_token

    freq_text = channel.exchange(commands.frequencies)
    frequencies = parse_frequencies(freq_text, commands.frequencies, prompt)

    s11_text = channel.exchange(commands.format_data(S11_PORT))
    s11 = parse_samples(s11_text, token, prompt)

    s21: list[complex] = []
    if info.capabilities.has_s21 and info.is_port_supported("S21"):
        try:
            s21_text = channel.exchange(commands.format_data(S21_PORT))
        except TransportError as exc:
            logger.warning("S21 query failed, substituting zeros: %s", exc)
            s21 = [0j] * len(s11)
        else:
            s21 = parse_samples(s21_text, token, prompt)

    data = reconcile(frequencies, s11, s21)
    logger.debug(
        "Sweep parsed: %d frequencies, %d S11, %d S21 -> %d points",
        len(frequencies),
        len(s11),
        len(s21),
        len(data),
    )
    return data
