"""Hardware variant detection.

Detection sends a bare carriage return, looks at the prompt the firmware
prints back, and refines the guess with the text of the ``info`` command.
All heuristics live in :func:`classify` so firmware quirks can be patched in
one place.

Rules, checked in order (``info`` matched case-insensitively):

1. probe starts with ``"ch> "``: V1, or TinySA / LiteVNA by info text.
2. probe starts with ``"\\r\\nch> "`` or ``"\\r\\n?\\r\\nch> "``: NanoVNA-H,
   or V1 if info says ``"nanovna v1"``.
3. probe starts with ``"2"`` or contains ``"2>"``: V2, refined to Plus4,
   Plus or SAA2. ``"plus4"`` is checked before ``"plus"``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hwtest_nanovna.errors import TransportError, UnrecognizedDeviceError
from hwtest_nanovna.types import HardwareVariant

if TYPE_CHECKING:
    from hwtest_nanovna.channel import CommandChannel

logger = logging.getLogger(__name__)

INFO_COMMAND = "info"

_CH_PROMPT = "ch> "
_H_PROMPTS = ("\r\nch> ", "\r\n?\r\nch> ")
_V2_PREFIX = "2"
_V2_PROMPT = "2>"

# (substring, variant) pairs; first match wins
_CH_REFINEMENTS = (
    ("tinysa", HardwareVariant.TINYSA),
    ("litevna", HardwareVariant.LITEVNA),
)
_H_REFINEMENTS = (("nanovna v1", HardwareVariant.V1),)
_V2_REFINEMENTS = (
    ("plus4", HardwareVariant.V2_PLUS4),
    ("plus", HardwareVariant.V2_PLUS),
    ("saa2", HardwareVariant.SAA2),
)


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of a successful detection.

    Attributes:
        variant: The classified hardware variant.
        version: Firmware family label (``"v1"``, ``"vh"`` or ``"v2"``).
        probe: Raw text returned for the bare terminator.
        info: Text of the ``info`` query, empty if it failed.
    """

    variant: HardwareVariant
    version: str
    probe: str
    info: str


def _refine(
    base: HardwareVariant,
    info: str,
    refinements: tuple[tuple[str, HardwareVariant], ...],
) -> HardwareVariant:
    for needle, variant in refinements:
        if needle in info:
            return variant
    return base


def classify(probe: str, info: str) -> tuple[HardwareVariant, str]:
    """Classify the attached hardware from probe and info text.

    Args:
        probe: Raw reply to a bare carriage return.
        info: Reply to the ``info`` command (may be empty).

    Returns:
        ``(variant, version_label)``; ``(UNKNOWN, "unknown")`` if no rule matched.
    """
    info_lower = info.lower()

    if probe.startswith(_CH_PROMPT):
        return _refine(HardwareVariant.V1, info_lower, _CH_REFINEMENTS), "v1"
    if probe.startswith(_H_PROMPTS):
        return _refine(HardwareVariant.VH, info_lower, _H_REFINEMENTS), "vh"
    if probe.startswith(_V2_PREFIX) or _V2_PROMPT in probe:
        return _refine(HardwareVariant.V2, info_lower, _V2_REFINEMENTS), "v2"
    return HardwareVariant.UNKNOWN, "unknown"


def detect_variant(channel: CommandChannel) -> DetectionResult:
    """Probe the device behind ``channel`` and classify it.

    A failing ``info`` query is tolerated and treated as empty text.

    Args:
        channel: Channel with an open transport.

    Returns:
        The detection result.

    Raises:
        NotConnectedError: If the channel has no transport.
        TransportError: If the probe itself fails.
        UnrecognizedDeviceError: If no rule matched the probe.
    """
    probe = channel.probe()

    try:
        info = channel.exchange(INFO_COMMAND)
    except TransportError as exc:
        logger.debug("Info query during detection failed: %s", exc)
        info = ""

    variant, version = classify(probe, info)
    if variant is HardwareVariant.UNKNOWN:
        raise UnrecognizedDeviceError(probe)

    logger.info("Detected %s (firmware family %s)", variant.display_name, version)
    return DetectionResult(variant=variant, version=version, probe=probe, info=info)
