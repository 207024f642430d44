"""Parsing of the free-form ``info`` command output."""

from __future__ import annotations

from hwtest_nanovna.types import DeviceInfo, HardwareVariant

_SERIAL_PREFIX = "Serial:"


def _parse_v2_line(line: str, model: str, firmware: str) -> tuple[str, str]:
    lower = line.lower()
    if "nanovna" in lower or "saa2" in lower:
        model = line
    if ("firmware" in lower or "version" in lower) and ":" in line:
        firmware = line.split(":", 1)[1].strip()
    return model, firmware


def parse_device_info(text: str, variant: HardwareVariant, command: str, prompt: str) -> DeviceInfo:
    """Extract model, firmware and serial number from an ``info`` response.

    V2-family firmware prints labelled lines (``Firmware: ...``); the older
    shell firmwares print the model first and a ``v``-prefixed version token
    somewhere after it.

    Args:
        text: Raw response text.
        variant: Active hardware variant, which selects the heuristics.
        command: The info command, to skip its echo.
        prompt: Prompt marker, to skip prompt lines.

    Returns:
        Best-effort device info; the model falls back to
        ``"<variant> (detected)"``.
    """
    default_model = variant.display_name
    model = ""
    firmware = ""
    serial_number = ""

    for raw in text.split("\n"):
        line = raw.strip()
        if not line or line == command or prompt in line:
            continue

        if variant.is_v2_family:
            model, firmware = _parse_v2_line(line, model, firmware)
            continue

        # First retained line carries the model
        if not model:
            model = line

        if line.lower().startswith("serial"):
            serial_number = line.removeprefix(_SERIAL_PREFIX).strip()

        if not firmware:
            firmware = next(
                (token for token in line.split() if token.startswith("v") and len(token) > 1),
                "",
            )

    if not model:
        model = f"{default_model} (detected)"

    return DeviceInfo(model=model, firmware=firmware, serial_number=serial_number)
