"""Serial transport for NanoVNA instruments.

This module defines the :class:`SerialTransport` protocol consumed by the
command channel, a pyserial-backed implementation, the port opener and the
port enumerator.

The ``serial`` package (pyserial) is imported lazily so the rest of
hwtest-nanovna, including the emulator, works without it installed.

Implementations include:
- :class:`PySerialTransport`: pyserial-backed transport for real hardware
- :class:`hwtest_nanovna.emulator.NanoVnaEmulator`: in-process fake firmware
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from hwtest_nanovna.config import SerialConfig
from hwtest_nanovna.errors import TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)


class SerialTransport(Protocol):
    """Protocol for a duplex byte channel to the instrument.

    Any class implementing ``write()``, ``read()``, ``discard_input()`` and
    ``close()`` with these signatures is a valid transport.
    """

    def write(self, data: bytes) -> int:
        """Write bytes to the instrument.

        Returns:
            Number of bytes written.
        """
        ...

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes.

        Raises:
            TransportTimeoutError: If no byte arrived within the read timeout.
        """
        ...

    def discard_input(self) -> None:
        """Drop any bytes already received but not yet read."""
        ...

    def close(self) -> None:
        """Close the transport and release resources."""
        ...


def _import_serial() -> Any:
    try:
        import serial  # type: ignore[import-untyped]  # pylint: disable=import-outside-toplevel
    except ImportError as exc:
        raise TransportError(
            "pyserial library is not installed. Install with: pip install pyserial"
        ) from exc
    return serial


class PySerialTransport:
    """Serial transport backed by pyserial.

    Attributes:
        port: The serial port name (``"/dev/ttyACM0"``, ``"COM3"``, ...).
        config: Line settings applied on open.
        is_open: Whether the port is currently open.

    Args:
        port: Serial port name.
        config: Line settings. Defaults to :class:`SerialConfig` defaults.

    Example:
        >>> transport = PySerialTransport("/dev/ttyACM0")
        >>> transport.open()
        >>> transport.write(b"info\\r")
        >>> print(transport.read(1024))
        >>> transport.close()
    """

    def __init__(self, port: str, config: SerialConfig | None = None) -> None:
        self._port = port
        self._config = config or SerialConfig()
        self._serial: Any = None
        self._module: Any = None

    # -- Properties ----------------------------------------------------------

    @property
    def port(self) -> str:
        """The serial port name."""
        return self._port

    @property
    def config(self) -> SerialConfig:
        """The line settings."""
        return self._config

    @property
    def is_open(self) -> bool:
        """Return True if the port is currently open."""
        return self._serial is not None

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the serial port.

        Raises:
            TransportError: If pyserial is missing or the port cannot be opened.
        """
        if self._serial is not None:
            return

        serial = _import_serial()
        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._config.baudrate,
                bytesize=self._config.bytesize,
                parity=self._config.parity,
                stopbits=self._config.stopbits,
                timeout=self._config.timeout,
            )
        except (serial.SerialException, ValueError) as exc:
            self._serial = None
            raise TransportError(f"Failed to open serial port {self._port!r}: {exc}") from exc
        self._module = serial
        logger.debug("Opened %s", self._config.describe(self._port))

    def close(self) -> None:
        """Close the serial port. Safe to call multiple times."""
        if self._serial is not None:
            try:
                self._serial.close()
            finally:
                self._serial = None
                logger.debug("Closed serial port %s", self._port)

    # -- Transport interface -------------------------------------------------

    def write(self, data: bytes) -> int:
        """Write bytes to the port.

        Raises:
            TransportError: If the port is not open or the write fails.
        """
        port = self._require_open()
        try:
            written: int = port.write(data)
        except self._module.SerialException as exc:
            raise TransportError(f"Failed to write to {self._port!r}: {exc}") from exc
        return written

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes.

        Waits at most the configured timeout for the first byte, then takes
        only what is already buffered, so a short reply returns as soon as it
        arrives.

        Raises:
            TransportTimeoutError: If nothing arrived before the timeout.
            TransportError: If the port is not open or the read fails.
        """
        port = self._require_open()
        try:
            data: bytes = port.read(1)
            if not data:
                raise TransportTimeoutError(f"Read timeout on {self._port!r}")
            pending = min(size - 1, port.in_waiting)
            if pending > 0:
                data += port.read(pending)
        except self._module.SerialException as exc:
            raise TransportError(f"Failed to read from {self._port!r}: {exc}") from exc
        return data

    def discard_input(self) -> None:
        """Drop buffered input bytes."""
        port = self._require_open()
        try:
            port.reset_input_buffer()
        except self._module.SerialException as exc:
            raise TransportError(f"Failed to flush {self._port!r}: {exc}") from exc

    # -- Private helpers -----------------------------------------------------

    def _require_open(self) -> Any:
        if self._serial is None:
            raise TransportError(f"Serial port {self._port!r} is not open")
        return self._serial


def open_serial(port: str, config: SerialConfig | None = None) -> PySerialTransport:
    """Open ``port`` and return a ready transport.

    Standard transport opener used by :class:`NanoVnaDevice`.

    Args:
        port: Serial port name.
        config: Line settings; defaults to 9600 baud, 8N1, 5 s read timeout.

    Returns:
        An open :class:`PySerialTransport`.

    Raises:
        TransportError: If the port cannot be opened.
    """
    transport = PySerialTransport(port, config)
    transport.open()
    return transport


def list_ports() -> list[str]:
    """List serial port device names present on this host.

    Returns:
        Port names in the order reported by pyserial.

    Raises:
        TransportError: If pyserial is not installed.
    """
    _import_serial()
    from serial.tools import list_ports as serial_list_ports  # type: ignore[import-untyped]  # pylint: disable=import-outside-toplevel

    return [p.device for p in serial_list_ports.comports()]
