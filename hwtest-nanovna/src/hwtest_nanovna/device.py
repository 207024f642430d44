"""High-level NanoVNA device driver.

:class:`NanoVnaDevice` owns one transport and the per-connection
:class:`Session` (detected variant and its capability entry). The session
starts UNDETECTED with conservative defaults and moves to DETECTED after
:meth:`NanoVnaDevice.detect` or to FORCED after
:meth:`NanoVnaDevice.force_variant`.

Typical usage::

    from hwtest_nanovna import NanoVnaDevice

    with NanoVnaDevice.auto_connect() as vna:
        print(vna.hardware_info.variant.display_name)
        vna.configure_sweep(144_000_000, 148_000_000, 101)
        data = vna.run_sweep()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from types import TracebackType

from hwtest_nanovna import registry
from hwtest_nanovna.channel import CommandChannel
from hwtest_nanovna.config import DriverConfig, SerialConfig
from hwtest_nanovna.detection import detect_variant
from hwtest_nanovna.errors import (
    NanoVnaError,
    NoDeviceFoundError,
    NotConnectedError,
    StateError,
    UnrecognizedDeviceError,
)
from hwtest_nanovna.info import parse_device_info
from hwtest_nanovna.sweep import configure_sweep, run_sweep
from hwtest_nanovna.transport import SerialTransport, list_ports, open_serial
from hwtest_nanovna.types import (
    CalibrationData,
    DeviceInfo,
    FrequencyRange,
    HardwareCapabilities,
    HardwareInfo,
    HardwareVariant,
    SweepData,
)

logger = logging.getLogger(__name__)

TransportOpener = Callable[[str, SerialConfig], SerialTransport]


class SessionState(Enum):
    """How the session's variant was established."""

    UNDETECTED = "undetected"
    DETECTED = "detected"
    FORCED = "forced"


@dataclass(frozen=True)
class Session:
    """Per-connection hardware state.

    Sessions are immutable; transitions return a new instance.

    Attributes:
        state: How the variant was established.
        variant: Active hardware variant.
        version: Firmware family label.
        hardware_info: Capability entry for ``variant``.
    """

    state: SessionState
    variant: HardwareVariant
    version: str
    hardware_info: HardwareInfo

    @classmethod
    def initial(cls) -> Session:
        """Session before detection: unknown variant, conservative limits."""
        return cls(
            state=SessionState.UNDETECTED,
            variant=HardwareVariant.UNKNOWN,
            version="",
            hardware_info=registry.lookup(HardwareVariant.UNKNOWN),
        )

    def detected(self, variant: HardwareVariant, version: str) -> Session:
        """Transition to a detected variant."""
        return Session(SessionState.DETECTED, variant, version, registry.lookup(variant))

    def forced(self, variant: HardwareVariant) -> Session:
        """Transition to a caller-chosen variant, bypassing detection."""
        return Session(
            SessionState.FORCED, variant, variant.version_label, registry.lookup(variant)
        )


def _default_opener(port: str, config: SerialConfig) -> SerialTransport:
    return open_serial(port, config)


class NanoVnaDevice:
    """Driver for one connected NanoVNA-family instrument.

    Args:
        transport: An open transport.
        port: Name of the port the transport is attached to.
        config: Driver configuration (timing and serial settings).

    Example:
        >>> vna = NanoVnaDevice.open("/dev/ttyACM0")
        >>> vna.detect()
        'v1'
        >>> vna.get_info().model
        'NanoVNA-H'
        >>> vna.close()
    """

    def __init__(
        self,
        transport: SerialTransport,
        port: str = "",
        *,
        config: DriverConfig | None = None,
    ) -> None:
        self._port = port
        self._config = config or DriverConfig()
        self._session = Session.initial()
        self._channel = CommandChannel(
            transport,
            prompt=self._session.hardware_info.command_set.prompt,
            timing=self._config.timing,
        )

    # -- Factories -----------------------------------------------------------

    @classmethod
    def open(
        cls,
        port: str,
        config: DriverConfig | None = None,
        *,
        opener: TransportOpener | None = None,
    ) -> NanoVnaDevice:
        """Open ``port`` without detecting the variant.

        Args:
            port: Serial port name.
            config: Driver configuration.
            opener: Transport factory; defaults to :func:`open_serial`.

        Raises:
            TransportError: If the port cannot be opened.
        """
        config = config or DriverConfig()
        transport = (opener or _default_opener)(port, config.serial)
        logger.info("Opened NanoVNA port %s", port)
        return cls(transport, port, config=config)

    @classmethod
    def open_with_variant(
        cls,
        port: str,
        variant: HardwareVariant,
        config: DriverConfig | None = None,
        *,
        opener: TransportOpener | None = None,
    ) -> NanoVnaDevice:
        """Open ``port`` and force ``variant`` instead of detecting it."""
        device = cls.open(port, config, opener=opener)
        device.force_variant(variant)
        return device

    @classmethod
    def auto_connect(
        cls,
        ports: Iterable[str] | None = None,
        config: DriverConfig | None = None,
        *,
        opener: TransportOpener | None = None,
    ) -> NanoVnaDevice:
        """Find the first port with a detectable NanoVNA.

        Each candidate is opened and detected; ports that fail either step are
        closed and skipped.

        Args:
            ports: Candidate ports; defaults to :func:`list_ports`.
            config: Driver configuration.
            opener: Transport factory; defaults to :func:`open_serial`.

        Returns:
            A detected device.

        Raises:
            NoDeviceFoundError: If no candidate yielded a detected device.
        """
        candidates = tuple(list_ports() if ports is None else ports)
        for port in candidates:
            try:
                device = cls.open(port, config, opener=opener)
            except NanoVnaError as exc:
                logger.debug("Skipping %s: open failed: %s", port, exc)
                continue
            try:
                device.detect()
            except NanoVnaError as exc:
                logger.debug("Skipping %s: detection failed: %s", port, exc)
                device.close()
                continue
            return device
        raise NoDeviceFoundError(candidates)

    # -- Properties ----------------------------------------------------------

    @property
    def port(self) -> str:
        """Name of the connected port."""
        return self._port

    @property
    def is_open(self) -> bool:
        """Return True until :meth:`close` is called."""
        return self._channel.is_attached

    @property
    def session(self) -> Session:
        """The current session record."""
        return self._session

    @property
    def variant(self) -> HardwareVariant:
        """Active hardware variant."""
        return self._session.variant

    @property
    def version(self) -> str:
        """Firmware family label, empty before detection."""
        return self._session.version

    @property
    def hardware_info(self) -> HardwareInfo:
        """Capability entry of the active variant."""
        return self._session.hardware_info

    @property
    def frequency_range(self) -> FrequencyRange:
        return self._session.hardware_info.frequency_range

    @property
    def max_sweep_points(self) -> int:
        return self._session.hardware_info.max_sweep_points

    @property
    def supported_ports(self) -> tuple[str, ...]:
        return self._session.hardware_info.supported_ports

    @property
    def capabilities(self) -> HardwareCapabilities:
        return self._session.hardware_info.capabilities

    @property
    def channel(self) -> CommandChannel:
        """The command channel, for raw access."""
        return self._channel

    def is_port_supported(self, port: str) -> bool:
        """Return True if S-parameter ``port`` is measurable on this hardware."""
        return self._session.hardware_info.is_port_supported(port)

    def port_details(self) -> str:
        """Describe the port and its serial settings."""
        return self._config.serial.describe(self._port)

    def get_version(self) -> str:
        """Return the detected firmware family label.

        Raises:
            NotConnectedError: If the device is closed.
        """
        self._require_open()
        return self._session.version

    # -- Session transitions ---------------------------------------------------

    def detect(self) -> str:
        """Detect the attached hardware variant and load its capabilities.

        Returns:
            Firmware family label (``"v1"``, ``"vh"`` or ``"v2"``).

        Raises:
            NotConnectedError: If the device is closed.
            UnrecognizedDeviceError: If the probe matched no known variant; the
                session is reset to UNKNOWN first.
            TransportError: If the probe failed.
        """
        try:
            result = detect_variant(self._channel)
        except UnrecognizedDeviceError:
            self._apply(Session.initial())
            raise
        self._apply(self._session.detected(result.variant, result.version))
        return result.version

    def force_variant(self, variant: HardwareVariant) -> None:
        """Use ``variant`` without detection."""
        self._apply(self._session.forced(variant))
        logger.info("Forced hardware variant %s", variant.display_name)

    def require_detected(self) -> None:
        """Raise :class:`StateError` unless the variant is known.

        Raises:
            StateError: If neither detection nor a forced variant happened.
        """
        if self._session.state is SessionState.UNDETECTED:
            raise StateError("hardware variant not detected; call detect() first")

    # -- Operations ----------------------------------------------------------

    def send_command(self, command: str) -> str:
        """Send a raw command and return the raw response."""
        return self._channel.exchange(command)

    def configure_sweep(self, start_hz: int, stop_hz: int, points: int) -> None:
        """Set the sweep range and point count.

        Raises:
            OutOfRangeError: If a value exceeds the hardware limits.
            CommandFailedError: If the firmware rejected every command form.
            NotConnectedError: If the device is closed.
        """
        configure_sweep(self._channel, self.hardware_info, start_hz, stop_hz, points)

    def run_sweep(self) -> SweepData:
        """Fetch the current sweep data.

        Raises:
            NoDataError: If no frequency or S11 samples were parsed.
            NotConnectedError: If the device is closed.
        """
        return run_sweep(self._channel, self.hardware_info)

    def get_info(self) -> DeviceInfo:
        """Query model, firmware and serial number."""
        commands = self.hardware_info.command_set
        text = self._channel.exchange(commands.info)
        return parse_device_info(text, self.variant, commands.info, commands.prompt)

    # -- Calibration ---------------------------------------------------------
    # Calibration transfer is not implemented; these hooks succeed without
    # touching the device.

    def get_calibration(self) -> CalibrationData:
        """Return calibration data (always empty for now)."""
        self._require_open()
        return CalibrationData()

    def set_calibration(self, calibration: CalibrationData) -> None:
        """Apply calibration data (no-op for now)."""
        self._require_open()

    def save_calibration(self, slot: int) -> None:
        """Save calibration to device memory ``slot`` (no-op for now)."""
        self._require_open()

    def load_calibration(self, slot: int) -> None:
        """Load calibration from device memory ``slot`` (no-op for now)."""
        self._require_open()

    # -- Lifecycle -----------------------------------------------------------

    def replace_transport(self, transport: SerialTransport) -> SerialTransport:
        """Route later commands through ``transport`` and return the old one.

        The session is kept. The caller owns the returned transport and is
        responsible for closing it.

        Raises:
            NotConnectedError: If the device is closed.
        """
        previous = self._channel.transport
        if previous is None:
            raise NotConnectedError()
        self._channel.attach(transport)
        logger.info("Replaced transport on NanoVNA port %s", self._port)
        return previous

    def close(self) -> None:
        """Close the transport. Safe to call multiple times."""
        transport = self._channel.detach()
        if transport is not None:
            transport.close()
            logger.info("Closed NanoVNA port %s", self._port)

    def __enter__(self) -> NanoVnaDevice:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Private helpers -----------------------------------------------------

    def _apply(self, session: Session) -> None:
        self._require_open()
        self._session = session
        self._channel.prompt = session.hardware_info.command_set.prompt

    def _require_open(self) -> None:
        if not self._channel.is_attached:
            raise NotConnectedError()
