"""Exception types for hwtest-nanovna.

All driver exceptions inherit from :class:`NanoVnaError`, allowing callers to
catch every driver-specific failure with a single except clause.

Exception hierarchy:
    NanoVnaError (base)
    +-- NotConnectedError: Operation attempted without an open transport
    +-- OutOfRangeError: Sweep parameter outside the hardware limits
    +-- CommandFailedError: Every command form was rejected
    +-- NoDataError: A sweep produced no usable samples
    +-- UnrecognizedDeviceError: Detection matched no known variant
    +-- NoDeviceFoundError: Auto-connect exhausted all candidate ports
    +-- StateError: Session state precondition violated
    +-- ConfigError: Invalid driver configuration
    +-- TransportError: Serial I/O failures
        +-- TransportTimeoutError: Read returned nothing before the timeout
"""

from __future__ import annotations


class NanoVnaError(Exception):
    """Base exception for all hwtest-nanovna errors."""


class NotConnectedError(NanoVnaError):
    """Raised when an operation needs a transport but none is open."""

    def __init__(self, message: str = "device not open") -> None:
        super().__init__(message)


class OutOfRangeError(NanoVnaError):
    """Raised when a requested sweep parameter violates hardware limits.

    Attributes:
        parameter: Name of the offending parameter (``"start"``, ``"stop"``
            or ``"points"``).
        value: The requested value.
        limit: The bound that was violated.
    """

    def __init__(self, parameter: str, value: float, limit: float, message: str) -> None:
        self.parameter = parameter
        self.value = value
        self.limit = limit
        super().__init__(message)


class CommandFailedError(NanoVnaError):
    """Raised when the primary command and all fallbacks failed.

    Attributes:
        command: The primary command that was attempted first.
        original: The error raised by the primary command.
    """

    def __init__(self, command: str, original: BaseException) -> None:
        self.command = command
        self.original = original
        super().__init__(f"Command {command!r} and all fallback forms failed: {original}")


class NoDataError(NanoVnaError):
    """Raised when a sweep yields no parseable frequency or S11 samples."""


class UnrecognizedDeviceError(NanoVnaError):
    """Raised when the probe response matches no known hardware variant.

    Attributes:
        raw: The raw probe text that failed classification.
    """

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"Unrecognized response: {raw!r}")


class NoDeviceFoundError(NanoVnaError):
    """Raised when auto-connect could not detect a device on any port.

    Attributes:
        ports: The candidate ports that were tried.
    """

    def __init__(self, ports: tuple[str, ...]) -> None:
        self.ports = ports
        tried = ", ".join(ports) if ports else "(none)"
        super().__init__(f"No NanoVNA devices found on any serial port (tried: {tried})")


class StateError(NanoVnaError):
    """Raised when an operation requires a session state that is not reached."""


class ConfigError(NanoVnaError):
    """Raised for malformed or invalid driver configuration."""


class TransportError(NanoVnaError):
    """Raised when the underlying serial transport fails."""


class TransportTimeoutError(TransportError):
    """Raised when a read returns no data within the transport timeout."""
