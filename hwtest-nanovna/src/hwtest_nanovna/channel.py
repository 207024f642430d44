"""Synchronous command/response channel for the NanoVNA text shell.

The firmware echoes each command, prints its answer and finishes with a
prompt marker (``ch>`` or ``2>``). :class:`CommandChannel` writes one command,
then accumulates output until the prompt shows up or the read budget runs
out.

Typical usage::

    channel = CommandChannel(transport, prompt="ch>")
    text = channel.exchange("info")
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from hwtest_nanovna.config import ChannelTiming
from hwtest_nanovna.errors import NotConnectedError, TransportError, TransportTimeoutError

if TYPE_CHECKING:
    from hwtest_nanovna.transport import SerialTransport

logger = logging.getLogger(__name__)

TERMINATOR = b"\r"
ENCODING = "ascii"


def _decode(chunk: bytes) -> str:
    return chunk.decode(ENCODING, errors="replace")


def _encode(command: str) -> bytes:
    try:
        return command.encode(ENCODING) + TERMINATOR
    except UnicodeEncodeError as exc:
        raise TransportError(f"Command {command!r} is not ASCII") from exc


class CommandChannel:
    """Request/response primitive over a :class:`SerialTransport`.

    Not safe for concurrent use; the firmware handles one command at a time.

    Args:
        transport: An open transport, or None for a detached channel.
        prompt: Prompt marker that ends a response.
        timing: Delays and read limits.
    """

    def __init__(
        self,
        transport: SerialTransport | None,
        *,
        prompt: str = "ch>",
        timing: ChannelTiming | None = None,
    ) -> None:
        self._transport = transport
        self.prompt = prompt
        self._timing = timing or ChannelTiming()

    # -- Properties ----------------------------------------------------------

    @property
    def transport(self) -> SerialTransport | None:
        """The underlying transport, None once detached."""
        return self._transport

    @property
    def timing(self) -> ChannelTiming:
        """The active timing configuration."""
        return self._timing

    @property
    def is_attached(self) -> bool:
        """Return True if a transport is present."""
        return self._transport is not None

    # -- Core operations -----------------------------------------------------

    def exchange(self, command: str) -> str:
        """Send ``command`` and return the accumulated response text.

        Stops reading once the accumulated text contains :attr:`prompt` or
        after ``max_read_attempts`` reads. Running out of attempts is not an
        error; whatever arrived is returned.

        Args:
            command: Command text without terminator.

        Returns:
            Raw response text, including echo and prompt.

        Raises:
            NotConnectedError: If no transport is attached.
            TransportTimeoutError: If the first read timed out with no data.
            TransportError: If ``command`` is not ASCII, or on other transport
                failures.
        """
        payload = _encode(command)
        transport = self._require_transport()
        transport.discard_input()
        transport.write(payload)
        logger.debug("TX %r", command)
        time.sleep(self._timing.response_grace)

        response = ""
        for _ in range(self._timing.max_read_attempts):
            try:
                chunk = transport.read(self._timing.read_size)
            except TransportTimeoutError:
                if response:
                    break
                raise
            if chunk:
                response += _decode(chunk)
                if self.prompt in response:
                    break
            time.sleep(self._timing.read_interval)

        logger.debug("RX %r", response)
        return response

    def probe(self) -> str:
        """Send a bare terminator and return the immediate reply of one read.

        Raises:
            NotConnectedError: If no transport is attached.
            TransportTimeoutError: If the device did not answer.
        """
        transport = self._require_transport()
        transport.discard_input()
        transport.write(TERMINATOR)
        time.sleep(self._timing.response_grace)
        response = _decode(transport.read(self._timing.read_size))
        logger.debug("Probe RX %r", response)
        return response

    # -- Lifecycle -----------------------------------------------------------

    def attach(self, transport: SerialTransport) -> SerialTransport | None:
        """Use ``transport`` from now on and return the previous one."""
        previous, self._transport = self._transport, transport
        return previous

    def detach(self) -> SerialTransport | None:
        """Forget the transport and return it; later exchanges raise."""
        transport, self._transport = self._transport, None
        return transport

    # -- Private helpers -----------------------------------------------------

    def _require_transport(self) -> SerialTransport:
        if self._transport is None:
            raise NotConnectedError()
        return self._transport
