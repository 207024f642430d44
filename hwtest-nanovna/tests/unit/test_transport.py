"""Tests for PySerialTransport with a mocked pyserial module."""

from __future__ import annotations

import sys
import time
from unittest.mock import MagicMock, call, patch

import pytest

from hwtest_nanovna.config import SerialConfig
from hwtest_nanovna.errors import TransportError, TransportTimeoutError
from hwtest_nanovna.transport import PySerialTransport, list_ports, open_serial


class _SerialException(Exception):
    """Stand-in for serial.SerialException."""


def _make_mock_serial() -> MagicMock:
    """Create a mock serial module with Serial and tools.list_ports."""
    mock_serial = MagicMock()
    mock_serial.SerialException = _SerialException
    mock_port = MagicMock()
    mock_serial.Serial.return_value = mock_port
    return mock_serial


def _modules(mock_serial: MagicMock) -> dict[str, MagicMock]:
    return {
        "serial": mock_serial,
        "serial.tools": mock_serial.tools,
        "serial.tools.list_ports": mock_serial.tools.list_ports,
    }


# ---------------------------------------------------------------------------
# open / close lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    """Tests for open/close lifecycle."""

    def test_open_applies_config(self) -> None:
        mock_serial = _make_mock_serial()
        config = SerialConfig(baudrate=115200, timeout=2.0)
        transport = PySerialTransport("/dev/ttyACM0", config)
        with patch.dict(sys.modules, _modules(mock_serial)):
            transport.open()
        assert transport.is_open
        mock_serial.Serial.assert_called_once_with(
            port="/dev/ttyACM0",
            baudrate=115200,
            bytesize=8,
            parity="N",
            stopbits=1,
            timeout=2.0,
        )

    def test_open_idempotent(self) -> None:
        mock_serial = _make_mock_serial()
        transport = PySerialTransport("/dev/ttyACM0")
        with patch.dict(sys.modules, _modules(mock_serial)):
            transport.open()
            transport.open()
        mock_serial.Serial.assert_called_once()

    def test_open_failure_raises_transport_error(self) -> None:
        mock_serial = _make_mock_serial()
        mock_serial.Serial.side_effect = _SerialException("no such port")
        transport = PySerialTransport("/dev/ttyACM9")
        with patch.dict(sys.modules, _modules(mock_serial)):
            with pytest.raises(TransportError, match="no such port"):
                transport.open()
        assert not transport.is_open

    def test_missing_pyserial_raises(self) -> None:
        transport = PySerialTransport("/dev/ttyACM0")
        with patch.dict(sys.modules, {"serial": None}):
            with pytest.raises(TransportError, match="pyserial"):
                transport.open()

    def test_close(self) -> None:
        mock_serial = _make_mock_serial()
        transport = PySerialTransport("/dev/ttyACM0")
        with patch.dict(sys.modules, _modules(mock_serial)):
            transport.open()
        transport.close()
        transport.close()
        assert not transport.is_open
        mock_serial.Serial.return_value.close.assert_called_once()

    def test_open_serial_returns_open_transport(self) -> None:
        mock_serial = _make_mock_serial()
        with patch.dict(sys.modules, _modules(mock_serial)):
            transport = open_serial("COM3")
        assert transport.is_open
        assert transport.port == "COM3"
        assert transport.config == SerialConfig()


# ---------------------------------------------------------------------------
# I/O
# ---------------------------------------------------------------------------


class TestIo:
    """Tests for write/read/discard_input."""

    @pytest.fixture
    def opened(self) -> tuple[PySerialTransport, MagicMock]:
        mock_serial = _make_mock_serial()
        transport = PySerialTransport("/dev/ttyACM0")
        with patch.dict(sys.modules, _modules(mock_serial)):
            transport.open()
        return transport, mock_serial.Serial.return_value

    def test_write(self, opened: tuple[PySerialTransport, MagicMock]) -> None:
        transport, port = opened
        port.write.return_value = 5
        assert transport.write(b"info\r") == 5
        port.write.assert_called_once_with(b"info\r")

    def test_read(self, opened: tuple[PySerialTransport, MagicMock]) -> None:
        transport, port = opened
        port.read.side_effect = [b"c", b"h> "]
        port.in_waiting = 3
        assert transport.read(64) == b"ch> "
        assert port.read.call_args_list == [call(1), call(3)]

    def test_read_takes_only_buffered_bytes(
        self, opened: tuple[PySerialTransport, MagicMock]
    ) -> None:
        transport, port = opened
        port.read.side_effect = [b"c", b"h>"]
        port.in_waiting = 500
        assert transport.read(3) == b"ch>"
        assert port.read.call_args_list == [call(1), call(2)]

    def test_read_single_byte_when_nothing_pending(
        self, opened: tuple[PySerialTransport, MagicMock]
    ) -> None:
        transport, port = opened
        port.read.return_value = b"2"
        port.in_waiting = 0
        assert transport.read(64) == b"2"
        port.read.assert_called_once_with(1)

    def test_empty_read_is_timeout(self, opened: tuple[PySerialTransport, MagicMock]) -> None:
        transport, port = opened
        port.read.return_value = b""
        with pytest.raises(TransportTimeoutError):
            transport.read(64)
        port.read.assert_called_once_with(1)

    def test_read_serial_exception_wrapped(
        self, opened: tuple[PySerialTransport, MagicMock]
    ) -> None:
        transport, port = opened
        port.read.side_effect = _SerialException("device disconnected")
        with pytest.raises(TransportError, match="device disconnected"):
            transport.read(64)

    def test_serial_exception_wrapped(self, opened: tuple[PySerialTransport, MagicMock]) -> None:
        transport, port = opened
        port.write.side_effect = _SerialException("device reports readiness")
        with pytest.raises(TransportError, match="device reports readiness"):
            transport.write(b"x")

    def test_discard_input(self, opened: tuple[PySerialTransport, MagicMock]) -> None:
        transport, port = opened
        transport.discard_input()
        port.reset_input_buffer.assert_called_once()

    def test_io_when_closed_raises(self) -> None:
        transport = PySerialTransport("/dev/ttyACM0")
        with pytest.raises(TransportError, match="not open"):
            transport.write(b"x")
        with pytest.raises(TransportError, match="not open"):
            transport.read(1)


# ---------------------------------------------------------------------------
# pyserial loopback
# ---------------------------------------------------------------------------


class TestLoopback:
    """Tests against pyserial's ``loop://`` port, which echoes every write."""

    @staticmethod
    def _open_loop(timeout: float) -> PySerialTransport:
        serial = pytest.importorskip("serial")

        def loop_port(**kwargs: object) -> object:
            return serial.serial_for_url("loop://", timeout=kwargs["timeout"])

        transport = PySerialTransport("loop://", SerialConfig(timeout=timeout))
        with patch.object(serial, "Serial", side_effect=loop_port):
            transport.open()
        return transport

    def test_short_reply_returns_before_timeout(self) -> None:
        transport = self._open_loop(timeout=2.0)
        try:
            transport.write(b"ch> ")
            started = time.monotonic()
            assert transport.read(1024) == b"ch> "
            assert time.monotonic() - started < 1.0
        finally:
            transport.close()

    def test_silent_port_times_out(self) -> None:
        transport = self._open_loop(timeout=0.05)
        try:
            with pytest.raises(TransportTimeoutError):
                transport.read(1024)
        finally:
            transport.close()


# ---------------------------------------------------------------------------
# list_ports
# ---------------------------------------------------------------------------


class TestListPorts:
    """Tests for list_ports."""

    def test_returns_device_names(self) -> None:
        mock_serial = _make_mock_serial()
        first, second = MagicMock(), MagicMock()
        first.device = "/dev/ttyACM0"
        second.device = "/dev/ttyUSB0"
        mock_serial.tools.list_ports.comports.return_value = [first, second]
        with patch.dict(sys.modules, _modules(mock_serial)):
            assert list_ports() == ["/dev/ttyACM0", "/dev/ttyUSB0"]

    def test_missing_pyserial_raises(self) -> None:
        with patch.dict(sys.modules, {"serial": None}):
            with pytest.raises(TransportError):
                list_ports()
