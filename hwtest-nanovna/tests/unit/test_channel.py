"""Tests for CommandChannel using a chunked transport."""

from __future__ import annotations

from collections import deque

import pytest

from hwtest_nanovna.channel import CommandChannel
from hwtest_nanovna.config import ChannelTiming
from hwtest_nanovna.errors import NotConnectedError, TransportError, TransportTimeoutError

FAST = ChannelTiming(response_grace=0.0, read_interval=0.0)

# ---------------------------------------------------------------------------
# Chunked transport
# ---------------------------------------------------------------------------


class ChunkTransport:
    """Transport that hands out pre-loaded read chunks one per read."""

    def __init__(self, chunks: list[bytes | Exception] | None = None) -> None:
        self.chunks: deque[bytes | Exception] = deque(chunks or [])
        self.written: list[bytes] = []
        self.discards = 0
        self.reads = 0
        self.closed = False

    def write(self, data: bytes) -> int:
        self.written.append(data)
        return len(data)

    def read(self, size: int) -> bytes:
        self.reads += 1
        if not self.chunks:
            raise TransportTimeoutError("timeout")
        chunk = self.chunks.popleft()
        if isinstance(chunk, Exception):
            raise chunk
        return chunk[:size]

    def discard_input(self) -> None:
        self.discards += 1

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# exchange
# ---------------------------------------------------------------------------


class TestExchange:
    """Tests for CommandChannel.exchange."""

    def test_writes_command_with_carriage_return(self) -> None:
        transport = ChunkTransport([b"info\r\nNanoVNA\r\nch> "])
        channel = CommandChannel(transport, timing=FAST)
        channel.exchange("info")
        assert transport.written == [b"info\r"]
        assert transport.discards == 1

    def test_stops_at_prompt(self) -> None:
        transport = ChunkTransport([b"info\r\n", b"NanoVNA\r\nch> ", b"late"])
        channel = CommandChannel(transport, timing=FAST)
        response = channel.exchange("info")
        assert response == "info\r\nNanoVNA\r\nch> "
        assert transport.reads == 2
        assert list(transport.chunks) == [b"late"]

    def test_prompt_split_across_chunks(self) -> None:
        transport = ChunkTransport([b"data 0\r\n0.1 0.2\r\nc", b"h> "])
        channel = CommandChannel(transport, timing=FAST)
        assert channel.exchange("data 0").endswith("ch> ")

    def test_uses_configured_prompt(self) -> None:
        transport = ChunkTransport([b"freq\r\n", b"1000000\r\n2> ", b"extra"])
        channel = CommandChannel(transport, prompt="2>", timing=FAST)
        assert channel.exchange("freq") == "freq\r\n1000000\r\n2> "

    def test_read_budget_bounds_loop(self) -> None:
        chunks: list[bytes | Exception] = [b"x"] * 20
        transport = ChunkTransport(chunks)
        timing = ChannelTiming(response_grace=0.0, read_interval=0.0, max_read_attempts=3)
        channel = CommandChannel(transport, timing=timing)
        assert channel.exchange("noise") == "xxx"
        assert transport.reads == 3

    def test_timeout_after_data_returns_partial(self) -> None:
        transport = ChunkTransport([b"partial"])
        channel = CommandChannel(transport, timing=FAST)
        assert channel.exchange("info") == "partial"

    def test_timeout_without_data_raises(self) -> None:
        transport = ChunkTransport([])
        channel = CommandChannel(transport, timing=FAST)
        with pytest.raises(TransportTimeoutError):
            channel.exchange("info")

    def test_transport_error_propagates(self) -> None:
        transport = ChunkTransport([TransportError("unplugged")])
        channel = CommandChannel(transport, timing=FAST)
        with pytest.raises(TransportError, match="unplugged"):
            channel.exchange("info")

    def test_empty_chunk_keeps_reading(self) -> None:
        transport = ChunkTransport([b"", b"ok\r\nch> "])
        channel = CommandChannel(transport, timing=FAST)
        assert channel.exchange("ok") == "ok\r\nch> "

    def test_non_ascii_bytes_replaced(self) -> None:
        transport = ChunkTransport([b"\xffch> "])
        channel = CommandChannel(transport, timing=FAST)
        assert channel.exchange("x") == "\ufffdch> "

    def test_non_ascii_command_raises_transport_error(self) -> None:
        transport = ChunkTransport([b"ch> "])
        channel = CommandChannel(transport, timing=FAST)
        with pytest.raises(TransportError, match="not ASCII") as excinfo:
            channel.exchange("freq 1\u00b5")
        assert isinstance(excinfo.value.__cause__, UnicodeEncodeError)
        assert transport.written == []
        assert transport.discards == 0


# ---------------------------------------------------------------------------
# probe
# ---------------------------------------------------------------------------


class TestProbe:
    """Tests for CommandChannel.probe."""

    def test_sends_bare_terminator(self) -> None:
        transport = ChunkTransport([b"ch> "])
        channel = CommandChannel(transport, timing=FAST)
        assert channel.probe() == "ch> "
        assert transport.written == [b"\r"]

    def test_single_read(self) -> None:
        transport = ChunkTransport([b"\r\n", b"ch> "])
        channel = CommandChannel(transport, timing=FAST)
        assert channel.probe() == "\r\n"
        assert transport.reads == 1

    def test_silent_device_raises_timeout(self) -> None:
        channel = CommandChannel(ChunkTransport([]), timing=FAST)
        with pytest.raises(TransportTimeoutError):
            channel.probe()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    """Tests for attaching and detaching the transport."""

    def test_detach_returns_transport(self) -> None:
        transport = ChunkTransport()
        channel = CommandChannel(transport, timing=FAST)
        assert channel.is_attached
        assert channel.detach() is transport
        assert not channel.is_attached
        assert channel.detach() is None

    def test_attach_swaps_transport(self) -> None:
        first, second = ChunkTransport(), ChunkTransport([b"ok\r\nch> "])
        channel = CommandChannel(first, timing=FAST)
        assert channel.attach(second) is first
        assert channel.transport is second
        assert channel.exchange("ok") == "ok\r\nch> "
        assert first.written == []
        assert not first.closed

    def test_attach_reconnects_detached_channel(self) -> None:
        channel = CommandChannel(None, timing=FAST)
        assert channel.attach(ChunkTransport()) is None
        assert channel.is_attached

    def test_exchange_without_transport_raises(self) -> None:
        channel = CommandChannel(None, timing=FAST)
        with pytest.raises(NotConnectedError, match="device not open"):
            channel.exchange("info")

    def test_probe_without_transport_raises(self) -> None:
        channel = CommandChannel(None, timing=FAST)
        with pytest.raises(NotConnectedError):
            channel.probe()

    def test_default_timing(self) -> None:
        channel = CommandChannel(None)
        assert channel.timing == ChannelTiming()
        assert channel.prompt == "ch>"
