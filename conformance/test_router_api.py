"""Router API conformance tests.

Verifies the externally observable guarantees of the client: the length
codec, sentence framing, record grouping, login failure handling, release
of the connection on every outcome, and request validation at the HTTP
boundary.
"""
from __future__ import annotations

import asyncio
import json
import random

import pytest

from routeros_netwatch.client.executor import CommandExecutor
from routeros_netwatch.client.session import RouterSession
from routeros_netwatch.core.config import RouterClientConfig
from routeros_netwatch.core.errors import (
    AuthError,
    ConnectionClosed,
    ConnectionTimeout,
    FramingError,
    NetwatchError,
    ProtocolError,
    RouterConnectionError,
    SessionStateError,
)
from routeros_netwatch.core.types import NetwatchEntry, NetwatchRequest, SessionState
from routeros_netwatch.http import create_netwatch_handler
from routeros_netwatch.netwatch import fetch_netwatch
from routeros_netwatch.testing import RecordingWriter, ScriptedRouter, encode_sentence
from routeros_netwatch.wire.framing import SentenceReader, SentenceWriter
from routeros_netwatch.wire.length import decode_length, encode_length
from routeros_netwatch.wire.reply import collect_records

# ===================================================================
# Length codec
# ===================================================================

_BOUNDARIES = [0x00, 0x7F, 0x80, 0x3FFF, 0x4000, 0x1FFFFF, 0x200000, 0xFFFFFFF]


def _expected_size(n: int) -> int:
    if n < 0x80:
        return 1
    if n < 0x4000:
        return 2
    if n < 0x200000:
        return 3
    if n < 0x10000000:
        return 4
    return 5


def _sample_lengths() -> list[int]:
    rng = random.Random(8728)
    sample = set(_BOUNDARIES)
    for low, high in [(0, 0x80), (0x80, 0x4000), (0x4000, 0x200000), (0x200000, 0x10000000)]:
        sample.update(rng.randrange(low, high) for _ in range(250))
    return sorted(sample)


class TestLengthCodec:
    """Every length in [0, 0x10000000) round-trips with the minimal size."""

    async def test_MUST_round_trip(self) -> None:
        lengths = _sample_lengths()
        reader = asyncio.StreamReader()
        reader.feed_data(b"".join(encode_length(n) for n in lengths))
        reader.feed_eof()

        decoded = [await decode_length(reader) for _ in lengths]

        assert decoded == lengths
        assert await reader.read() == b""

    def test_MUST_use_minimal_byte_count(self) -> None:
        for n in _sample_lengths():
            assert len(encode_length(n)) == _expected_size(n), hex(n)

    @pytest.mark.parametrize("first", [0xF1, 0xF8, 0xFF])
    async def test_MUST_reject_reserved_prefix(self, first: int) -> None:
        reader = asyncio.StreamReader()
        reader.feed_data(bytes([first, 0, 0, 0, 0]))
        reader.feed_eof()

        with pytest.raises(FramingError):
            await decode_length(reader)


# ===================================================================
# Framing
# ===================================================================

class TestFraming:
    """Writing then reading an arbitrary word sequence reproduces it."""

    async def test_MUST_reproduce_words_including_empty(self) -> None:
        words = ["/login", "", "=name=admin", "=comment=" + "ü" * 300, "", "!done", "x" * 20000]
        writer = RecordingWriter()
        sentence_writer = SentenceWriter(writer)
        for word in words:
            await sentence_writer.write_word(word)

        reader = asyncio.StreamReader()
        reader.feed_data(bytes(writer.buffer))
        reader.feed_eof()
        sentence_reader = SentenceReader(reader)

        assert [await sentence_reader.read_word() for _ in words] == words

    async def test_MUST_treat_empty_word_as_only_terminator(self) -> None:
        reader = asyncio.StreamReader()
        reader.feed_data(encode_sentence(["!done", "=message=trailing"]))
        reader.feed_eof()
        assert await SentenceReader(reader).read_sentence() == ["!done", "=message=trailing"]


# ===================================================================
# Record grouping
# ===================================================================

class TestRecordGrouping:
    """Replies group into records in device order."""

    def test_MUST_group_records_in_order(self) -> None:
        words = ["!re", "=name=R1", "=status=up", "!re", "=name=R2", "=status=down", "!done"]
        assert collect_records(words) == [
            {"name": "R1", "status": "up"},
            {"name": "R2", "status": "down"},
        ]

    def test_MUST_return_empty_list_for_done_only(self) -> None:
        assert collect_records(["!done"]) == []

    async def test_MUST_preserve_order_to_the_boundary(
        self,
        netwatch_router: ScriptedRouter,
        config: RouterClientConfig,
        request_body: bytes,
    ) -> None:
        async def fetcher(request: NetwatchRequest) -> list[NetwatchEntry]:
            return await fetch_netwatch(request, config=config, opener=netwatch_router)

        handler = create_netwatch_handler(config, fetcher=fetcher)
        status, _, body = await handler("POST", {}, request_body)

        assert status == 200
        assert [entry["name"] for entry in json.loads(body)["data"]] == ["R1", "R2"]


# ===================================================================
# Failed login
# ===================================================================

class TestFailedLogin:
    """A rejected login raises AuthError and leaves the session closed."""

    async def test_MUST_raise_auth_error_with_router_message(
        self,
        rejecting_router: ScriptedRouter,
        config: RouterClientConfig,
    ) -> None:
        session = RouterSession("192.168.88.1", config=config, opener=rejecting_router)

        with pytest.raises(AuthError) as excinfo:
            await session.connect("admin", "wrong")

        assert excinfo.value.message == "invalid user name or password"
        assert session.state is SessionState.CLOSED
        assert rejecting_router.close_calls == 1


# ===================================================================
# Resource safety
# ===================================================================

_OUTCOMES = {
    "success": ([["!done"], ["!re", "=host=a"], ["!done"]], b"", True, None, 1),
    "auth_error": ([["!trap", "=message=denied"]], b"", True, AuthError, 1),
    "login_eof": ([], b"", True, AuthError, 1),
    "protocol_error": ([["!done"], ["!trap", "=message=no such command"]], b"", True, ProtocolError, 1),
    "framing_error": ([["!done"]], b"\xff", True, FramingError, 1),
    "drop_mid_read": ([["!done"], ["!re", "=host=a"]], b"\x10=ho", True, FramingError, 1),
    "eof_mid_reply": ([["!done"], ["!re", "=host=a"]], b"", True, ConnectionClosed, 1),
    "read_timeout": ([["!done"]], b"", False, ConnectionTimeout, 1),
    "second_command": ([["!done"], ["!done"], ["!done"]], b"", True, SessionStateError, 2),
}


class TestResourceSafety:
    """Exactly one close of the connection on every outcome."""

    @pytest.mark.parametrize("outcome", sorted(_OUTCOMES))
    async def test_MUST_close_connection_exactly_once(
        self,
        outcome: str,
        config: RouterClientConfig,
    ) -> None:
        replies, trailer, eof, expected, commands = _OUTCOMES[outcome]
        router = ScriptedRouter(replies, trailer=trailer, eof=eof)

        async def poll() -> None:
            async with RouterSession("192.168.88.1", config=config, opener=router) as session:
                await session.connect("admin", "secret")
                for _ in range(commands):
                    await CommandExecutor(session).run("/tool/netwatch/print")

        if expected is None:
            await poll()
        else:
            with pytest.raises(expected):
                await poll()

        assert len(router.writers) == 1
        assert router.close_calls == 1

    async def test_MUST_not_close_what_was_never_opened(self, config: RouterClientConfig) -> None:
        router = ScriptedRouter(error=ConnectionRefusedError(111, "Connection refused"))

        with pytest.raises(RouterConnectionError):
            async with RouterSession("192.168.88.1", config=config, opener=router) as session:
                await session.connect("admin", "secret")

        assert session.state is SessionState.CLOSED
        assert router.connections == [("192.168.88.1", 8728)]
        assert router.writers == []
        assert router.close_calls == 0

    async def test_MUST_close_connection_on_cancellation(self, config: RouterClientConfig) -> None:
        router = ScriptedRouter([["!done"]], eof=False)
        slow = config.model_copy(update={"read_timeout": 30.0})

        async def poll() -> None:
            async with RouterSession("192.168.88.1", config=slow, opener=router) as session:
                await session.connect("admin", "secret")
                await CommandExecutor(session).run("/tool/netwatch/print")

        task = asyncio.ensure_future(poll())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert router.close_calls == 1


# ===================================================================
# Boundary mapping
# ===================================================================

class TestBoundaryMapping:
    """Invalid requests are rejected with 400 before any connection."""

    @pytest.mark.parametrize(
        "body",
        [
            b"{not json",
            json.dumps({"host": "192.168.88.1", "username": "admin"}).encode(),
            json.dumps(["192.168.88.1", "admin", "secret"]).encode(),
        ],
    )
    async def test_MUST_reject_with_400(self, body: bytes, config: RouterClientConfig) -> None:
        router = ScriptedRouter([["!done"], ["!done"]])

        async def fetcher(request: NetwatchRequest) -> list[NetwatchEntry]:
            return await fetch_netwatch(request, config=config, opener=router)

        status, _, response = await create_netwatch_handler(config, fetcher=fetcher)("POST", {}, body)

        assert status == 400
        assert json.loads(response)["success"] is False
        assert router.connections == []

    async def test_MUST_map_core_errors_to_500(
        self,
        rejecting_router: ScriptedRouter,
        config: RouterClientConfig,
        request_body: bytes,
    ) -> None:
        async def fetcher(request: NetwatchRequest) -> list[NetwatchEntry]:
            return await fetch_netwatch(request, config=config, opener=rejecting_router)

        status, _, response = await create_netwatch_handler(config, fetcher=fetcher)(
            "POST", {}, request_body
        )
        assert status == 500
        assert json.loads(response) == {"success": False, "error": "invalid user name or password"}

    def test_MUST_use_500_for_every_core_error(self) -> None:
        for cls in (AuthError, ConnectionClosed, ConnectionTimeout, FramingError, ProtocolError):
            assert issubclass(cls, NetwatchError)
            assert cls.http_status == 500
