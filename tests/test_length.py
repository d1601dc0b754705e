"""Tests for the length prefix codec.

Covers:

1. **Encoding** -- every branch of the table, minimal byte counts,
   out-of-range lengths.
2. **Stream decoding** -- consumption of exactly the prefix bytes,
   truncated prefixes, reserved control bytes, EOF.
3. **Buffer decoding** -- ``decode_length_bytes``.
"""
from __future__ import annotations

import asyncio

import pytest

from routeros_netwatch.core.errors import ConnectionClosed, FramingError
from routeros_netwatch.wire.length import (
    MAX_LENGTH,
    decode_length,
    decode_length_bytes,
    encode_length,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_stream_reader(data: bytes, *, eof: bool = True) -> asyncio.StreamReader:
    """Create an asyncio.StreamReader pre-filled with *data*."""
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


# =========================================================================
# Encoding
# =========================================================================


class TestEncodeLength:
    """Tests for encode_length."""

    @pytest.mark.parametrize(
        ("n", "expected"),
        [
            (0, b"\x00"),
            (0x01, b"\x01"),
            (0x7F, b"\x7f"),
            (0x80, b"\x80\x80"),
            (0x3FFF, b"\xbf\xff"),
            (0x4000, b"\xc0\x40\x00"),
            (0x1FFFFF, b"\xdf\xff\xff"),
            (0x200000, b"\xe0\x20\x00\x00"),
            (0xFFFFFFF, b"\xef\xff\xff\xff"),
            (0x10000000, b"\xf0\x10\x00\x00\x00"),
            (MAX_LENGTH, b"\xf0\xff\xff\xff\xff"),
        ],
    )
    def test_table_boundaries(self, n: int, expected: bytes) -> None:
        """Each range boundary encodes to the documented bytes."""
        assert encode_length(n) == expected

    @pytest.mark.parametrize(
        ("n", "size"),
        [(0x7F, 1), (0x80, 2), (0x3FFF, 2), (0x4000, 3), (0x1FFFFF, 3),
         (0x200000, 4), (0xFFFFFFF, 4), (0x10000000, 5)],
    )
    def test_minimal_byte_count(self, n: int, size: int) -> None:
        """The shortest form for the magnitude is always chosen."""
        assert len(encode_length(n)) == size

    def test_negative_length_rejected(self) -> None:
        with pytest.raises(FramingError):
            encode_length(-1)

    def test_oversized_length_rejected(self) -> None:
        with pytest.raises(FramingError):
            encode_length(MAX_LENGTH + 1)


# =========================================================================
# Stream decoding
# =========================================================================


class TestDecodeLength:
    """Tests for decode_length over an asyncio stream."""

    async def test_single_byte(self) -> None:
        reader = _make_stream_reader(b"\x05rest")
        assert await decode_length(reader) == 5
        assert await reader.read() == b"rest"

    async def test_consumes_only_prefix(self) -> None:
        """Bytes after the prefix are left on the stream."""
        reader = _make_stream_reader(b"\xc0\x40\x00\xaa\xbb")
        assert await decode_length(reader) == 0x4000
        assert await reader.read() == b"\xaa\xbb"

    async def test_two_byte_prefix(self) -> None:
        reader = _make_stream_reader(b"\x81\x00")
        assert await decode_length(reader) == 0x100

    async def test_four_byte_prefix(self) -> None:
        reader = _make_stream_reader(b"\xe1\x23\x45\x67")
        assert await decode_length(reader) == 0x1234567

    async def test_five_byte_prefix(self) -> None:
        reader = _make_stream_reader(b"\xf0\x12\x34\x56\x78")
        assert await decode_length(reader) == 0x12345678

    async def test_empty_stream_is_connection_closed(self) -> None:
        reader = _make_stream_reader(b"")
        with pytest.raises(ConnectionClosed):
            await decode_length(reader)

    @pytest.mark.parametrize("data", [b"\x80", b"\xc0\x01", b"\xe0\x00\x00", b"\xf0\x00\x00\x00"])
    async def test_truncated_prefix(self, data: bytes) -> None:
        """Stream ending before the continuation bytes is a FramingError."""
        reader = _make_stream_reader(data)
        with pytest.raises(FramingError, match="length prefix"):
            await decode_length(reader)

    @pytest.mark.parametrize("first", [0xF1, 0xF8, 0xFE, 0xFF])
    async def test_reserved_control_bytes_rejected(self, first: int) -> None:
        reader = _make_stream_reader(bytes((first, 0, 0, 0, 0)))
        with pytest.raises(FramingError, match="Invalid length prefix"):
            await decode_length(reader)


# =========================================================================
# Buffer decoding
# =========================================================================


class TestDecodeLengthBytes:
    """Tests for decode_length_bytes."""

    def test_returns_length_and_size(self) -> None:
        assert decode_length_bytes(b"\x80\x80xyz") == (0x80, 2)

    def test_empty_buffer(self) -> None:
        with pytest.raises(FramingError):
            decode_length_bytes(b"")

    def test_short_buffer(self) -> None:
        with pytest.raises(FramingError):
            decode_length_bytes(b"\xe0\x00")

    @pytest.mark.parametrize("n", [0, 1, 0x7F, 0x80, 0x3FFF, 0x4000, 0x1FFFFF, 0x200000, 0xFFFFFFF, 0x10000000])
    def test_agrees_with_encoder(self, n: int) -> None:
        encoded = encode_length(n)
        assert decode_length_bytes(encoded) == (n, len(encoded))
