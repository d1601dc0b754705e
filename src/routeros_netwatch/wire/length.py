"""Length prefix codec for RouterOS API words.

Every word on the wire is preceded by its byte length, encoded in one to
five bytes.  The number of leading one-bits in the first byte tells the
decoder how many continuation bytes follow:

=========================  =====  ======================================
length                     bytes  first byte
=========================  =====  ======================================
``0x00 .. 0x7F``           1      ``0xxxxxxx``
``0x80 .. 0x3FFF``         2      ``10xxxxxx`` + 1 byte
``0x4000 .. 0x1FFFFF``     3      ``110xxxxx`` + 2 bytes
``0x200000 .. 0xFFFFFFF``  4      ``1110xxxx`` + 3 bytes
``0x10000000 ..``          5      ``0xF0`` + 4 bytes
=========================  =====  ======================================

First bytes ``0xF1 .. 0xFF`` are reserved control bytes and are never a
valid length prefix.
"""
from __future__ import annotations

import asyncio

from routeros_netwatch.core.errors import ConnectionClosed, FramingError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_LENGTH: int = 0xFFFFFFFF
"""Largest length representable by the five-byte form."""

_FIVE_BYTE_MARKER = 0xF0


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode_length(n: int) -> bytes:
    """Encode *n* as a minimal length prefix.

    Raises
    ------
    FramingError
        If *n* is negative or larger than :data:`MAX_LENGTH`.
    """
    if n < 0 or n > MAX_LENGTH:
        raise FramingError(
            f"Word length {n} cannot be encoded",
            details={"length": n, "max_length": MAX_LENGTH},
        )
    if n < 0x80:
        return bytes((n,))
    if n < 0x4000:
        return (n | 0x8000).to_bytes(2, "big")
    if n < 0x200000:
        return (n | 0xC00000).to_bytes(3, "big")
    if n < 0x10000000:
        return (n | 0xE0000000).to_bytes(4, "big")
    return bytes((_FIVE_BYTE_MARKER,)) + n.to_bytes(4, "big")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _split_first_byte(first: int) -> tuple[int, int]:
    """Return ``(continuation_bytes, value_bits)`` for a leading byte."""
    if first & 0x80 == 0x00:
        return 0, first
    if first & 0xC0 == 0x80:
        return 1, first & 0x3F
    if first & 0xE0 == 0xC0:
        return 2, first & 0x1F
    if first & 0xF0 == 0xE0:
        return 3, first & 0x0F
    if first == _FIVE_BYTE_MARKER:
        return 4, 0
    raise FramingError(
        f"Invalid length prefix byte 0x{first:02X}",
        details={"first_byte": first},
    )


def _combine(value: int, continuation: bytes) -> int:
    for byte in continuation:
        value = (value << 8) | byte
    return value


async def decode_length(reader: asyncio.StreamReader) -> int:
    """Read one length prefix from *reader*.

    Consumes exactly the bytes the prefix occupies.

    Raises
    ------
    ConnectionClosed
        If the stream is at EOF before the first byte.
    FramingError
        If the first byte is a reserved control byte or the stream ends
        before the continuation bytes arrive.
    """
    try:
        head = await reader.readexactly(1)
    except asyncio.IncompleteReadError as exc:
        raise ConnectionClosed(
            "Connection closed while waiting for a word",
        ) from exc

    extra, value = _split_first_byte(head[0])
    if not extra:
        return value

    try:
        continuation = await reader.readexactly(extra)
    except asyncio.IncompleteReadError as exc:
        raise FramingError(
            "Stream ended inside a length prefix",
            details={"expected": extra, "received": len(exc.partial)},
        ) from exc
    return _combine(value, continuation)


def decode_length_bytes(data: bytes) -> tuple[int, int]:
    """Decode a length prefix at the start of *data*.

    Returns
    -------
    tuple[int, int]
        The decoded length and the number of bytes the prefix occupied.

    Raises
    ------
    FramingError
        If *data* is empty, starts with a reserved byte, or is shorter
        than the prefix it announces.
    """
    if not data:
        raise FramingError("Empty buffer has no length prefix")
    extra, value = _split_first_byte(data[0])
    if len(data) < 1 + extra:
        raise FramingError(
            "Buffer ended inside a length prefix",
            details={"expected": extra, "received": len(data) - 1},
        )
    return _combine(value, data[1 : 1 + extra]), 1 + extra
