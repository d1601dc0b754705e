"""In-memory router streams for tests and local development.

These fakes stand in for the TCP connection to a router: a
:class:`ScriptedRouter` is an :data:`~routeros_netwatch.client.session.Opener`
that hands out a pre-filled :class:`asyncio.StreamReader` and a
:class:`RecordingWriter` for every connection, so sessions can be driven
end to end without a network.
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from routeros_netwatch.wire.framing import TERMINATOR, encode_word
from routeros_netwatch.wire.length import decode_length_bytes


def encode_sentence(words: Iterable[str]) -> bytes:
    """Return the wire form of one sentence, terminator included."""
    return b"".join(encode_word(word) for word in words) + TERMINATOR


def decode_sentences(data: bytes) -> list[list[str]]:
    """Split raw wire bytes back into sentences.

    A trailing partial sentence (no terminator yet) is returned as the
    last element.
    """
    sentences: list[list[str]] = []
    current: list[str] = []
    offset = 0
    while offset < len(data):
        length, consumed = decode_length_bytes(data[offset:])
        offset += consumed
        if length == 0:
            sentences.append(current)
            current = []
            continue
        current.append(data[offset : offset + length].decode("utf-8"))
        offset += length
    if current:
        sentences.append(current)
    return sentences


class RecordingWriter:
    """Stand-in for :class:`asyncio.StreamWriter` that records traffic.

    ``close_calls`` counts :meth:`close` invocations so tests can assert
    the connection was released exactly once.
    """

    def __init__(self, *, drain_error: BaseException | None = None) -> None:
        self.buffer = bytearray()
        self.close_calls = 0
        self.drain_error = drain_error

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    async def drain(self) -> None:
        if self.drain_error is not None:
            raise self.drain_error

    def close(self) -> None:
        self.close_calls += 1

    def is_closing(self) -> bool:
        return self.close_calls > 0

    async def wait_closed(self) -> None:
        return None

    def sentences(self) -> list[list[str]]:
        """Sentences written so far."""
        return decode_sentences(bytes(self.buffer))


class ScriptedRouter:
    """Connection opener that replays a fixed reply script.

    Parameters
    ----------
    replies:
        Reply sentences, in order, fed to every new connection.
    trailer:
        Raw bytes appended after the sentences (e.g. a truncated word).
    eof:
        Close the read side once the script is exhausted.  With
        ``eof=False`` further reads block until their deadline.
    error:
        Raised by the opener instead of connecting.
    """

    def __init__(
        self,
        replies: Sequence[Sequence[str]] = (),
        *,
        trailer: bytes = b"",
        eof: bool = True,
        error: BaseException | None = None,
    ) -> None:
        self.script = b"".join(encode_sentence(words) for words in replies) + trailer
        self.eof = eof
        self.error = error
        self.connections: list[tuple[str, int]] = []
        self.writers: list[RecordingWriter] = []

    async def __call__(
        self,
        host: str,
        port: int,
    ) -> tuple[asyncio.StreamReader, RecordingWriter]:
        self.connections.append((host, port))
        if self.error is not None:
            raise self.error
        reader = asyncio.StreamReader()
        reader.feed_data(self.script)
        if self.eof:
            reader.feed_eof()
        writer = RecordingWriter()
        self.writers.append(writer)
        return reader, writer

    @property
    def close_calls(self) -> int:
        """Total ``close()`` calls across every connection handed out."""
        return sum(writer.close_calls for writer in self.writers)

    @property
    def sent(self) -> list[list[str]]:
        """Sentences written on the most recent connection."""
        return self.writers[-1].sentences() if self.writers else []
