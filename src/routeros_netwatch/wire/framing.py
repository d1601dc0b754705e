"""Word and sentence framing over an asyncio stream.

A *word* is a length prefix followed by that many UTF-8 bytes.  A
*sentence* is a run of words closed by the empty word.  This module
provides:

* **SentenceWriter** -- writes words and sentences to a stream.
* **SentenceReader** -- reads words and sentences from a stream.
* **WordStream** -- both directions over one connection.

The empty word is the only sentence terminator.  ``!done`` and
``!fatal`` may be followed by attribute words on some firmware, so
reaching one of them only shortens the deadline for the rest of the
sentence; a sentence that never gets its terminator is a
:class:`~routeros_netwatch.core.errors.FramingError`, never a silent
truncation.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable

from routeros_netwatch.core.errors import (
    ConnectionClosed,
    ConnectionTimeout,
    FramingError,
    RouterConnectionError,
)
from routeros_netwatch.core.types import ReplyType
from routeros_netwatch.wire.length import decode_length, encode_length

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_READ_TIMEOUT: float = 10.0
DEFAULT_TERMINATOR_TIMEOUT: float = 2.0
DEFAULT_MAX_WORD_SIZE: int = 16 * 1024 * 1024

TERMINATOR: bytes = b"\x00"

_FINAL_MARKERS = frozenset({ReplyType.DONE, ReplyType.FATAL})
_SECRET_PREFIXES = ("=password=",)


def redact(word: str) -> str:
    """Return *word* with credential values masked, for logging."""
    for prefix in _SECRET_PREFIXES:
        if word.startswith(prefix):
            return prefix + "***"
    return word


def encode_word(word: str) -> bytes:
    """Return the wire form of *word*: length prefix plus UTF-8 bytes."""
    data = word.encode("utf-8")
    return encode_length(len(data)) + data


# ---------------------------------------------------------------------------
# SentenceWriter
# ---------------------------------------------------------------------------


class SentenceWriter:
    """Writes words and sentences to an async stream.

    Parameters
    ----------
    writer:
        An :class:`asyncio.StreamWriter` connected to the router.
    write_timeout:
        Seconds allowed for flushing one sentence.
    """

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        *,
        write_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self._writer = writer
        self._write_timeout = write_timeout

    async def write_word(self, word: str) -> None:
        """Write a single word and flush it."""
        self._writer.write(encode_word(word))
        logger.debug(">>> %s", redact(word))
        await self._drain()

    async def write_sentence(self, words: Iterable[str]) -> None:
        """Write *words* followed by the empty terminator word."""
        for word in words:
            self._writer.write(encode_word(word))
            logger.debug(">>> %s", redact(word))
        self._writer.write(TERMINATOR)
        await self._drain()

    async def _drain(self) -> None:
        try:
            await asyncio.wait_for(self._writer.drain(), timeout=self._write_timeout)
        except TimeoutError as exc:
            raise ConnectionTimeout(
                "Timed out writing to the router",
                details={"timeout": self._write_timeout},
            ) from exc
        except OSError as exc:
            raise RouterConnectionError(
                f"Write to the router failed: {exc}",
                details={"errno": exc.errno},
            ) from exc


# ---------------------------------------------------------------------------
# SentenceReader
# ---------------------------------------------------------------------------


class SentenceReader:
    """Reads words and sentences from an async stream.

    Parameters
    ----------
    reader:
        An :class:`asyncio.StreamReader` connected to the router.
    read_timeout:
        Seconds allowed for each word.
    terminator_timeout:
        Seconds allowed for each remaining word once a ``!done`` or
        ``!fatal`` marker has been read.
    max_word_size:
        Largest word in bytes that will be accepted.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        *,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        terminator_timeout: float = DEFAULT_TERMINATOR_TIMEOUT,
        max_word_size: int = DEFAULT_MAX_WORD_SIZE,
    ) -> None:
        self._reader = reader
        self._read_timeout = read_timeout
        self._terminator_timeout = terminator_timeout
        self._max_word_size = max_word_size

    async def read_word(self, *, timeout: float | None = None) -> str:
        """Read one word; the empty string is the sentence terminator.

        Raises
        ------
        ConnectionClosed
            If the stream is at EOF before the word starts.
        ConnectionTimeout
            If the word does not arrive within the deadline.
        RouterConnectionError
            On any other transport failure.
        FramingError
            On a malformed prefix, oversized or truncated word, or
            invalid UTF-8.
        """
        deadline = self._read_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._read_word(), timeout=deadline)
        except TimeoutError as exc:
            raise ConnectionTimeout(
                "Timed out reading from the router",
                details={"timeout": deadline},
            ) from exc
        except OSError as exc:
            raise RouterConnectionError(
                f"Read from the router failed: {exc}",
                details={"errno": exc.errno},
            ) from exc

    async def _read_word(self) -> str:
        length = await decode_length(self._reader)
        if length == 0:
            return ""
        if length > self._max_word_size:
            raise FramingError(
                f"Word of {length} bytes exceeds the {self._max_word_size} byte limit",
                details={"length": length, "max_word_size": self._max_word_size},
            )
        try:
            data = await self._reader.readexactly(length)
        except asyncio.IncompleteReadError as exc:
            raise FramingError(
                "Stream ended inside a word",
                details={"expected": length, "received": len(exc.partial)},
            ) from exc
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FramingError(
                "Word is not valid UTF-8",
                details={"length": length},
            ) from exc

    async def read_sentence(self) -> list[str]:
        """Read words up to the empty terminator.

        The returned list includes the reply marker and excludes the
        terminator.

        Raises
        ------
        FramingError
            If a ``!done``/``!fatal`` sentence is not terminated within
            the terminator deadline, plus everything :meth:`read_word`
            raises.
        """
        words: list[str] = []
        timeout: float | None = None
        while True:
            try:
                word = await self.read_word(timeout=timeout)
            except (ConnectionTimeout, ConnectionClosed) as exc:
                if timeout is None:
                    raise
                raise FramingError(
                    f"Sentence ending {words[-1]!r} was not terminated",
                    details={"words": len(words)},
                ) from exc
            if not word:
                return words
            logger.debug("<<< %s", redact(word))
            words.append(word)
            if ReplyType.of(word) in _FINAL_MARKERS:
                timeout = self._terminator_timeout


# ---------------------------------------------------------------------------
# WordStream
# ---------------------------------------------------------------------------


class WordStream:
    """Bidirectional sentence transport over one router connection.

    Parameters
    ----------
    reader:
        An :class:`asyncio.StreamReader` for replies.
    writer:
        An :class:`asyncio.StreamWriter` for commands.
    read_timeout, terminator_timeout, max_word_size:
        Passed to :class:`SentenceReader`; *read_timeout* also bounds
        each write flush.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        terminator_timeout: float = DEFAULT_TERMINATOR_TIMEOUT,
        max_word_size: int = DEFAULT_MAX_WORD_SIZE,
    ) -> None:
        self._sentence_reader = SentenceReader(
            reader,
            read_timeout=read_timeout,
            terminator_timeout=terminator_timeout,
            max_word_size=max_word_size,
        )
        self._sentence_writer = SentenceWriter(writer, write_timeout=read_timeout)
        self._writer = writer

    async def send(self, words: Iterable[str]) -> None:
        """Send one sentence."""
        await self._sentence_writer.write_sentence(words)

    async def receive(self) -> list[str]:
        """Receive one sentence."""
        return await self._sentence_reader.read_sentence()

    async def close(self) -> None:
        """Close the underlying connection.

        Errors raised while the transport shuts down are ignored; the
        peer may already have reset the connection.
        """
        self._writer.close()
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()
