"""RouterOS API wire layer -- length codec, word framing and reply decoding.

This subpackage provides:

* **Length codec** -- one-to-five byte length prefixes
  (:mod:`~routeros_netwatch.wire.length`).
* **Framing** -- words and empty-word terminated sentences over asyncio
  streams (:mod:`~routeros_netwatch.wire.framing`).
* **Reply decoding** -- the marker-driven state machine that groups
  ``!re`` sentences into records (:mod:`~routeros_netwatch.wire.reply`).
"""
from __future__ import annotations

from routeros_netwatch.wire.framing import (
    DEFAULT_MAX_WORD_SIZE,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_TERMINATOR_TIMEOUT,
    SentenceReader,
    SentenceWriter,
    WordStream,
    encode_word,
    redact,
)
from routeros_netwatch.wire.length import (
    MAX_LENGTH,
    decode_length,
    decode_length_bytes,
    encode_length,
)
from routeros_netwatch.wire.reply import (
    ReplyCollector,
    collect_records,
    format_attribute,
    parse_attribute,
)

__all__ = [
    # Length codec
    "MAX_LENGTH",
    "encode_length",
    "decode_length",
    "decode_length_bytes",
    # Framing
    "DEFAULT_READ_TIMEOUT",
    "DEFAULT_TERMINATOR_TIMEOUT",
    "DEFAULT_MAX_WORD_SIZE",
    "SentenceReader",
    "SentenceWriter",
    "WordStream",
    "encode_word",
    "redact",
    # Replies
    "ReplyCollector",
    "collect_records",
    "parse_attribute",
    "format_attribute",
]
