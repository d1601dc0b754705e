"""Reply demultiplexing.

Turns the words of one or more reply sentences into records.  The
collector is a small state machine keyed on :class:`ReplyType`:

* ``!re`` closes the record in progress (if it has attributes) and opens
  a new one.
* ``=key=value`` sets an attribute on whatever is currently collecting:
  the open record, the trap details, or the ``!done`` attributes.
* ``!done`` ends the reply.
* ``!trap`` / ``!fatal`` fail the command once their sentence has been
  consumed, so the router's ``=message=`` is available.
* ``!empty`` carries nothing.
"""
from __future__ import annotations

from collections.abc import Iterable

from routeros_netwatch.core.errors import ProtocolError
from routeros_netwatch.core.types import Record, ReplyType


def parse_attribute(word: str) -> tuple[str, str] | None:
    """Split an ``=key=value`` word.

    The key runs to the first ``=`` after the leading one; the value may
    itself contain ``=`` or be empty.  Returns ``None`` for words that are
    not attribute words or have an empty key.
    """
    if not word.startswith("="):
        return None
    key, sep, value = word[1:].partition("=")
    if not key or not sep:
        return None
    return key, value


def format_attribute(key: str, value: str) -> str:
    """Return the ``=key=value`` word for one command attribute."""
    return f"={key}={value}"


class ReplyCollector:
    """Accumulates reply sentences into an ordered list of records."""

    def __init__(self) -> None:
        self._records: list[Record] = []
        self._current: Record = {}
        self._target: Record = self._current
        self._failure: ReplyType | None = None
        self._failure_attributes: Record = {}
        self.done_attributes: Record = {}
        self.done = False

    def feed_sentence(self, words: Iterable[str]) -> None:
        """Consume one reply sentence.

        Raises
        ------
        ProtocolError
            If the sentence carried ``!trap`` or ``!fatal``.
        """
        for word in words:
            self._feed_word(word)
        if self._failure is not None:
            raise self._failure_error()

    def _feed_word(self, word: str) -> None:
        marker = ReplyType.of(word)
        if marker is None:
            attribute = parse_attribute(word)
            if attribute is not None:
                key, value = attribute
                self._target[key] = value
            return

        if marker is ReplyType.RE:
            self._flush()
            self._target = self._current
        elif marker is ReplyType.DONE:
            self.done = True
            self._target = self.done_attributes
        elif marker.is_error:
            self._failure = marker
            self._target = self._failure_attributes
        elif marker is ReplyType.EMPTY:
            self._target = {}

    def _flush(self) -> None:
        if self._current:
            self._records.append(self._current)
        self._current = {}

    def _failure_error(self) -> ProtocolError:
        attributes = self._failure_attributes
        details: dict[str, str] = {"reply": str(self._failure)}
        if "category" in attributes:
            details["category"] = attributes["category"]
        message = attributes.get("message")
        if message is None:
            message = f"Router replied {self._failure} without a message"
        return ProtocolError(message, details=details)

    def finish(self) -> list[Record]:
        """Close the record in progress and return all records in order."""
        self._flush()
        self._target = self._current
        return self._records


def collect_records(words: Iterable[str]) -> list[Record]:
    """Decode a complete word sequence into records.

    Convenience for replies that are already in memory.
    """
    collector = ReplyCollector()
    collector.feed_sentence(words)
    return collector.finish()
