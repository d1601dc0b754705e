"""Shared domain types.

Key design decisions:
* A ``Record`` is a plain ``dict[str, str]`` -- both the binary and the
  REST client produce it, and it serialises to JSON unchanged.
* ``ReplyType`` is the tagged variant over the first word of a reply
  sentence; the reply state machine dispatches on it instead of comparing
  raw strings.
* The inbound password is a pydantic ``SecretStr`` so it never appears in
  ``repr()``, logs or validation errors.
"""
from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

Record = dict[str, str]
"""One decoded ``!re`` group: attribute key to attribute value."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ReplyType(enum.StrEnum):
    """Reply-type marker words that open a reply sentence.

    * **RE** -- one data record follows.
    * **DONE** -- the command completed; no further sentences.
    * **TRAP** -- the command failed; ``=message=`` explains why.
    * **FATAL** -- the router is closing the connection.
    * **EMPTY** -- sent by newer firmware when a listing has no rows.
    """

    RE = "!re"
    DONE = "!done"
    TRAP = "!trap"
    FATAL = "!fatal"
    EMPTY = "!empty"

    @classmethod
    def of(cls, word: str) -> ReplyType | None:
        """Return the marker for *word*, or ``None`` if it is not a marker."""
        try:
            return cls(word)
        except ValueError:
            return None

    @property
    def is_error(self) -> bool:
        return self in (ReplyType.TRAP, ReplyType.FATAL)


class SessionState(enum.StrEnum):
    """Session lifecycle states.

    Transitions: UNAUTHENTICATED -> AUTHENTICATED -> CLOSED, or
    UNAUTHENTICATED -> CLOSED when the login fails.
    """

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# Boundary models
# ---------------------------------------------------------------------------

class NetwatchRequest(BaseModel):
    """Inbound request body: the router to poll and the API credentials."""

    model_config = ConfigDict(extra="ignore")

    host: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: SecretStr


class NetwatchEntry(BaseModel):
    """One netwatch entry as presented to the dashboard."""

    model_config = ConfigDict(strict=True)

    id: str
    name: str
    host: str
    status: Literal["up", "down"]
    since: str = ""


class NetwatchResponse(BaseModel):
    """Successful boundary response."""

    success: Literal[True] = True
    data: list[NetwatchEntry] = Field(default_factory=list)
    host: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
