"""Error hierarchy for the RouterOS netwatch client.

Every failure the client can surface is a concrete exception class with a
stable error code and the HTTP status the boundary adapter answers with.

Hierarchy
---------
::

    NetwatchError
    +-- RouterConnectionError   (NW-E1xx)  transport failures
    +-- FramingError            (NW-E200)  protocol desync on the wire
    +-- AuthError               (NW-E300)  login rejected
    +-- SessionStateError       (NW-E400)  wrong session state
    +-- ProtocolError           (NW-E500)  command answered with !trap/!fatal
    +-- RequestError            (NW-E9xx)  inbound HTTP request rejected

Usage
-----
Raise concrete subclasses directly::

    raise AuthError("invalid user name or password")

Catch by category::

    try:
        ...
    except RouterConnectionError:
        # handles ConnectionClosed, ConnectionTimeout
        ...
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class NetwatchError(Exception):
    """Base exception for all netwatch client errors.

    Attributes
    ----------
    code : str
        Error code, e.g. ``"NW-E300"``; logged by the boundary adapter.
    http_status : int
        HTTP status the boundary adapter responds with.
    message : str
        Human-readable description (MUST NOT contain credentials).
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    """

    code: str = "NW-E000"
    http_status: int = 500
    message: str = "Unknown netwatch error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# NW-E1xx  Transport errors
# ===================================================================

class RouterConnectionError(NetwatchError):
    """NW-E100 -- The stream to the router could not be opened or used."""

    code = "NW-E100"
    http_status = 500
    message = "Failed to communicate with the router"


class ConnectionClosed(RouterConnectionError):
    """NW-E101 -- The router closed the connection."""

    code = "NW-E101"
    message = "Connection closed by the router"


class ConnectionTimeout(RouterConnectionError):
    """NW-E102 -- A connect, read or write deadline expired."""

    code = "NW-E102"
    message = "Timed out waiting for the router"


# ===================================================================
# NW-E2xx  Framing errors
# ===================================================================

class FramingError(NetwatchError):
    """NW-E200 -- Malformed length prefix or truncated word.

    Indicates the client and router are no longer in sync; the session
    is discarded.
    """

    code = "NW-E200"
    http_status = 500
    message = "Malformed frame received from the router"


# ===================================================================
# NW-E3xx  Authentication errors
# ===================================================================

class AuthError(NetwatchError):
    """NW-E300 -- The router rejected the login sentence."""

    code = "NW-E300"
    http_status = 500
    message = "Login to the router failed"


# ===================================================================
# NW-E4xx  Session state errors
# ===================================================================

class SessionStateError(NetwatchError):
    """NW-E400 -- Operation invoked on a session in the wrong state."""

    code = "NW-E400"
    http_status = 500
    message = "Session is not in the required state"


# ===================================================================
# NW-E5xx  Command errors
# ===================================================================

class ProtocolError(NetwatchError):
    """NW-E500 -- A command reply carried ``!trap`` or ``!fatal``."""

    code = "NW-E500"
    http_status = 500
    message = "Router rejected the command"


# ===================================================================
# NW-E9xx  Boundary request errors
# ===================================================================

class RequestError(NetwatchError):
    """NW-E9xx -- The inbound HTTP request was rejected before the core ran."""

    code = "NW-E9XX"
    http_status = 400


class MalformedRequest(RequestError):
    """NW-E900 -- Body is not a JSON object or lacks a required field."""

    code = "NW-E900"
    http_status = 400
    message = "Malformed request"


class MethodNotAllowed(RequestError):
    """NW-E901 -- HTTP method other than POST."""

    code = "NW-E901"
    http_status = 405
    message = "Method not allowed"
