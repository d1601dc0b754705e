"""RouterOS netwatch client.

Logs in to a MikroTik RouterOS router over its binary API (or the REST
gateway), reads the netwatch host monitor and serves the result over a
small HTTP boundary.

Layers
------
1. Core types, errors and configuration (:mod:`routeros_netwatch.core`)
2. Wire protocol -- length codec, framing, reply decoding
   (:mod:`routeros_netwatch.wire`)
3. Clients -- session, command executor, REST fallback
   (:mod:`routeros_netwatch.client`)
4. Netwatch normalisation (:mod:`routeros_netwatch.netwatch`)
5. HTTP boundary (:mod:`routeros_netwatch.http`)
"""
from __future__ import annotations

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------
from routeros_netwatch.client import (
    CommandExecutor,
    RestClient,
    RouterSession,
    open_session,
)
from routeros_netwatch.core.config import RouterClientConfig
from routeros_netwatch.core.errors import (
    AuthError,
    ConnectionClosed,
    ConnectionTimeout,
    FramingError,
    MalformedRequest,
    MethodNotAllowed,
    NetwatchError,
    ProtocolError,
    RequestError,
    RouterConnectionError,
    SessionStateError,
)
from routeros_netwatch.core.types import (
    NetwatchEntry,
    NetwatchRequest,
    NetwatchResponse,
    Record,
    ReplyType,
    SessionState,
)

# ---------------------------------------------------------------------------
# Boundary
# ---------------------------------------------------------------------------
from routeros_netwatch.http import create_app, create_netwatch_handler
from routeros_netwatch.netwatch import (
    fetch_netwatch,
    fetch_records,
    normalize_entries,
    normalize_entry,
)

# ---------------------------------------------------------------------------
# Wire
# ---------------------------------------------------------------------------
from routeros_netwatch.wire import (
    ReplyCollector,
    SentenceReader,
    SentenceWriter,
    WordStream,
    decode_length,
    encode_length,
)

__all__ = [
    "__version__",
    # Config & types
    "RouterClientConfig",
    "Record",
    "ReplyType",
    "SessionState",
    "NetwatchRequest",
    "NetwatchEntry",
    "NetwatchResponse",
    # Errors
    "NetwatchError",
    "RouterConnectionError",
    "ConnectionClosed",
    "ConnectionTimeout",
    "FramingError",
    "AuthError",
    "SessionStateError",
    "ProtocolError",
    "RequestError",
    "MalformedRequest",
    "MethodNotAllowed",
    # Wire
    "encode_length",
    "decode_length",
    "SentenceReader",
    "SentenceWriter",
    "WordStream",
    "ReplyCollector",
    # Clients
    "RouterSession",
    "open_session",
    "CommandExecutor",
    "RestClient",
    # Netwatch
    "normalize_entry",
    "normalize_entries",
    "fetch_records",
    "fetch_netwatch",
    # HTTP
    "create_netwatch_handler",
    "create_app",
]
