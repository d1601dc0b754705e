"""Router API session.

A :class:`RouterSession` owns one TCP connection to one router and runs
the plaintext login handshake on it.  The lifecycle is:

.. code-block:: text

    UNAUTHENTICATED ──connect()──> AUTHENTICATED ──disconnect()──> CLOSED
           |
           └──── login rejected / connect failed ────────────────> CLOSED

Sessions are created per request, used for one command and closed; they
are never shared between concurrent tasks.  A command that fails closes
the session, since the stream may be out of sync.  Use them as async context
managers so the connection is released on every path::

    async with RouterSession("192.168.88.1") as session:
        await session.connect("admin", "secret")
        records = await CommandExecutor(session).run("/tool/netwatch/print")
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from types import TracebackType

from routeros_netwatch.core.config import RouterClientConfig
from routeros_netwatch.core.errors import (
    AuthError,
    ConnectionClosed,
    ConnectionTimeout,
    RouterConnectionError,
    SessionStateError,
)
from routeros_netwatch.core.types import ReplyType, SessionState
from routeros_netwatch.wire.framing import WordStream
from routeros_netwatch.wire.reply import format_attribute, parse_attribute

logger = logging.getLogger(__name__)

Opener = Callable[[str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]
"""Coroutine factory that opens a ``(reader, writer)`` pair to ``(host, port)``."""

_LOGIN_REJECTED = "Login to the router failed"


async def _open_connection(
    host: str,
    port: int,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    return await asyncio.open_connection(host, port)


class RouterSession:
    """One authenticated connection to a router's binary API.

    Parameters
    ----------
    host:
        Router hostname or IP address.
    config:
        Client configuration; defaults to :class:`RouterClientConfig`.
    opener:
        Replaces :func:`asyncio.open_connection`, e.g. with an in-memory
        stream pair in tests.
    """

    def __init__(
        self,
        host: str,
        *,
        config: RouterClientConfig | None = None,
        opener: Opener | None = None,
    ) -> None:
        self.host = host
        self.config = config or RouterClientConfig()
        self._opener: Opener = opener or _open_connection
        self._stream: WordStream | None = None
        self._command_issued = False
        self.state = SessionState.UNAUTHENTICATED

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RouterSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    async def connect(self, username: str, password: str) -> RouterSession:
        """Open the connection and log in.

        Returns
        -------
        RouterSession
            ``self``, now ``AUTHENTICATED``.

        Raises
        ------
        SessionStateError
            If the session is not ``UNAUTHENTICATED``.
        RouterConnectionError
            If the router cannot be reached.
        AuthError
            If the router rejects the credentials or closes the
            connection before acknowledging the login.
        FramingError
            If the login reply is malformed.
        """
        if self.state is not SessionState.UNAUTHENTICATED:
            raise SessionStateError(
                f"Cannot log in on a session that is {self.state}",
                details={"state": str(self.state)},
            )

        try:
            self._stream = await self._open()
            await self._login(username, password)
        except BaseException:
            await self.disconnect()
            raise

        self.state = SessionState.AUTHENTICATED
        logger.info("Logged in to %s as %s", self.host, username)
        return self

    def require_authenticated(self) -> WordStream:
        """Return the session's stream, or raise if not logged in.

        Raises
        ------
        SessionStateError
            If the session is not ``AUTHENTICATED``.
        """
        if self.state is not SessionState.AUTHENTICATED or self._stream is None:
            raise SessionStateError(
                f"Session to {self.host} is {self.state}, not authenticated",
                details={"state": str(self.state)},
            )
        return self._stream

    def begin_command(self) -> WordStream:
        """Claim the session's stream for its one command.

        Raises
        ------
        SessionStateError
            If the session is not authenticated or already ran a command.
        """
        stream = self.require_authenticated()
        if self._command_issued:
            raise SessionStateError(
                f"Session to {self.host} already ran a command",
                details={"state": str(self.state)},
            )
        self._command_issued = True
        return stream

    async def disconnect(self) -> None:
        """Release the connection.  Safe to call any number of times."""
        stream, self._stream = self._stream, None
        self.state = SessionState.CLOSED
        if stream is None:
            return
        await stream.close()
        logger.info("Disconnected from %s", self.host)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _open(self) -> WordStream:
        port = self.config.api_port
        try:
            reader, writer = await asyncio.wait_for(
                self._opener(self.host, port),
                timeout=self.config.connect_timeout,
            )
        except TimeoutError as exc:
            raise ConnectionTimeout(
                f"Timed out connecting to {self.host}:{port}",
                details={"host": self.host, "port": port},
            ) from exc
        except OSError as exc:
            raise RouterConnectionError(
                f"Cannot connect to {self.host}:{port}: {exc}",
                details={"host": self.host, "port": port},
            ) from exc
        logger.debug("Connected to %s:%d", self.host, port)
        return WordStream(
            reader,
            writer,
            read_timeout=self.config.read_timeout,
            terminator_timeout=self.config.terminator_timeout,
            max_word_size=self.config.max_word_size,
        )

    async def _login(self, username: str, password: str) -> None:
        assert self._stream is not None
        await self._stream.send(
            [
                "/login",
                format_attribute("name", username),
                format_attribute("password", password),
            ]
        )
        try:
            reply = await self._stream.receive()
        except ConnectionClosed as exc:
            raise AuthError(
                "Connection closed before the login was acknowledged",
                details={"host": self.host},
            ) from exc

        markers = {ReplyType.of(word) for word in reply}
        attributes = dict(
            attr for attr in map(parse_attribute, reply) if attr is not None
        )
        if ReplyType.DONE in markers and not (
            ReplyType.TRAP in markers or ReplyType.FATAL in markers
        ):
            if "ret" in attributes:
                logger.warning(
                    "%s answered the login with a challenge; "
                    "challenge-response login is not supported",
                    self.host,
                )
            return

        details: dict[str, str] = {"host": self.host}
        if reply:
            details["reply"] = reply[0]
        if "category" in attributes:
            details["category"] = attributes["category"]
        raise AuthError(attributes.get("message", _LOGIN_REJECTED), details=details)


async def open_session(
    host: str,
    username: str,
    password: str,
    *,
    config: RouterClientConfig | None = None,
    opener: Opener | None = None,
) -> RouterSession:
    """Create a session to *host* and log in.

    The caller owns the returned session and must disconnect it, ideally
    with ``async with``.  On failure nothing is left open.
    """
    session = RouterSession(host, config=config, opener=opener)
    return await session.connect(username, password)
