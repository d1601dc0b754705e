"""Command execution on an authenticated session."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from routeros_netwatch.client.session import RouterSession
from routeros_netwatch.core.errors import NetwatchError
from routeros_netwatch.core.types import Record
from routeros_netwatch.wire.reply import ReplyCollector, format_attribute

logger = logging.getLogger(__name__)


class CommandExecutor:
    """Sends one command sentence and decodes the reply into records.

    Replies are read sentence by sentence until ``!done``; streaming
    commands that never send ``!done`` are not supported.

    Parameters
    ----------
    session:
        An ``AUTHENTICATED`` :class:`RouterSession` that has not run a
        command yet.  The executor disconnects it when the command fails;
        otherwise the session's owner does.
    """

    def __init__(self, session: RouterSession) -> None:
        self._session = session

    async def run(
        self,
        command: str,
        attributes: Mapping[str, str] | None = None,
    ) -> list[Record]:
        """Run *command* and return its records in device order.

        Parameters
        ----------
        command:
            The command verb, e.g. ``/tool/netwatch/print``.
        attributes:
            Sent as ``=key=value`` words after the verb.

        Raises
        ------
        SessionStateError
            If the session is not authenticated or already ran a command.
        ProtocolError
            If the router answers with ``!trap`` or ``!fatal``.
        RouterConnectionError
            On transport failure.
        FramingError
            On a malformed reply.
        """
        stream = self._session.begin_command()
        words = [command]
        words.extend(format_attribute(key, value) for key, value in (attributes or {}).items())

        collector = ReplyCollector()
        try:
            await stream.send(words)
            while not collector.done:
                collector.feed_sentence(await stream.receive())
        except NetwatchError:
            await self._session.disconnect()
            raise
        records = collector.finish()
        logger.debug("%s on %s returned %d records", command, self._session.host, len(records))
        return records
