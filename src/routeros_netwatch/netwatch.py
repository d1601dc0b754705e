"""Netwatch polling: one request against one router, normalised for display.

The router reports each netwatch entry with its own attribute names
(``.id``, ``host``, ``status``, ``since``, ``comment``, ``disabled``
and, on newer firmware, ``name``).  :func:`normalize_entry` maps those
onto the :class:`~routeros_netwatch.core.types.NetwatchEntry` shape the
dashboard renders.
"""
from __future__ import annotations

import httpx

from routeros_netwatch.client.executor import CommandExecutor
from routeros_netwatch.client.rest import RestClient
from routeros_netwatch.client.session import Opener, RouterSession
from routeros_netwatch.core.config import RouterClientConfig
from routeros_netwatch.core.types import NetwatchEntry, NetwatchRequest, Record

_TRUTHY = frozenset({"true", "yes"})


def normalize_entry(record: Record) -> NetwatchEntry:
    """Map one netwatch record onto the dashboard shape.

    A disabled entry is always reported ``down``; otherwise only an
    explicit ``up`` status counts as up (``unknown`` is ``down``).
    """
    host = record.get("host", "")
    name = record.get("comment") or record.get("name") or host
    if record.get("disabled", "").lower() in _TRUTHY:
        status = "down"
    else:
        status = "up" if record.get("status", "").lower() == "up" else "down"
    return NetwatchEntry(
        id=record.get(".id", ""),
        name=name,
        host=host,
        status=status,
        since=record.get("since", ""),
    )


def normalize_entries(records: list[Record]) -> list[NetwatchEntry]:
    """Normalise *records*, keeping device order."""
    return [normalize_entry(record) for record in records]


async def fetch_records(
    request: NetwatchRequest,
    *,
    config: RouterClientConfig | None = None,
    opener: Opener | None = None,
    rest_transport: httpx.AsyncBaseTransport | None = None,
) -> list[Record]:
    """Log in to ``request.host``, run the configured command and log out.

    The connection is opened and closed inside this call, whatever the
    outcome.
    """
    config = config or RouterClientConfig()
    password = request.password.get_secret_value()

    if config.transport == "rest":
        async with RestClient(
            request.host,
            request.username,
            password,
            config=config,
            transport=rest_transport,
        ) as client:
            return await client.run(config.command)

    async with RouterSession(request.host, config=config, opener=opener) as session:
        await session.connect(request.username, password)
        return await CommandExecutor(session).run(config.command)


async def fetch_netwatch(
    request: NetwatchRequest,
    *,
    config: RouterClientConfig | None = None,
    opener: Opener | None = None,
    rest_transport: httpx.AsyncBaseTransport | None = None,
) -> list[NetwatchEntry]:
    """Fetch and normalise the netwatch listing of ``request.host``."""
    records = await fetch_records(
        request,
        config=config,
        opener=opener,
        rest_transport=rest_transport,
    )
    return normalize_entries(records)
