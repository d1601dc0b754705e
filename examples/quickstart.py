#!/usr/bin/env python3
"""Netwatch quickstart.

Demonstrates the polling workflow end to end:

1. Build a client configuration.
2. Log in to a router and read ``/tool/netwatch/print``.
3. Normalise the records into netwatch entries.
4. Serve the same poll through the HTTP handler.

Without arguments the example talks to an in-memory scripted router.
Pass ``HOST USERNAME PASSWORD`` to poll a real device instead.

Run:
    python examples/quickstart.py
    python examples/quickstart.py 192.168.88.1 admin secret
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys

from pydantic import SecretStr

from routeros_netwatch import (
    NetwatchError,
    NetwatchRequest,
    RouterClientConfig,
    create_netwatch_handler,
    fetch_netwatch,
)
from routeros_netwatch.testing import ScriptedRouter

DIVIDER = "-" * 60


def _demo_router() -> ScriptedRouter:
    return ScriptedRouter(
        [
            ["!done"],
            ["!re", "=.id=*1", "=host=8.8.8.8", "=status=up",
             "=since=jan/02/2025 10:00:00", "=comment=Google DNS"],
            ["!re", "=.id=*2", "=host=10.0.0.20", "=status=down", "=comment=Printer"],
            ["!done"],
        ]
    )


async def main(argv: list[str]) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # -- Step 1: Configuration ----------------------------------------------
    config = RouterClientConfig(connect_timeout=5.0, read_timeout=5.0)
    if len(argv) == 3:
        host, username, password = argv
        opener = None
    else:
        host, username, password = "192.168.88.1", "admin", "secret"
        opener = _demo_router()
    request = NetwatchRequest(host=host, username=username, password=SecretStr(password))
    print(f"[1] Polling {host}:{config.api_port} as {username}")

    # -- Step 2/3: Poll and normalise ---------------------------------------
    try:
        entries = await fetch_netwatch(request, config=config, opener=opener)
    except NetwatchError as exc:
        print(f"[2] Poll failed: {exc.code} {exc.message}")
        return 1
    print(f"[2] {len(entries)} netwatch entries")
    print(DIVIDER)
    for entry in entries:
        print(f"  {entry.status:<5} {entry.name:<20} {entry.host:<16} {entry.since}")
    print(DIVIDER)

    # -- Step 4: Same poll through the HTTP handler -------------------------
    async def fetcher(req: NetwatchRequest):
        return await fetch_netwatch(
            req,
            config=config,
            opener=_demo_router() if opener is not None else None,
        )

    handler = create_netwatch_handler(config, fetcher=fetcher)
    body = json.dumps({"host": host, "username": username, "password": password})
    status, _, payload = await handler("POST", {"content-type": "application/json"}, body)
    print(f"[3] HTTP {status}")
    print(json.dumps(json.loads(payload), indent=2))
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
