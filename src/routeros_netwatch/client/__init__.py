"""Router clients -- binary API session, command executor and REST fallback."""
from __future__ import annotations

from routeros_netwatch.client.executor import CommandExecutor
from routeros_netwatch.client.rest import RestClient, split_command
from routeros_netwatch.client.session import Opener, RouterSession, open_session

__all__ = [
    "CommandExecutor",
    "Opener",
    "RestClient",
    "RouterSession",
    "open_session",
    "split_command",
]
