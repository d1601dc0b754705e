"""Shared fixtures for the router API conformance tests.

Provides scripted routers for each outcome a poll can have and the
standard request body used against the HTTP boundary.
"""
from __future__ import annotations

import json

import pytest

from routeros_netwatch.core.config import RouterClientConfig
from routeros_netwatch.testing import ScriptedRouter

# ---------------------------------------------------------------------------
# Common values used across tests
# ---------------------------------------------------------------------------
HOST = "192.168.88.1"
USERNAME = "admin"
PASSWORD = "conformance-password"
LOGIN_OK = ["!done"]
LOGIN_REJECTED = ["!trap", "=message=invalid user name or password"]

REQUEST_BODY = json.dumps(
    {"host": HOST, "username": USERNAME, "password": PASSWORD}
).encode()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def config() -> RouterClientConfig:
    return RouterClientConfig(
        connect_timeout=0.5,
        read_timeout=0.5,
        terminator_timeout=0.1,
    )


# ---------------------------------------------------------------------------
# Router fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def netwatch_router() -> ScriptedRouter:
    """Router that accepts the login and lists two netwatch entries."""
    return ScriptedRouter(
        [
            LOGIN_OK,
            ["!re", "=.id=*1", "=name=R1", "=host=10.0.0.1", "=status=up"],
            ["!re", "=.id=*2", "=name=R2", "=host=10.0.0.2", "=status=down"],
            ["!done"],
        ]
    )


@pytest.fixture()
def rejecting_router() -> ScriptedRouter:
    """Router that rejects the credentials."""
    return ScriptedRouter([LOGIN_REJECTED, ["!done"]])


# ---------------------------------------------------------------------------
# Boundary fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def request_body() -> bytes:
    """Inbound JSON body with all three required fields."""
    return REQUEST_BODY
