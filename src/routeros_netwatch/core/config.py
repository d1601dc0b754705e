"""Client configuration.

Defines the validated configuration model passed explicitly to sessions,
the REST client and the HTTP boundary.  Nothing here is read from
process-global state.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_API_PORT = 8728
NETWATCH_PRINT = "/tool/netwatch/print"


class RouterClientConfig(BaseModel):
    """Configuration for talking to a RouterOS router.

    All fields carry defaults suitable for a router on the local network,
    so ``RouterClientConfig()`` is a valid configuration.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    api_port: int = Field(
        default=DEFAULT_API_PORT,
        ge=1,
        le=65535,
        description="TCP port of the binary API service.",
    )
    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for the TCP connect.",
    )
    read_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for each word read or write drain.",
    )
    terminator_timeout: float = Field(
        default=2.0,
        gt=0,
        description=(
            "Seconds to wait for the empty terminator word once a "
            "!done or !fatal marker has been read."
        ),
    )
    max_word_size: int = Field(
        default=16 * 1024 * 1024,  # 16 MiB
        ge=0,
        description="Largest word, in bytes, accepted from the router.",
    )
    command: str = Field(
        default=NETWATCH_PRINT,
        min_length=1,
        description="Command issued by the HTTP boundary.",
    )
    transport: Literal["api", "rest"] = Field(
        default="api",
        description="Binary API client or REST gateway client.",
    )
    rest_scheme: Literal["http", "https"] = Field(
        default="https",
        description="Scheme used for the REST gateway.",
    )
    rest_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="Explicit REST gateway port; scheme default when unset.",
    )
    rest_verify_tls: bool = Field(
        default=True,
        description="Verify the router certificate on the REST gateway.",
    )
    retry_attempts: int = Field(
        default=0,
        ge=0,
        le=10,
        description=(
            "Extra attempts the HTTP boundary makes after a transient "
            "connection failure."
        ),
    )
    retry_backoff: float = Field(
        default=0.5,
        ge=0.0,
        description="Base delay in seconds between retries, doubled per attempt.",
    )
