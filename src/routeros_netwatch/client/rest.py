"""REST gateway client.

Fallback for routers where the binary API port is closed but the
``/rest`` gateway of the web service is reachable.  Commands use the same
verbs as the binary client and produce the same record shape:

* ``/tool/netwatch/print`` -> ``GET /rest/tool/netwatch``
* ``/system/reboot``       -> ``POST /rest/system/reboot``

Errors are mapped onto the same exception classes the binary client
raises, so callers handle both transports identically.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any

import httpx

from routeros_netwatch.core.config import RouterClientConfig
from routeros_netwatch.core.errors import (
    AuthError,
    ConnectionTimeout,
    ProtocolError,
    RouterConnectionError,
)
from routeros_netwatch.core.types import Record

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest"
_PRINT_VERB = "print"


def _base_url(host: str, config: RouterClientConfig) -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    port = f":{config.rest_port}" if config.rest_port else ""
    return f"{config.rest_scheme}://{host}{port}"


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return json.dumps(value) if isinstance(value, (list, dict)) else str(value)


def _to_record(item: Mapping[str, Any]) -> Record:
    return {str(key): _to_text(value) for key, value in item.items()}


def split_command(command: str) -> tuple[str, str | None]:
    """Split an API command into its menu path and verb.

    ``/tool/netwatch/print`` becomes ``("tool/netwatch", "print")``; a
    bare menu path has no verb.
    """
    parts = [part for part in command.strip("/").split("/") if part]
    if not parts:
        raise ValueError(f"Empty command: {command!r}")
    if len(parts) == 1:
        return parts[0], None
    return "/".join(parts[:-1]), parts[-1]


class RestClient:
    """Async client for a router's REST gateway.

    Parameters
    ----------
    host:
        Router hostname or IP address.
    username, password:
        API user credentials, sent with HTTP basic auth.
    config:
        Client configuration; scheme, port, timeouts and TLS verification
        are read from it.
    transport:
        Optional ``httpx`` transport, e.g. :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        *,
        config: RouterClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.host = host
        self.config = config or RouterClientConfig()
        self._client = httpx.AsyncClient(
            base_url=_base_url(host, self.config),
            auth=httpx.BasicAuth(username, password),
            timeout=httpx.Timeout(
                self.config.read_timeout,
                connect=self.config.connect_timeout,
            ),
            verify=self.config.rest_verify_tls,
            transport=transport,
        )

    async def __aenter__(self) -> RestClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def run(
        self,
        command: str,
        attributes: Mapping[str, str] | None = None,
    ) -> list[Record]:
        """Run *command* through the gateway and return its records.

        ``print`` commands become ``GET`` requests with *attributes* as
        query filters; every other verb is a ``POST`` with *attributes*
        as the JSON body.

        Raises
        ------
        AuthError
            If the gateway answers 401.
        ProtocolError
            For any other error status or a non-JSON body.
        RouterConnectionError
            If the gateway cannot be reached.
        """
        menu, verb = split_command(command)
        try:
            if verb is None or verb == _PRINT_VERB:
                path = f"{REST_PREFIX}/{menu}"
                response = await self._client.get(
                    path,
                    params=dict(attributes) if attributes else None,
                )
            else:
                path = f"{REST_PREFIX}/{menu}/{verb}"
                response = await self._client.post(path, json=dict(attributes or {}))
        except httpx.TimeoutException as exc:
            raise ConnectionTimeout(
                f"Timed out talking to the REST gateway on {self.host}",
                details={"host": self.host},
            ) from exc
        except httpx.TransportError as exc:
            raise RouterConnectionError(
                f"Cannot reach the REST gateway on {self.host}: {exc}",
                details={"host": self.host},
            ) from exc

        logger.debug("%s %s -> %d", response.request.method, path, response.status_code)
        body = self._decode(response)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise AuthError(
                _error_text(body, "invalid user name or password"),
                details={"host": self.host, "status_code": response.status_code},
            )
        if response.is_error:
            raise ProtocolError(
                _error_text(body, response.reason_phrase),
                details={"host": self.host, "status_code": response.status_code},
            )

        if isinstance(body, list):
            return [_to_record(item) for item in body if isinstance(item, Mapping)]
        if isinstance(body, Mapping):
            return [_to_record(body)] if body else []
        raise ProtocolError(
            "REST gateway returned an unexpected body",
            details={"host": self.host, "type": type(body).__name__},
        )

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as exc:
            if response.status_code == httpx.codes.UNAUTHORIZED:
                return {}
            raise ProtocolError(
                "REST gateway returned invalid JSON",
                details={"host": self.host, "status_code": response.status_code},
            ) from exc


def _error_text(body: Any, default: str) -> str:
    if isinstance(body, Mapping):
        for key in ("detail", "message"):
            text = body.get(key)
            if isinstance(text, str) and text:
                return text
    return default
