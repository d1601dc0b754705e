"""HTTP boundary for netwatch polling.

This module provides:

* **create_netwatch_handler** -- factory for an async request handler
  ``(method, headers, body) -> (status, headers, body)`` that validates
  the inbound credentials, polls the router and renders the JSON reply.
* **create_app** -- FastAPI application serving the handler, for
  ``uvicorn --factory``.

Request body::

    {"host": "192.168.88.1", "username": "admin", "password": "..."}

Success (200)::

    {"success": true, "data": [...], "host": "192.168.88.1",
     "timestamp": "2025-01-01T00:00:00Z"}

Failure (400 / 405 / 500)::

    {"success": false, "error": "..."}
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from routeros_netwatch.core.config import RouterClientConfig
from routeros_netwatch.core.errors import (
    MalformedRequest,
    MethodNotAllowed,
    NetwatchError,
    RouterConnectionError,
)
from routeros_netwatch.core.types import NetwatchEntry, NetwatchRequest, NetwatchResponse
from routeros_netwatch.netwatch import fetch_netwatch

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

JSON_CONTENT_TYPE = "application/json"

CORS_ALLOW_HEADERS: list[str] = ["authorization", "x-client-info", "apikey", "content-type"]

NETWATCH_PATH = "/"
CLIENT_CLOSED_REQUEST = 499
DISCONNECT_POLL_INTERVAL = 0.1

Fetcher = Callable[[NetwatchRequest], Awaitable[list[NetwatchEntry]]]

HTTPHandler = Callable[
    [str, dict[str, str], bytes],
    Coroutine[Any, Any, tuple[int, dict[str, str], str]],
]


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------


def validate_content_type(content_type: str) -> None:
    """Reject a declared body type other than JSON.

    Raises
    ------
    MalformedRequest
        If the media type is not ``application/json``.
    """
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type != JSON_CONTENT_TYPE:
        raise MalformedRequest(
            f"Unsupported content type: {media_type or content_type!r}",
            details={"content_type": media_type},
        )


def parse_request(body: bytes | str) -> NetwatchRequest:
    """Validate an inbound request body.

    Raises
    ------
    MalformedRequest
        If the body is not a JSON object or a field is missing, empty or
        not a string.  The message names the fields, never their values.
    """
    raw = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    raw = raw.strip()
    if not raw:
        raise MalformedRequest("Request body is empty")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedRequest(f"Invalid JSON: {exc.msg}") from exc
    except RecursionError as exc:
        raise MalformedRequest("Invalid JSON: nested too deeply") from exc

    if not isinstance(data, dict):
        raise MalformedRequest("Request body must be a JSON object")

    try:
        return NetwatchRequest.model_validate(data)
    except ValidationError as exc:
        fields = sorted(
            {str(error["loc"][0]) for error in exc.errors(include_input=False) if error["loc"]}
        )
        raise MalformedRequest(
            f"Host, username and password are required (invalid: {', '.join(fields)})",
            details={"fields": fields},
        ) from exc


def _json_response(status: int, payload: str) -> tuple[int, dict[str, str], str]:
    return status, {"Content-Type": JSON_CONTENT_TYPE}, payload


def _error_response(error: NetwatchError) -> tuple[int, dict[str, str], str]:
    return _json_response(
        error.http_status,
        json.dumps({"success": False, "error": error.message}),
    )


# ---------------------------------------------------------------------------
# Handler factory
# ---------------------------------------------------------------------------


async def _fetch_with_retry(
    fetcher: Fetcher,
    request: NetwatchRequest,
    config: RouterClientConfig,
) -> list[NetwatchEntry]:
    attempt = 0
    while True:
        try:
            return await fetcher(request)
        except RouterConnectionError as exc:
            if attempt >= config.retry_attempts:
                raise
            delay = config.retry_backoff * (2 ** attempt)
            attempt += 1
            logger.warning(
                "Attempt %d/%d against %s failed (%s); retrying in %.2fs",
                attempt,
                config.retry_attempts + 1,
                request.host,
                exc.message,
                delay,
            )
            await asyncio.sleep(delay)


def create_netwatch_handler(
    config: RouterClientConfig | None = None,
    *,
    fetcher: Fetcher | None = None,
) -> HTTPHandler:
    """Create the async netwatch request handler.

    Every request opens its own router session, which is closed before the
    handler returns -- on success, on every error, and when the request
    task is cancelled.

    Parameters
    ----------
    config:
        Client configuration (command, timeouts, transport, retries).
    fetcher:
        Replaces :func:`~routeros_netwatch.netwatch.fetch_netwatch`;
        receives the validated request.

    Returns
    -------
    HTTPHandler
        ``(method, headers, body) -> (status_code, response_headers, response_body)``
    """
    config = config or RouterClientConfig()

    async def default_fetcher(request: NetwatchRequest) -> list[NetwatchEntry]:
        return await fetch_netwatch(request, config=config)

    fetch = fetcher or default_fetcher

    async def handler(
        method: str,
        headers: dict[str, str],
        body: bytes,
    ) -> tuple[int, dict[str, str], str]:
        """Process one netwatch poll."""
        method = method.upper()
        if method == "OPTIONS":
            return 200, {"Content-Type": "text/plain"}, "ok"

        try:
            if method != "POST":
                raise MethodNotAllowed(f"Method {method} not allowed")

            content_type = headers.get("content-type", headers.get("Content-Type", ""))
            if content_type:
                validate_content_type(content_type)

            request = parse_request(body)
            entries = await _fetch_with_retry(fetch, request, config)
            response = NetwatchResponse(data=entries, host=request.host)
            return _json_response(200, response.model_dump_json())

        except NetwatchError as exc:
            logger.info("Netwatch request failed: %s %s", exc.code, exc.message)
            return _error_response(exc)

        except Exception:
            logger.exception("Unexpected error while handling a netwatch request")
            return _json_response(
                500,
                json.dumps({"success": False, "error": "Internal server error"}),
            )

    return handler


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------


async def _run_until_disconnect(
    request: Request,
    work: Coroutine[Any, Any, tuple[int, dict[str, str], str]],
    poll_interval: float,
) -> tuple[int, dict[str, str], str] | None:
    """Await *work*, cancelling it if the client goes away first.

    Returns ``None`` when the client disconnected.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected; netwatch request aborted")
                return None
    finally:
        if not task.done():
            task.cancel()
            await asyncio.wait({task})


def create_app(
    config: RouterClientConfig | None = None,
    *,
    handler: HTTPHandler | None = None,
    poll_interval: float = DISCONNECT_POLL_INTERVAL,
) -> FastAPI:
    """Create the FastAPI application: ``uvicorn --factory routeros_netwatch.http:create_app``.

    Every method is routed to the netwatch handler so wrong methods get
    the same JSON error envelope.  CORS headers come from
    :class:`CORSMiddleware`.
    """
    handle = handler or create_netwatch_handler(config)

    app = FastAPI(title="RouterOS netwatch", docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.api_route(
        NETWATCH_PATH,
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    async def netwatch(request: Request) -> Response:
        body = await request.body()
        result = await _run_until_disconnect(
            request,
            handle(request.method, dict(request.headers), body),
            poll_interval,
        )
        if result is None:
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        status, headers, text = result
        return Response(content=text, status_code=status, headers=headers)

    return app
