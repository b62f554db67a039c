"""HTTP transport: builds the outbound request and streams the response."""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from assistant_transport.core.cancellation import CancellationToken
from assistant_transport.tools.schema import to_request_tools
from assistant_transport.types.commands import Command, command_to_dict
from assistant_transport.types.config import HeadersSource, ModelContext, TransportConfig
from assistant_transport.types.errors import TransportError

logger = logging.getLogger(__name__)


async def create_request_headers(source: HeadersSource) -> dict[str, str]:
    """Resolve static or async-callable headers into a plain dict."""
    if callable(source):
        headers = source()
        if inspect.isawaitable(headers):
            headers = await headers
    else:
        headers = source
    return {"Content-Type": "application/json", **dict(headers)}


def build_request_body(
    commands: list[Command],
    state: Any,
    context: ModelContext,
    extra_body: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble the JSON payload for one run.

    Later sources override earlier ones: call settings, then context config,
    then the transport's static ``body``.
    """
    body: dict[str, Any] = {
        "commands": [command_to_dict(c) for c in commands],
        "state": state,
        "system": context.system,
        "tools": to_request_tools(context.tools) if context.tools else None,
    }
    body.update(context.call_settings)
    body.update(context.config)
    body.update(extra_body or {})
    return body


class HttpTransport:
    """Sends a run's payload and yields the response body chunk by chunk.

    Parameters
    ----------
    config:
        Endpoint, headers, and static body.
    client:
        Optional shared :class:`httpx.AsyncClient`; one is created (and owned)
        per transport otherwise.  Tests pass a client on an
        :class:`httpx.MockTransport`.
    on_response:
        Called with the :class:`httpx.Response` as soon as headers arrive.
    """

    def __init__(
        self,
        config: TransportConfig,
        client: httpx.AsyncClient | None = None,
        on_response: Callable[[httpx.Response], Any] | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None
        self._on_response = on_response

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._client

    @asynccontextmanager
    async def open(
        self,
        body: dict[str, Any],
        token: CancellationToken,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """POST *body* and yield an async iterator over response chunks.

        Raises :class:`TransportError` on network failure, a non-2xx status,
        or an empty body.  The chunk iterator checks *token* before each read.
        """
        headers = await create_request_headers(self._config.headers)
        client = self._get_client()
        logger.debug("POST %s (%d command(s))", self._config.api, len(body.get("commands", [])))
        try:
            async with client.stream("POST", self._config.api, json=body, headers=headers) as response:
                if self._on_response is not None:
                    result = self._on_response(response)
                    if inspect.isawaitable(result):
                        await result
                if not response.is_success:
                    text = (await response.aread()).decode("utf-8", errors="replace")
                    raise TransportError(f"Status {response.status_code}: {text}", status=response.status_code)
                if response.headers.get("content-length") == "0":
                    raise TransportError("Response body is null", status=response.status_code)
                yield self._chunks(response, token)
        except httpx.HTTPError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

    @staticmethod
    async def _chunks(response: httpx.Response, token: CancellationToken) -> AsyncIterator[bytes]:
        async for chunk in response.aiter_bytes():
            token.raise_if_cancelled()
            yield chunk
        token.raise_if_cancelled()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
