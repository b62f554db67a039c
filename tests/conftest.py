"""Test fixtures including MockEndpoint for deterministic streaming runs."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from assistant_transport.stream.decoder import encode_frame
from assistant_transport.tools.manager import ToolManager
from assistant_transport.types.frames import Frame
from assistant_transport.types.tools import ToolDef, ToolParam


@dataclass
class MockTurn:
    """A scripted response for MockEndpoint.

    ``frames`` are encoded to wire lines, concatenated, and re-split into
    ``chunk_size``-byte chunks so frames straddle chunk boundaries.  When
    ``pause_after`` is set the stream blocks after that many frames until
    :meth:`MockEndpoint.release` is called (or forever).
    """

    frames: list[Frame] = field(default_factory=list)
    chunk_size: int | None = None
    status: int = 200
    error_text: str = "boom"
    pause_after: int | None = None
    raw: bytes | None = None  # sent verbatim instead of frames


class MockEndpoint:
    """A deterministic agent endpoint served through httpx.MockTransport.

    Usage:
        endpoint = MockEndpoint(turns=[
            MockTurn(frames=[TextDelta("Hello"), StateSnapshot({"n": 1})]),
        ])
        runtime = AssistantTransportRuntime(config, client=endpoint.client())
    """

    def __init__(self, turns: list[MockTurn]) -> None:
        self._turns = list(turns)
        self._turn_index = 0
        self.requests: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []
        self.paused = asyncio.Event()
        self._release = asyncio.Event()

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def release(self) -> None:
        self._release.set()

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        if self._turn_index >= len(self._turns):
            return httpx.Response(200, content=b"")
        turn = self._turns[self._turn_index]
        self._turn_index += 1

        if turn.status != 200:
            return httpx.Response(turn.status, text=turn.error_text)
        return httpx.Response(200, content=self._stream(turn))

    async def _stream(self, turn: MockTurn) -> AsyncIterator[bytes]:
        if turn.raw is not None:
            yield turn.raw
            return
        lines = [encode_frame(f) for f in turn.frames]
        for idx, line in enumerate(lines):
            if turn.pause_after is not None and idx == turn.pause_after:
                self.paused.set()
                await self._release.wait()
            if turn.chunk_size:
                for start in range(0, len(line), turn.chunk_size):
                    yield line[start:start + turn.chunk_size]
            else:
                yield line
        if turn.pause_after is not None and turn.pause_after >= len(lines):
            self.paused.set()
            await self._release.wait()


async def collect(aiter: AsyncIterator[Any]) -> list[Any]:
    return [item async for item in aiter]


async def aiter_chunks(chunks: list[bytes | str]) -> AsyncIterator[bytes | str]:
    for chunk in chunks:
        yield chunk


@pytest.fixture
def echo_tools() -> ToolManager:
    """A ToolManager with an ``echo`` tool that returns its text argument."""
    manager = ToolManager()
    manager.register_function(
        ToolDef(
            name="echo",
            description="Echo the given text back",
            parameters=(ToolParam(name="text", type="string", description="Text to echo"),),
        ),
        lambda text: {"echo": text},
    )
    return manager
