"""Configuration types for the transport runtime."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from assistant_transport.types.tools import ToolDef

HeadersSource = dict[str, str] | Callable[[], Awaitable[dict[str, str]]]


@dataclass(slots=True)
class TransportConfig:
    """Where and how the runtime talks to the agent endpoint."""

    api: str
    headers: HeadersSource = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)  # merged into every request
    initial_state: Any = None
    timeout: float = 60.0


@dataclass(slots=True)
class ModelContext:
    """Session context sent alongside every request."""

    system: str | None = None
    tools: list[ToolDef] = field(default_factory=list)
    call_settings: dict[str, Any] = field(default_factory=dict)  # temperature, max_tokens, ...
    config: dict[str, Any] = field(default_factory=dict)  # model name, api key overrides, ...
