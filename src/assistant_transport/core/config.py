"""Configuration loading (TOML, env vars, .env)."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from assistant_transport.types.config import TransportConfig

logger = logging.getLogger(__name__)

ENV_API = "ASSISTANT_TRANSPORT_API"
ENV_TOKEN = "ASSISTANT_TRANSPORT_TOKEN"
ENV_TIMEOUT = "ASSISTANT_TRANSPORT_TIMEOUT"

CONFIG_DIR = ".assistant-transport"


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables (and a ``.env`` file).

    Values already present in the environment win over the ``.env`` file.
    """
    load_dotenv(find_dotenv(usecwd=True))
    config: dict[str, Any] = {}

    if api := os.environ.get(ENV_API):
        config["api"] = api
    if token := os.environ.get(ENV_TOKEN):
        config["token"] = token
    if timeout := os.environ.get(ENV_TIMEOUT):
        try:
            config["timeout"] = float(timeout)
        except ValueError:
            logger.warning("Ignoring non-numeric %s=%r", ENV_TIMEOUT, timeout)

    return config


def load_toml_config(cwd: str | None = None) -> dict[str, Any]:
    """Load the ``[transport]`` table from ``.assistant-transport/config.toml``.

    Searches *cwd*, the current directory, then the home directory; the
    first file found wins.
    """
    search_dirs: list[Path] = []
    if cwd:
        search_dirs.append(Path(cwd))
    search_dirs.append(Path.cwd())
    search_dirs.append(Path.home())

    for d in search_dirs:
        toml_path = d / CONFIG_DIR / "config.toml"
        if not toml_path.exists():
            continue
        try:
            with open(toml_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError):
            logger.warning("Could not read %s", toml_path, exc_info=True)
            continue
        return dict(data.get("transport", {}))
    return {}


def resolve_config(
    api: str | None = None,
    *,
    token: str | None = None,
    timeout: float | None = None,
    cwd: str | None = None,
) -> TransportConfig:
    """Build a :class:`TransportConfig` from explicit values, env, then TOML.

    Raises ValueError when no endpoint URL can be found.
    """
    merged: dict[str, Any] = {**load_toml_config(cwd), **load_env_config()}
    if api:
        merged["api"] = api
    if token:
        merged["token"] = token
    if timeout is not None:
        merged["timeout"] = timeout

    if not merged.get("api"):
        raise ValueError(f"No endpoint configured; pass one or set {ENV_API}")

    headers: dict[str, str] = dict(merged.get("headers", {}))
    if merged.get("token"):
        headers["Authorization"] = f"Bearer {merged['token']}"

    return TransportConfig(
        api=merged["api"],
        headers=headers,
        body=dict(merged.get("body", {})),
        timeout=float(merged.get("timeout", 60.0)),
    )
