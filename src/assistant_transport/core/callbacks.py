"""Helpers for invoking user-supplied lifecycle callbacks."""

from __future__ import annotations

import inspect
import logging
from typing import Any

logger = logging.getLogger(__name__)


async def call_safely(callback: Any, *args: Any) -> None:
    """Invoke a sync or async *callback*, logging instead of raising.

    Lifecycle callbacks belong to the UI layer; a failure there must not
    tear down the run loop.
    """
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        name = getattr(callback, "__qualname__", repr(callback))
        logger.warning("Callback %s raised", name, exc_info=True)
