"""Invoke user callbacks that may be sync or async.

Progress callbacks, stream listeners and state observers all accept either
kind of callable.  A callback that raises is logged and skipped so one
broken observer cannot stall a load or starve the others.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog


async def invoke_callback(
    callback: Callable[..., Any],
    *args: Any,
    logger: structlog.BoundLogger,
    event: str = "callback_error",
) -> None:
    """Call *callback* with *args*, awaiting the result if it is a coroutine."""
    try:
        result = callback(*args)
        if asyncio.iscoroutine(result):
            await result
    except Exception as exc:
        logger.warning(
            event,
            error=str(exc),
            callback=getattr(callback, "__name__", repr(callback)),
        )
