"""Helpers for user callables that may be plain functions or coroutines."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any


async def call_maybe_async(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call ``fn`` and await the outcome when it is awaitable."""

    outcome = fn(*args, **kwargs)
    if inspect.isawaitable(outcome):
        return await outcome
    return outcome
