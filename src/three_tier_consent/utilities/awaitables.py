"""Helpers for collaborators that may be synchronous or asynchronous."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import inspect
from typing import Any, TypeVar, Union, cast

T = TypeVar("T")

MaybeAwaitable = Union[T, Awaitable[T]]


async def resolve(value: MaybeAwaitable[T]) -> T:
    """Await ``value`` when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await cast(Awaitable[T], value)
    return cast(T, value)


async def call_blocking(func: Callable[..., MaybeAwaitable[T]], *args: Any) -> T:
    """Call a sink method without blocking the event loop.

    Coroutine functions are awaited directly; plain callables (file-backed
    sinks, for example) run in a worker thread.
    """
    if inspect.iscoroutinefunction(func):
        return await cast(Awaitable[T], func(*args))
    return await resolve(await asyncio.to_thread(func, *args))
