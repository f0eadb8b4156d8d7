"""
Lift — turning values and awaitables into lazy results.

Everything that crosses an I/O boundary in cartsync is a LazyCoroResult:
nothing runs until awaited, nothing raises once awaited.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Awaitable

from kungfu import LazyCoroResult, Result

from combinators.lift import catching_async


def from_result[T, E](result: Result[T, E]) -> LazyCoroResult[T, E]:
    """Lift an already known Result, e.g. a precondition failure."""
    async def _run() -> Result[T, E]:
        return result
    return LazyCoroResult(_run)


def bounded[T, E](
    awaitable_fn: Callable[[], Awaitable[T]],
    *,
    seconds: float,
    on_error: Callable[[Exception], E],
) -> LazyCoroResult[T, E]:
    """
    catching_async with a deadline.

    A timeout surfaces as TimeoutError through on_error, the same path
    as any other failure of the wrapped call.

    Example:
        fetch = bounded(
            lambda: transport.request("GET", "/cart", timeout=15),
            seconds=15,
            on_error=error_from_exception,
        )
    """
    async def _guarded() -> T:
        return await asyncio.wait_for(awaitable_fn(), timeout=seconds)

    return catching_async(_guarded, on_error=on_error)


__all__ = ("catching_async", "from_result", "bounded")
