"""Async concurrency primitives used by the reload machinery."""

from __future__ import annotations

import asyncio
import inspect
from contextlib import suppress
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable

T = TypeVar("T")
K = TypeVar("K", bound="Hashable")


class CancellationToken:
    """Cooperative cancellation token backed by ``asyncio.Event``."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError("operation cancelled")


class KeyedSingleFlight(Generic[K, T]):
    """
    Coalesce concurrent calls per key into one in-flight operation.

    The first caller for a key starts the operation; callers arriving while it runs
    await the same result (or exception). Cancelling one waiter does not cancel the
    shared operation.
    """

    def __init__(self) -> None:
        self._in_flight: dict[K, asyncio.Future[T]] = {}

    def __len__(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, key: K) -> bool:
        return key in self._in_flight

    async def run(self, key: K, factory: Callable[[], Awaitable[T]]) -> T:
        existing = self._in_flight.get(key)
        if existing is not None:
            return await asyncio.shield(existing)

        future: asyncio.Future[T] = asyncio.ensure_future(factory())
        self._in_flight[key] = future
        future.add_done_callback(lambda done, key=key: self._forget(key, done))
        return await asyncio.shield(future)

    def _forget(self, key: K, future: asyncio.Future[T]) -> None:
        if self._in_flight.get(key) is future:
            del self._in_flight[key]
        if not future.cancelled():
            # Mark the exception retrieved when every waiter was cancelled.
            future.exception()


async def run_with_timeout(
    coroutine: Awaitable[T],
    timeout_seconds: float,
    cancel_token: CancellationToken | None = None,
) -> T:
    """Run ``coroutine`` with timeout and cooperative cancellation support."""
    if timeout_seconds <= 0:
        _close_unscheduled_coroutine(coroutine)
        raise ValueError("timeout_seconds must be > 0")

    token = cancel_token or CancellationToken()
    if token.is_cancelled:
        _close_unscheduled_coroutine(coroutine)
        raise asyncio.CancelledError("operation cancelled")

    task: asyncio.Task[T] = asyncio.create_task(_await_value(coroutine))
    cancel_wait_task = asyncio.create_task(token.wait())

    try:
        done, _ = await asyncio.wait(
            {task, cancel_wait_task},
            timeout=timeout_seconds,
            return_when=asyncio.FIRST_COMPLETED,
        )

        if task in done:
            return await task

        if cancel_wait_task in done and token.is_cancelled:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            raise asyncio.CancelledError("operation cancelled")

        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        raise TimeoutError(f"operation timed out after {timeout_seconds} seconds")
    finally:
        cancel_wait_task.cancel()
        with suppress(asyncio.CancelledError):
            await cancel_wait_task


async def _await_value(awaitable: Awaitable[T]) -> T:
    return await awaitable


def _close_unscheduled_coroutine(awaitable: Awaitable[object]) -> None:
    # Raw coroutine objects that were never scheduled must be closed explicitly.
    if inspect.iscoroutine(awaitable):
        awaitable.close()


__all__ = [
    "CancellationToken",
    "KeyedSingleFlight",
    "run_with_timeout",
]
