"""At-most-once asynchronous construction of process-wide services."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


class AsyncOnce(Generic[T]):
    """Memoize an async factory.

    The first caller starts construction; callers arriving while it is in
    flight await the same task. A failed construction is forgotten so a later
    caller can try again. After the first success the value is returned
    directly, so it stays usable from other event loops.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]) -> None:
        self._factory = factory
        self._task: asyncio.Future[T] | None = None
        self._value: T | None = None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    async def get(self) -> T:
        if self._ready:
            return self._value  # type: ignore[return-value]
        task = self._task
        if task is None:
            task = asyncio.ensure_future(self._factory())
            self._task = task
        try:
            value = await asyncio.shield(task)
        except BaseException:
            if self._task is task and task.done():
                self._task = None
            raise
        if not self._ready:
            self._value = value
            self._ready = True
            self._task = None
        return value

    def peek(self) -> T | None:
        """Return the built value without triggering construction."""
        return self._value if self._ready else None

    def reset(self) -> None:
        self._task = None
        self._value = None
        self._ready = False


__all__ = ["AsyncOnce"]
