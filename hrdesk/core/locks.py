"""Per-key asyncio locks.

Used to serialize conversation finalization so that two turns finishing
at the same moment for one conversation cannot interleave their writes.
Per-process only, like the rest of the in-memory coordination here.
"""

from __future__ import annotations

from asyncio import Lock
from contextlib import asynccontextmanager
from typing import AsyncGenerator


class KeyedAsyncLock:
    """A registry of asyncio locks keyed by string, dropped when idle."""

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._waiters: dict[str, int] = {}
        self._guard = Lock()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncGenerator[None, None]:
        """Hold the lock for ``key`` for the duration of the block."""
        async with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
            self._waiters[key] = self._waiters.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            async with self._guard:
                remaining = self._waiters.get(key, 1) - 1
                if remaining <= 0:
                    self._waiters.pop(key, None)
                    self._locks.pop(key, None)
                else:
                    self._waiters[key] = remaining
