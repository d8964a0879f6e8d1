"""
Expiring key/value store used to memoize player scripts, identity tokens
and watch-page bodies.

Each entry carries an expiry deadline and, when an event loop is running,
a timer that evicts it. Overwriting a key cancels the previous timer and
lookups never return a value past its deadline.

``get_or_set`` stores the in-flight task for a key, with no deadline, so
concurrent callers share one derivation however long it runs; a derivation that raises removes itself so the
next caller can retry.
"""

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("value", "expires_at", "handle")

    def __init__(self, value: Any, expires_at: float, handle: asyncio.TimerHandle | None):
        self.value = value
        self.expires_at = expires_at
        self.handle = handle


class TTLCache:
    """Expiring cache. *timeout* is the entry lifetime in seconds."""

    def __init__(self, timeout: float = 1.0):
        self.timeout = timeout
        self._entries: dict[Hashable, _Entry] = {}

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._live(key) is not None)

    def __contains__(self, key: Hashable) -> bool:
        return self._live(key) is not None

    def _live(self, key: Hashable) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.monotonic() >= entry.expires_at:
            self._remove(key, entry)
            return None
        return entry

    def _remove(self, key: Hashable, entry: _Entry) -> None:
        if self._entries.get(key) is entry:
            if entry.handle is not None:
                entry.handle.cancel()
            del self._entries[key]

    def set(self, key: Hashable, value: Any) -> None:
        old = self._entries.get(key)
        if old is not None and old.handle is not None:
            old.handle.cancel()

        entry = _Entry(value, time.monotonic() + self.timeout, None)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            entry.handle = loop.call_later(self.timeout, self._remove, key, entry)
        self._entries[key] = entry

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._live(key)
        return entry.value if entry is not None else default

    def delete(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        self._remove(key, entry)
        return True

    def clear(self) -> None:
        for entry in self._entries.values():
            if entry.handle is not None:
                entry.handle.cancel()
        self._entries.clear()

    async def get_or_set(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached value for *key*, deriving it with *factory* on a
        miss. Concurrent misses for the same key await one shared task.
        """
        entry = self._live(key)
        if entry is not None:
            value = entry.value
        else:
            logger.debug("Cache miss for %s", key)
            value = asyncio.ensure_future(factory())
            # No deadline until the derivation settles
            self._entries[key] = _Entry(value, math.inf, None)
            value.add_done_callback(lambda task: self._settle(key, task))

        if isinstance(value, asyncio.Future):
            # Shield so one cancelled waiter does not cancel the shared task
            return await asyncio.shield(value)
        return value

    def _settle(self, key: Hashable, task: asyncio.Future) -> None:
        entry = self._entries.get(key)
        if entry is None or entry.value is not task:
            return
        if task.cancelled() or task.exception() is not None:
            self._remove(key, entry)
        else:
            # The lifetime starts once the value exists
            self.set(key, task.result())
